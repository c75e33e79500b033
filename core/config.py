"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class DatabaseSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///./data/orders.db"
    # 启动时自动建表（开发环境）；生产环境应使用迁移工具
    auto_create: bool = True
    echo: bool = False


class ServiceSettings(BaseModel):
    """下游协作服务（用户、支付、通知）的地址与超时"""
    user_url: str = "http://user-service:3001/api"
    payment_url: str = "http://payment-service:3003/api"
    notification_url: str = "http://notification-service:3004/api"
    timeout: float = 5.0
    # 工作流不做重试；仅用于后台通知任务等场景
    max_retries: int = 0
    retry_delay: float = 0.5


class NotificationSettings(BaseModel):
    backend: str = "inprocess"  # inprocess | celery
    workers: int = 4
    queue_max: int = 1000
    shutdown_grace: float = 5.0


class RedisSettings(BaseModel):
    url: Optional[str] = None


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Order Service")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=True)
    ENVIRONMENT: str = Field(default="development")
    API_PREFIX: str = Field(default="/api")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3002)

    # 分组配置：嵌套模型，环境变量以 "__" 分隔，例如 SERVICES__USER_URL
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    services: ServiceSettings = Field(default_factory=ServiceSettings)
    notification: NotificationSettings = Field(default_factory=NotificationSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)

    # CORS配置
    CORS_ORIGINS: list = Field(default=["http://localhost:3000"])

    # 日志/请求体记录配置
    LOG_LEVEL: Optional[str] = Field(default=None)
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v

    @field_validator("API_PREFIX")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        v = (v or "").strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v


settings = Settings()
