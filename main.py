"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import orders
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.database import create_tables, engine
from infrastructure.external.api_clients import (
    NotifierClient,
    PaymentGatewayClient,
    UserDirectoryClient,
)
from infrastructure.notifications import build_notification_dispatcher


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


def _client_kwargs() -> dict:
    return {
        "timeout": settings.services.timeout,
        "max_retries": settings.services.max_retries,
        "retry_delay": settings.services.retry_delay,
        "debug": settings.DEBUG,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 开发环境自动建表；生产环境应由迁移工具管理表结构
    if settings.database.auto_create:
        await create_tables()
        logger.info("database_initialized", url=engine.url.render_as_string(hide_password=True))

    app.state.user_directory = UserDirectoryClient(settings.services.user_url, **_client_kwargs())
    app.state.payment_gateway = PaymentGatewayClient(settings.services.payment_url, **_client_kwargs())
    app.state.notifier = NotifierClient(settings.services.notification_url, **_client_kwargs())
    app.state.notification_dispatcher = build_notification_dispatcher(settings.notification, app.state.notifier)
    await app.state.notification_dispatcher.start()
    logger.info(
        "collaborators_configured",
        user_service=settings.services.user_url,
        payment_service=settings.services.payment_url,
        notification_service=settings.services.notification_url,
        notification_backend=settings.notification.backend,
    )

    yield

    # 先排空通知队列，再关闭HTTP客户端
    await app.state.notification_dispatcher.aclose()
    for client in (app.state.user_directory, app.state.payment_gateway, app.state.notifier):
        await client.close()
    await engine.dispose()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Order orchestration service: user validation, payment, notification",
)

# 添加中间件（注意顺序：从下往上执行）
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(orders.router, prefix=settings.API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点"""
    return success_response(data={"status": "healthy"}, message="ok")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
