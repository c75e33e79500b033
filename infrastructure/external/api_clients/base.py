"""
REST API客户端基类

提供通用的HTTP请求功能，包括：
- 超时控制
- 错误处理（状态码到异常类型的映射）
- 请求/响应日志
- 可选重试（默认关闭，下单工作流不做重试）
- 透传 X-Request-ID
"""
import json
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass
from enum import Enum
import httpx
from pydantic import BaseModel
import logging
from datetime import datetime

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


class HTTPMethod(Enum):
    """HTTP方法枚举"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass
class APIResponse:
    """API响应封装"""
    status_code: int
    headers: Dict[str, str]
    data: Any
    raw_content: bytes
    elapsed_ms: float
    request_id: Optional[str] = None

    @property
    def is_success(self) -> bool:
        """判断请求是否成功"""
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        """判断请求是否失败"""
        return self.status_code >= 400

    def json(self) -> Any:
        """获取JSON响应；无法解码时抛出 ValueError"""
        if self.data is not None:
            return self.data
        return json.loads(self.raw_content)


class APIError(Exception):
    """API错误基类"""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[APIResponse] = None,
        request_id: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.request_id = request_id
        super().__init__(self.message)

    def __str__(self):
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.request_id:
            parts.append(f"Request ID: {self.request_id}")
        return " | ".join(parts)


class TransportError(APIError):
    """连接失败或超时，没有拿到响应"""
    pass


class NotFoundError(APIError):
    """资源未找到错误"""
    pass


class ServerError(APIError):
    """服务器错误"""
    pass


class RetryableAPIError(APIError):
    """可重试的API错误"""

    def __init__(self, message: str, status_code: Optional[int], response: Optional['APIResponse']):
        super().__init__(message=message, status_code=status_code, response=response, request_id=response.request_id if response else None)


RETRY_STATUS_CODES = {502, 503, 504}


class BaseAPIClient:
    """
    REST API客户端基类

    提供通用的HTTP请求功能，子类继承并实现具体的API调用
    """

    service_name = "api"

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        max_retries: int = 0,
        retry_delay: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        debug: bool = False
    ):
        """
        初始化API客户端

        Args:
            base_url: API基础URL
            timeout: 请求超时时间（秒）
            max_retries: 最大重试次数（0 表示只请求一次）
            retry_delay: 重试延迟（秒）
            headers: 默认请求头
            transport: 自定义 httpx transport（测试时注入 MockTransport）
            debug: 是否开启调试模式
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.debug = debug
        self._transport = transport

        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "OrderService/1.0"
        }
        if headers:
            self.default_headers.update(headers)

        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """获取或创建HTTP客户端"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                follow_redirects=True
            )
        return self._client

    async def close(self):
        """关闭HTTP客户端"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _build_url(self, endpoint: str) -> str:
        """构建完整URL"""
        endpoint = endpoint.lstrip('/')
        return f"{self.base_url}/{endpoint}"

    def _log_request(self, method: str, url: str, **kwargs):
        """记录请求日志"""
        if self.debug:
            logger.debug(
                f"API Request: {method} {url}",
                extra={
                    "method": method,
                    "url": url,
                    "params": kwargs.get("params"),
                    "json": kwargs.get("json"),
                }
            )

    def _log_response(self, response: APIResponse):
        """记录响应日志"""
        if self.debug:
            logger.debug(
                f"API Response: {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "elapsed_ms": response.elapsed_ms,
                    "request_id": response.request_id,
                }
            )

    def _handle_error_response(self, status_code: int, response: APIResponse):
        """处理错误响应"""
        if status_code == 404:
            error_class = NotFoundError
        elif status_code >= 500:
            error_class = ServerError
        else:
            error_class = APIError

        # 尝试从响应中提取错误消息
        error_message = f"API request failed with status {status_code}"
        if response.data and isinstance(response.data, dict):
            error_message = (
                response.data.get("message") or
                response.data.get("error") or
                response.data.get("errorMessage") or
                response.data.get("detail") or
                error_message
            )

        raise error_class(
            message=str(error_message),
            status_code=status_code,
            response=response,
            request_id=response.request_id
        )

    @staticmethod
    def _current_request_id() -> Optional[str]:
        return structlog.contextvars.get_contextvars().get("request_id")

    async def _request(
        self,
        method: Union[str, HTTPMethod],
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Union[Dict[str, Any], BaseModel]] = None,
        headers: Optional[Dict[str, str]] = None,
        raise_for_status: bool = True,
        **kwargs
    ) -> APIResponse:
        """
        发送HTTP请求

        Args:
            method: HTTP方法
            endpoint: API端点
            params: 查询参数
            json_data: JSON数据（Pydantic 模型按别名序列化）
            headers: 请求头
            raise_for_status: 为 False 时 4xx/5xx 响应直接返回，由调用方解释
            **kwargs: 其他httpx参数

        Returns:
            APIResponse: API响应

        Raises:
            TransportError: 超时或网络错误
            APIError: 其余错误
        """
        if isinstance(method, HTTPMethod):
            method = method.value

        url = self._build_url(endpoint)

        request_headers = {**self.default_headers}
        request_id = self._current_request_id()
        if request_id:
            request_headers["X-Request-ID"] = request_id
        if headers:
            request_headers.update(headers)

        if isinstance(json_data, BaseModel):
            json_data = json_data.model_dump(mode="json", by_alias=True)

        self._log_request(method, url, params=params, json=json_data)

        async def _send_once() -> APIResponse:
            start_time = datetime.now()
            response = await self.client.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                headers=request_headers,
                **kwargs
            )

            elapsed = (datetime.now() - start_time).total_seconds() * 1000

            content_type = response.headers.get("content-type", "")
            response_data = None

            if "application/json" in content_type:
                try:
                    response_data = response.json()
                except ValueError:
                    response_data = None

            api_response = APIResponse(
                status_code=response.status_code,
                headers=dict(response.headers),
                data=response_data,
                raw_content=response.content,
                elapsed_ms=elapsed,
                request_id=response.headers.get("x-request-id")
            )

            self._log_response(api_response)

            if api_response.status_code in RETRY_STATUS_CODES and self.max_retries > 0:
                raise RetryableAPIError(
                    message=f"Transient API error with status {api_response.status_code}",
                    status_code=api_response.status_code,
                    response=api_response,
                )

            if api_response.is_error and raise_for_status:
                self._handle_error_response(api_response.status_code, api_response)

            return api_response

        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.retry_delay,
                min=self.retry_delay,
                max=self.retry_delay * 8
            ),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError, RetryableAPIError)),
            before_sleep=before_sleep_log(logger, logging.WARNING)
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await _send_once()
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request timeout after {self.timeout}s") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Network error: {exc}") from exc
        except RetryableAPIError as exc:
            if raise_for_status and exc.response:
                self._handle_error_response(exc.status_code or exc.response.status_code, exc.response)
            if exc.response:
                return exc.response
            raise APIError(exc.message) from exc
        except APIError:
            raise
        except Exception as exc:
            logger.error(f"Unexpected error during API request: {exc}")
            raise APIError(f"Unexpected error: {exc}") from exc

    async def get(self, endpoint: str, **kwargs) -> APIResponse:
        """GET请求"""
        return await self._request(HTTPMethod.GET, endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs) -> APIResponse:
        """POST请求"""
        return await self._request(HTTPMethod.POST, endpoint, **kwargs)
