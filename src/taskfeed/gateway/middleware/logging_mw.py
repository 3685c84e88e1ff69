"""LoggingMiddleware -- 请求级日志

为每个 HTTP 请求生成 request_id，连同调用者 ID 绑定到 structlog contextvars，
请求结束时记录状态码与耗时。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        if user_id := request.headers.get("x-user-id"):
            structlog.contextvars.bind_contextvars(user_id=user_id)

        log = structlog.get_logger()
        await log.ainfo("request_started")

        response = await call_next(request)

        await log.ainfo(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
