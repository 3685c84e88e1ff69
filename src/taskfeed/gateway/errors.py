"""错误响应映射

统一错误体：{"error": {"code": ..., "message": ...}}
ValidationError 与请求体校验失败 -> 422，NotFoundOrUnauthorizedError -> 404，
DependencyUnavailableError -> 503。
"""

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from taskfeed.core.exceptions import (
    DependencyUnavailableError,
    NotFoundOrUnauthorizedError,
    TaskFeedError,
    ValidationError,
)

log = structlog.get_logger()

_STATUS_CODES: dict[type[TaskFeedError], tuple[int, str]] = {
    ValidationError: (422, "VALIDATION_ERROR"),
    NotFoundOrUnauthorizedError: (404, "NOTIFICATION_NOT_FOUND"),
    DependencyUnavailableError: (503, "DEPENDENCY_UNAVAILABLE"),
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """构造统一错误响应"""
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def _taskfeed_error_handler(request: Request, exc: TaskFeedError) -> JSONResponse:
    status_code, code = _STATUS_CODES.get(type(exc), (500, "INTERNAL_ERROR"))
    if status_code >= 500:
        log.error("request_failed", error_type=type(exc).__name__, error=str(exc))
    return error_response(status_code, code, str(exc))


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return error_response(422, "VALIDATION_ERROR", details or "请求参数校验失败")


async def _http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        return error_response(exc.status_code, exc.detail["code"], exc.detail.get("message", ""))
    return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


def install_error_handlers(app: FastAPI) -> None:
    """注册异常处理器"""
    app.add_exception_handler(TaskFeedError, _taskfeed_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(HTTPException, _http_error_handler)
