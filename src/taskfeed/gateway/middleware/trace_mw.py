"""TraceMiddleware -- 任务级追踪

对 /api/tasks/{task_id}/... 请求绑定 task_id 与 trace_id，
使历史写入和扇出日志可以按任务聚合。
"""

import re

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_TASK_PATH = re.compile(r"^/api/tasks/([^/]+)")


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        match = _TASK_PATH.match(request.url.path)
        if match:
            task_id = match.group(1)
            structlog.contextvars.bind_contextvars(
                task_id=task_id,
                trace_id=f"trace-{task_id}",
            )

        return await call_next(request)
