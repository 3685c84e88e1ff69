"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

Store 与服务实例通过 app.state 管理，在 lifespan 中初始化/清理。
调用者身份由 X-User-Id 请求头给出（认证由上游负责）。
"""

from fastapi import Header, HTTPException, Request

from taskfeed.core.activity import ActivityService
from taskfeed.core.reminders import ReminderScheduler
from taskfeed.core.store import StoreGroup


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_activity_service(request: Request) -> ActivityService:
    """从 app.state 获取 ActivityService 实例"""
    return request.app.state.activity_service


def get_reminder_scheduler(request: Request) -> ReminderScheduler:
    """从 app.state 获取 ReminderScheduler 实例"""
    return request.app.state.reminder_scheduler


def get_current_user(x_user_id: str | None = Header(default=None)) -> str:
    """读取调用者 ID，缺失时返回 401"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=401,
            detail={"code": "USER_REQUIRED", "message": "X-User-Id header is required"},
        )
    return x_user_id.strip()
