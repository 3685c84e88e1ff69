"""通知收件箱路由

GET /api/notifications: 分页查询（page / limit / unread_only / type）。
GET /api/notifications/unread-count: 未读数。
GET /api/notifications/types: 通知类型目录。
GET /api/notifications/stats: 总数、未读数、按类型分布。
PUT /api/notifications/{notification_id}/read: 标记单条已读（非本人 404）。
PUT /api/notifications/mark-all-read: 全部已读。
POST /api/notifications/deadline-reminders: 手动触发截止提醒扫描（仅 admin）。
POST /api/notifications/overdue-reminders: 手动触发逾期提醒扫描（仅 admin）。
"""

from fastapi import APIRouter, Depends, Query

from taskfeed.core.activity import ActivityService
from taskfeed.core.config import DEFAULT_PAGE_LIMIT
from taskfeed.core.reminders import ReminderScheduler
from taskfeed.core.store import StoreGroup

from ..deps import (
    get_activity_service,
    get_current_user,
    get_reminder_scheduler,
    get_store_group,
)
from ..errors import error_response

router = APIRouter()

ADMIN_ROLE = "admin"


@router.get("/api/notifications")
async def list_notifications(
    page: int = Query(default=1, description="页码，从 1 开始"),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT, description="每页条数"),
    unread_only: bool = Query(default=False, description="仅未读"),
    type: str | None = Query(default=None, description="按通知类型筛选"),
    user_id: str = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """查询当前用户的通知，最新的在前"""
    result = await service.list_notifications(
        user_id,
        page=page,
        limit=limit,
        unread_only=unread_only,
        notification_type=type,
    )
    return result.model_dump(mode="json")


@router.get("/api/notifications/unread-count")
async def unread_count(
    user_id: str = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """当前用户的未读数"""
    return {"unread_count": await service.unread_count(user_id)}


@router.get("/api/notifications/types")
async def notification_types(
    service: ActivityService = Depends(get_activity_service),
):
    """可用的通知类型"""
    return {"types": service.notification_types()}


@router.get("/api/notifications/stats")
async def notification_stats(
    user_id: str = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """当前用户的通知统计"""
    stats = await service.notification_stats(user_id)
    return stats.model_dump()


@router.put("/api/notifications/mark-all-read")
async def mark_all_read(
    user_id: str = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """标记当前用户全部通知为已读"""
    result = await service.mark_all_read(user_id)
    return result.model_dump()


@router.put("/api/notifications/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """标记单条通知为已读"""
    notification = await service.mark_read(notification_id, user_id)
    return notification.model_dump(mode="json")


async def _is_admin(store_group: StoreGroup, user_id: str) -> bool:
    async with store_group.db_lock:
        user = await store_group.user_store.get_user(user_id)
    return user is not None and user.role == ADMIN_ROLE


def _forbidden():
    return error_response(403, "FORBIDDEN", "Only admins can trigger reminder sweeps")


@router.post("/api/notifications/deadline-reminders")
async def trigger_deadline_reminders(
    user_id: str = Depends(get_current_user),
    store_group: StoreGroup = Depends(get_store_group),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    """手动执行截止提醒扫描"""
    if not await _is_admin(store_group, user_id):
        return _forbidden()
    created = await scheduler.run_deadline_sweep()
    return {
        "created": len(created),
        "notifications": [n.model_dump(mode="json") for n in created],
    }


@router.post("/api/notifications/overdue-reminders")
async def trigger_overdue_reminders(
    user_id: str = Depends(get_current_user),
    store_group: StoreGroup = Depends(get_store_group),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    """手动执行逾期提醒扫描"""
    if not await _is_admin(store_group, user_id):
        return _forbidden()
    created = await scheduler.run_overdue_sweep()
    return {
        "created": len(created),
        "notifications": [n.model_dump(mode="json") for n in created],
    }
