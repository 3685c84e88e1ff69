"""任务历史路由

POST /api/tasks/{task_id}/events: 记录任务变更并扇出通知（201）。
GET /api/tasks/{task_id}/history: 任务历史，按时间倒序。
GET /api/users/{user_id}/activity: 用户操作记录，按时间倒序。
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from starlette.responses import JSONResponse

from taskfeed.core.activity import ActivityService
from taskfeed.core.config import DEFAULT_HISTORY_LIMIT
from taskfeed.core.models import HistoryEntry

from ..deps import get_activity_service, get_current_user

router = APIRouter()


class TaskEventRequest(BaseModel):
    """任务变更请求，操作者取自 X-User-Id

    字段接受 snake_case 或 camelCase（transferDetails / statusChange），未知字段返回 422。
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=AliasGenerator(validation_alias=to_camel),
    )

    action: str = Field(description="历史动作")
    changes: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    transfer_details: dict[str, Any] | None = None
    status_change: dict[str, Any] | None = None


def entry_to_dict(entry: HistoryEntry) -> dict[str, Any]:
    """序列化历史记录（status_change 使用 from / to 字段名）"""
    data = entry.model_dump(mode="json", by_alias=True)
    data["description"] = entry.describe()
    return data


@router.post("/api/tasks/{task_id}/events", status_code=201)
async def record_task_event(
    task_id: str,
    body: TaskEventRequest,
    request: Request,
    user_id: str = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """记录任务变更，返回写入的历史记录"""
    metadata = dict(body.metadata or {})
    if "userAgent" not in metadata:
        metadata.setdefault("user_agent", request.headers.get("user-agent"))
    if request.client is not None and "ipAddress" not in metadata:
        metadata.setdefault("ip_address", request.client.host)

    entry = await service.record_task_event(
        task_id=task_id,
        action=body.action,
        performed_by=user_id,
        changes=body.changes,
        metadata=metadata,
        transfer_details=body.transfer_details,
        status_change=body.status_change,
    )
    return JSONResponse(status_code=201, content=entry_to_dict(entry))


@router.get("/api/tasks/{task_id}/history")
async def task_history(
    task_id: str,
    limit: int = Query(default=DEFAULT_HISTORY_LIMIT, description="返回条数上限"),
    service: ActivityService = Depends(get_activity_service),
):
    """查询任务历史，最新的在前"""
    entries = await service.task_history(task_id, limit)
    return {"task_id": task_id, "history": [entry_to_dict(e) for e in entries]}


@router.get("/api/users/{user_id}/activity")
async def user_activity(
    user_id: str,
    limit: int = Query(default=DEFAULT_HISTORY_LIMIT, description="返回条数上限"),
    service: ActivityService = Depends(get_activity_service),
):
    """查询用户操作记录，最新的在前"""
    entries = await service.user_activity(user_id, limit)
    return {"user_id": user_id, "activity": [entry_to_dict(e) for e in entries]}
