"""Notification Domain Model -- 派生的、面向单个收件人的通知

通知不是事实来源：它们派生自任务历史或提醒扫描。
一个历史事件可以扇出为 N 条通知。
"""

import math
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import NotificationType, Priority


class Notification(BaseModel):
    """Notification 数据模型

    只有已读状态可变，核心从不删除通知。
    """

    notification_id: str = Field(description="唯一标识，ULID 格式")
    recipient: str = Field(min_length=1, description="收件人 ID")
    sender: str | None = Field(default=None, description="发送者 ID，系统提醒为 None")
    type: NotificationType = Field(description="通知类别")
    title: str = Field(max_length=200, description="标题")
    message: str = Field(max_length=1000, description="正文")
    related_task: str | None = Field(default=None, description="关联任务 ID")
    priority: Priority = Field(default=Priority.MEDIUM, description="通知优先级")
    data: dict[str, Any] = Field(default_factory=dict, description="附加数据")
    is_read: bool = Field(default=False, description="是否已读")
    read_at: datetime | None = Field(default=None, description="已读时间")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="创建时间",
    )


class Pagination(BaseModel):
    """分页信息"""

    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


class NotificationPage(BaseModel):
    """通知分页结果"""

    items: list[Notification]
    pagination: Pagination


class MarkAllReadResult(BaseModel):
    """全部已读结果"""

    modified_count: int


class NotificationStats(BaseModel):
    """用户通知统计"""

    total: int = 0
    unread: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
