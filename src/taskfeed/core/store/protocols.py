"""Store Protocol 接口定义

定义 TaskStore、UserStore、HistoryStore、NotificationStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
任务与身份存储属于协作方，核心只依赖这里声明的方法。
"""

from datetime import datetime
from typing import Protocol

from ..models.enums import NotificationType
from ..models.history import HistoryEntry
from ..models.notification import Notification
from ..models.task import Task
from ..models.user import UserProfile


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """写入任务快照（种子数据）"""
        ...

    async def update_task(self, task: Task) -> None:
        """更新任务快照"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务快照"""
        ...

    async def find_for_user(self, user_id: str) -> list[Task]:
        """查询用户创建或被指派的任务"""
        ...

    async def list_open_due_between(self, start: datetime, end: datetime) -> list[Task]:
        """查询 deadline 落在区间内、未完成且未结束审批的任务"""
        ...

    async def list_open_overdue(self, now: datetime) -> list[Task]:
        """查询已逾期、未完成且未结束审批的任务"""
        ...


class UserStore(Protocol):
    """身份存储接口（核心只读展示字段）"""

    async def upsert_user(self, user: UserProfile) -> None:
        """写入或更新用户（种子数据）"""
        ...

    async def get_user(self, user_id: str) -> UserProfile | None:
        """根据 user_id 查询用户"""
        ...


class HistoryStore(Protocol):
    """History 存储接口

    历史表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_entry(self, entry: HistoryEntry) -> None:
        """追加历史记录"""
        ...

    async def get_entry(self, history_id: str) -> HistoryEntry | None:
        """根据 history_id 查询"""
        ...

    async def list_for_task(self, task_id: str, limit: int) -> list[HistoryEntry]:
        """查询任务历史（倒序）"""
        ...

    async def list_for_actor(self, user_id: str, limit: int) -> list[HistoryEntry]:
        """查询用户操作记录（倒序）"""
        ...


class NotificationStore(Protocol):
    """Notification 存储接口"""

    async def create_notification(
        self,
        notification: Notification,
        dedup_key: str | None = None,
    ) -> None:
        """写入通知，提醒类必须携带 dedup_key，冲突时报错"""
        ...

    async def find_reminder_since(
        self,
        recipient: str,
        notification_type: NotificationType,
        related_task: str,
        since: datetime,
    ) -> Notification | None:
        """查询 since 之后的同类提醒"""
        ...

    async def get_for_recipient(
        self,
        notification_id: str,
        recipient: str,
    ) -> Notification | None:
        """按 ID 查询属于该收件人的通知"""
        ...

    async def mark_read(self, notification_id: str, read_at: datetime) -> None:
        """标记单条已读"""
        ...

    async def mark_all_read(self, recipient: str, read_at: datetime) -> int:
        """标记全部已读，返回修改条数"""
        ...

    async def list_for_recipient(
        self,
        recipient: str,
        offset: int,
        limit: int,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
    ) -> list[Notification]:
        """分页查询（倒序）"""
        ...

    async def count_for_recipient(
        self,
        recipient: str,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
    ) -> int:
        """统计通知数"""
        ...

    async def count_by_type(self, recipient: str) -> dict[str, int]:
        """按类型统计"""
        ...
