"""ActivityService -- 任务历史记录与通知扇出

处理流程：
1. 校验并写入 HistoryEntry（写入前失败不留下任何记录）
2. 读取任务快照，解析收件人
3. 渲染内容，为每个收件人写入一条通知（单事务）
4. 扇出失败只放弃该事件的通知，历史记录保持不变

另外提供历史查询与通知收件箱操作（分页、已读、统计）。
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import tzinfo
from typing import Any

import aiosqlite
import structlog
from pydantic import ValidationError as PydanticValidationError
from ulid import ULID

from .clock import Clock, SystemClock
from .config import DEFAULT_HISTORY_LIMIT, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, get_timezone
from .exceptions import (
    DependencyUnavailableError,
    NotFoundOrUnauthorizedError,
    ValidationError,
)
from .models import (
    NOTIFICATION_TYPE_LABELS,
    HistoryAction,
    HistoryEntry,
    MarkAllReadResult,
    Notification,
    NotificationPage,
    NotificationStats,
    NotificationType,
    Pagination,
    Task,
)
from .recipients import resolve_recipients
from .rendering import notification_type_for, render_content
from .store import (
    StoreGroup,
    append_history_entry,
    create_notifications_atomic,
    mark_all_read_atomic,
    mark_read_atomic,
)

log = structlog.get_logger()


def _require_id(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} 不能为空")
    return value


def _parse_action(action: HistoryAction | str) -> HistoryAction:
    try:
        return HistoryAction(action)
    except ValueError:
        raise ValidationError(f"未知的历史动作: {action}") from None


def _parse_type(notification_type: NotificationType | str | None) -> NotificationType | None:
    if notification_type is None or notification_type == "":
        return None
    try:
        return NotificationType(notification_type)
    except ValueError:
        raise ValidationError(f"未知的通知类型: {notification_type}") from None


@contextmanager
def _store_errors(dependency: str) -> Iterator[None]:
    """将存储层异常转换为 DependencyUnavailableError"""
    try:
        yield
    except aiosqlite.Error as e:
        raise DependencyUnavailableError(dependency, e) from e


def _check_limit(limit: int, maximum: int | None = None) -> int:
    if limit < 1 or (maximum is not None and limit > maximum):
        bound = f"1..{maximum}" if maximum is not None else ">= 1"
        raise ValidationError(f"limit 超出范围（{bound}）: {limit}")
    return limit


class ActivityService:
    """任务动态与通知业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._stores = store_group
        self._clock = clock or SystemClock()
        self._tz = tz or get_timezone()

    async def record_task_event(
        self,
        task_id: str,
        action: HistoryAction | str,
        performed_by: str,
        changes: Any = None,
        metadata: Any = None,
        transfer_details: Any = None,
        status_change: Any = None,
    ) -> HistoryEntry:
        """记录一次任务变更并扇出通知

        Args:
            task_id: 任务 ID
            action: 动作类型
            performed_by: 操作者 ID
            changes / metadata / transfer_details / status_change:
                可选数据块，接受模型实例或 dict

        Returns:
            已持久化的 HistoryEntry

        Raises:
            ValidationError: 动作未知、标识符缺失或数据块与动作不匹配
            DependencyUnavailableError: 历史记录写入失败
        """
        _require_id(task_id, "task_id")
        _require_id(performed_by, "performed_by")
        parsed_action = _parse_action(action)

        try:
            entry = HistoryEntry(
                history_id=str(ULID()),
                task_id=task_id,
                action=parsed_action,
                performed_by=performed_by,
                performed_at=self._clock.now(),
                changes=changes,
                metadata=metadata if metadata is not None else {},
                transfer_details=transfer_details,
                status_change=status_change,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"历史记录校验失败: {e}") from e

        with _store_errors("history_store"):
            async with self._stores.db_lock:
                await append_history_entry(
                    self._stores.conn, self._stores.history_store, entry
                )

        log.info(
            "history_entry_appended",
            history_id=entry.history_id,
            task_id=entry.task_id,
            action=str(entry.action),
            performed_by=entry.performed_by,
        )

        try:
            await self.fan_out(entry)
        except DependencyUnavailableError as e:
            log.warning(
                "fanout_abandoned",
                history_id=entry.history_id,
                task_id=entry.task_id,
                dependency=e.dependency,
                error=str(e.original_error) if e.original_error else str(e),
            )

        return entry

    async def fan_out(self, entry: HistoryEntry) -> list[Notification]:
        """为一条历史记录创建通知

        Returns:
            新建的通知（可能为空）

        Raises:
            DependencyUnavailableError: 任务/身份读取失败或通知写入失败
        """
        task = await self._load_task(entry.task_id)
        if task is None:
            log.warning(
                "fanout_task_missing",
                history_id=entry.history_id,
                task_id=entry.task_id,
            )
            return []

        recipients = resolve_recipients(entry, task)
        # 再次排除操作者
        recipients.discard(entry.performed_by)
        if not recipients:
            return []

        try:
            async with self._stores.db_lock:
                actor = await self._stores.user_store.get_user(entry.performed_by)
        except Exception as e:
            raise DependencyUnavailableError("user_store", e) from e

        content = render_content(entry, task, actor.name if actor else None, self._tz)
        now = self._clock.now()
        data = {
            "history_id": entry.history_id,
            "action": entry.action.value,
            "changes": entry.changes.model_dump(mode="json") if entry.changes else None,
            "task_title": task.title,
            "task_priority": task.priority.value,
        }
        notifications = [
            Notification(
                notification_id=str(ULID()),
                recipient=recipient,
                sender=entry.performed_by,
                type=notification_type_for(entry.action),
                title=content.title,
                message=content.message,
                related_task=task.task_id,
                priority=content.priority,
                data=data,
                created_at=now,
            )
            for recipient in sorted(recipients)
        ]

        try:
            async with self._stores.db_lock:
                await create_notifications_atomic(
                    self._stores.conn,
                    self._stores.notification_store,
                    notifications,
                )
        except Exception as e:
            raise DependencyUnavailableError("notification_store", e) from e

        log.info(
            "fanout_completed",
            history_id=entry.history_id,
            task_id=entry.task_id,
            recipient_count=len(notifications),
        )
        return notifications

    async def _load_task(self, task_id: str) -> Task | None:
        try:
            async with self._stores.db_lock:
                return await self._stores.task_store.get_task(task_id)
        except Exception as e:
            raise DependencyUnavailableError("task_store", e) from e

    # ============================================================
    # 历史查询
    # ============================================================

    async def task_history(
        self,
        task_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[HistoryEntry]:
        """任务历史，按 performed_at 倒序"""
        _require_id(task_id, "task_id")
        _check_limit(limit)
        with _store_errors("history_store"):
            async with self._stores.db_lock:
                return await self._stores.history_store.list_for_task(task_id, limit)

    async def user_activity(
        self,
        user_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[HistoryEntry]:
        """用户操作记录，按 performed_at 倒序"""
        _require_id(user_id, "user_id")
        _check_limit(limit)
        with _store_errors("history_store"):
            async with self._stores.db_lock:
                return await self._stores.history_store.list_for_actor(user_id, limit)

    # ============================================================
    # 通知收件箱
    # ============================================================

    async def list_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        unread_only: bool = False,
        notification_type: NotificationType | str | None = None,
    ) -> NotificationPage:
        """分页查询用户通知，最新的在前"""
        _require_id(user_id, "user_id")
        if page < 1:
            raise ValidationError(f"page 必须 >= 1: {page}")
        _check_limit(limit, MAX_PAGE_LIMIT)
        parsed_type = _parse_type(notification_type)

        store = self._stores.notification_store
        with _store_errors("notification_store"):
            async with self._stores.db_lock:
                items = await store.list_for_recipient(
                    user_id,
                    offset=(page - 1) * limit,
                    limit=limit,
                    unread_only=unread_only,
                    notification_type=parsed_type,
                )
                total = await store.count_for_recipient(
                    user_id,
                    unread_only=unread_only,
                    notification_type=parsed_type,
                )
        return NotificationPage(
            items=items,
            pagination=Pagination.build(page=page, limit=limit, total=total),
        )

    async def unread_count(self, user_id: str) -> int:
        """未读数（读取时计算）"""
        _require_id(user_id, "user_id")
        with _store_errors("notification_store"):
            async with self._stores.db_lock:
                return await self._stores.notification_store.count_for_recipient(
                    user_id, unread_only=True
                )

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        """标记单条已读

        Raises:
            NotFoundOrUnauthorizedError: 通知不存在或不属于该用户
        """
        store = self._stores.notification_store
        with _store_errors("notification_store"):
            async with self._stores.db_lock:
                notification = await store.get_for_recipient(notification_id, user_id)
                if notification is None:
                    raise NotFoundOrUnauthorizedError(notification_id, user_id)
                if notification.is_read:
                    return notification

                await mark_read_atomic(
                    self._stores.conn, store, notification_id, self._clock.now()
                )
                updated = await store.get_for_recipient(notification_id, user_id)
        return updated if updated is not None else notification

    async def mark_all_read(self, user_id: str) -> MarkAllReadResult:
        """标记用户全部通知为已读"""
        _require_id(user_id, "user_id")
        with _store_errors("notification_store"):
            async with self._stores.db_lock:
                modified = await mark_all_read_atomic(
                    self._stores.conn,
                    self._stores.notification_store,
                    user_id,
                    self._clock.now(),
                )
        return MarkAllReadResult(modified_count=modified)

    async def notification_stats(self, user_id: str) -> NotificationStats:
        """用户通知统计：总数、未读数、按类型分布"""
        _require_id(user_id, "user_id")
        store = self._stores.notification_store
        with _store_errors("notification_store"):
            async with self._stores.db_lock:
                return NotificationStats(
                    total=await store.count_for_recipient(user_id),
                    unread=await store.count_for_recipient(user_id, unread_only=True),
                    by_type=await store.count_by_type(user_id),
                )

    @staticmethod
    def notification_types() -> list[dict[str, str]]:
        """可筛选的通知类型目录"""
        return [
            {"value": t.value, "label": label}
            for t, label in NOTIFICATION_TYPE_LABELS.items()
        ]
