"""ReminderScheduler -- 截止提醒与逾期提醒扫描

提醒直接写入通知表，不经过历史记录，sender 为空。
同一 (收件人, 任务, 提醒类型) 在本地日历日内至多一条：
先按"今日午夜以来"查询，再由 dedup_key 唯一索引兜住并发扫描。
每个 (任务, 用户) 组合单独提交，单个失败不影响其余组合。
"""

from datetime import timedelta, tzinfo

import aiosqlite
import structlog
from ulid import ULID

from .clock import Clock, SystemClock, local_day, start_of_day
from .config import REMINDER_WINDOW_HOURS, get_timezone
from .exceptions import DependencyUnavailableError
from .models import Notification, NotificationType, Task
from .rendering import RenderedContent, render_reminder
from .store import StoreGroup, create_reminder_once, reminder_dedup_key

log = structlog.get_logger()


class ReminderScheduler:
    """提醒扫描器"""

    def __init__(
        self,
        store_group: StoreGroup,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._stores = store_group
        self._clock = clock or SystemClock()
        self._tz = tz or get_timezone()

    async def run_deadline_sweep(self) -> list[Notification]:
        """为 deadline 落在未来 24 小时内的任务提醒被指派人"""
        now = self._clock.now()
        try:
            async with self._stores.db_lock:
                tasks = await self._stores.task_store.list_open_due_between(
                    now, now + timedelta(hours=REMINDER_WINDOW_HOURS)
                )
        except aiosqlite.Error as e:
            raise DependencyUnavailableError("task_store", e) from e
        return await self._sweep(NotificationType.TASK_DEADLINE_REMINDER, tasks)

    async def run_overdue_sweep(self) -> list[Notification]:
        """为已逾期的任务提醒被指派人"""
        try:
            async with self._stores.db_lock:
                tasks = await self._stores.task_store.list_open_overdue(self._clock.now())
        except aiosqlite.Error as e:
            raise DependencyUnavailableError("task_store", e) from e
        return await self._sweep(NotificationType.TASK_OVERDUE, tasks)

    async def run_all(self) -> dict[str, list[Notification]]:
        """依次执行两种扫描"""
        return {
            "deadline": await self.run_deadline_sweep(),
            "overdue": await self.run_overdue_sweep(),
        }

    async def _sweep(
        self,
        notification_type: NotificationType,
        tasks: list[Task],
    ) -> list[Notification]:
        created: list[Notification] = []
        skipped = 0
        failed = 0
        for task in tasks:
            # 只提醒仍未结束的任务
            if not task.is_open:
                continue
            content = render_reminder(notification_type, task, self._tz)
            for user_id in task.assignee_ids:
                try:
                    notification = await self._remind(
                        notification_type, task, user_id, content
                    )
                except Exception as e:
                    failed += 1
                    log.warning(
                        "reminder_pair_failed",
                        type=notification_type.value,
                        task_id=task.task_id,
                        user_id=user_id,
                        error=str(e),
                    )
                    continue
                if notification is None:
                    skipped += 1
                else:
                    created.append(notification)

        log.info(
            "reminder_sweep_completed",
            type=notification_type.value,
            task_count=len(tasks),
            created=len(created),
            skipped=skipped,
            failed=failed,
        )
        return created

    async def _remind(
        self,
        notification_type: NotificationType,
        task: Task,
        user_id: str,
        content: RenderedContent,
    ) -> Notification | None:
        """为单个 (任务, 用户) 写入提醒，当天已提醒过则返回 None"""
        now = self._clock.now()
        store = self._stores.notification_store

        notification = Notification(
            notification_id=str(ULID()),
            recipient=user_id,
            sender=None,
            type=notification_type,
            title=content.title,
            message=content.message,
            related_task=task.task_id,
            priority=content.priority,
            data={
                "task_title": task.title,
                "task_priority": task.priority.value,
                "deadline": task.deadline.isoformat() if task.deadline else None,
            },
            created_at=now,
        )
        dedup_key = reminder_dedup_key(
            user_id, notification_type, task.task_id, local_day(now, self._tz)
        )
        async with self._stores.db_lock:
            existing = await store.find_reminder_since(
                user_id,
                notification_type,
                task.task_id,
                start_of_day(now, self._tz),
            )
            if existing is not None:
                return None
            inserted = await create_reminder_once(
                self._stores.conn, store, notification, dedup_key
            )
        return notification if inserted else None
