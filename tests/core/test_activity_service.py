"""ActivityService 测试

测试内容：
1. 记录事件：历史写入 + 通知扇出
2. 操作者不收通知、备注不产生通知
3. 校验失败不写入任何记录
4. 扇出失败只放弃通知，历史保留；扇出原子性
5. 收件箱：分页、已读、全部已读、统计
6. 并发读取只看到已提交的扇出，存储异常转换为 DependencyUnavailableError
"""

import asyncio
from datetime import timedelta

import aiosqlite
import pytest

from taskfeed.core.activity import ActivityService
from taskfeed.core.exceptions import (
    DependencyUnavailableError,
    NotFoundOrUnauthorizedError,
    ValidationError,
)
from taskfeed.core.models import (
    HistoryAction,
    NotificationType,
    Priority,
)


@pytest.fixture
def service(store_group, clock) -> ActivityService:
    return ActivityService(store_group, clock=clock)


async def _all_notifications(store_group, user_id: str):
    return await store_group.notification_store.list_for_recipient(user_id, offset=0, limit=100)


class TestRecordTaskEvent:
    """记录任务事件"""

    async def test_history_and_notifications_written(
        self, service, store_group, seed_task, seed_user, clock
    ):
        await seed_task(priority=Priority.HIGH)
        await seed_user("creator", name="Alice")

        entry = await service.record_task_event(
            task_id="task-1",
            action=HistoryAction.ASSIGNED,
            performed_by="creator",
        )

        assert entry.performed_at == clock.now()
        history = await service.task_history("task-1")
        assert [e.history_id for e in history] == [entry.history_id]

        for user_id in ("u1", "u2"):
            items = await _all_notifications(store_group, user_id)
            assert len(items) == 1
            notification = items[0]
            assert notification.type == NotificationType.TASK_ASSIGNED
            assert notification.sender == "creator"
            assert notification.priority == Priority.HIGH
            assert notification.message == (
                'You have been assigned to task "Quarterly report" by Alice'
            )
            assert notification.data["history_id"] == entry.history_id
            assert notification.data["task_title"] == "Quarterly report"
            assert notification.data["task_priority"] == "high"

    async def test_actor_not_notified(self, service, store_group, seed_task):
        """操作者本人不会收到通知"""
        await seed_task()
        await service.record_task_event(
            task_id="task-1",
            action="status_changed",
            performed_by="u1",
            status_change={"from": "pending", "to": "completed"},
        )

        assert await _all_notifications(store_group, "u1") == []
        assert len(await _all_notifications(store_group, "u2")) == 1
        assert len(await _all_notifications(store_group, "creator")) == 1

    async def test_remark_logged_but_not_notified(self, service, store_group, seed_task):
        await seed_task()
        entry = await service.record_task_event(
            task_id="task-1",
            action=HistoryAction.REMARK_ADDED,
            performed_by="creator",
            changes={"description": "Looks good"},
        )

        assert (await service.task_history("task-1"))[0].history_id == entry.history_id
        for user_id in ("u1", "u2", "creator"):
            assert await _all_notifications(store_group, user_id) == []

    async def test_transfer_notifies_both_parties(self, service, store_group, seed_task):
        await seed_task(assignees=("u2",))
        await service.record_task_event(
            task_id="task-1",
            action=HistoryAction.TRANSFERRED,
            performed_by="manager",
            transfer_details={"from_user": "u1", "to_user": "u2"},
        )

        for user_id in ("u1", "u2"):
            items = await _all_notifications(store_group, user_id)
            assert [n.type for n in items] == [NotificationType.TASK_TRANSFERRED]
            assert items[0].priority == Priority.HIGH

    async def test_transfer_with_camel_case_details(self, service, store_group, seed_task):
        await seed_task(assignees=("u2",))
        entry = await service.record_task_event(
            task_id="task-1",
            action=HistoryAction.TRANSFERRED,
            performed_by="manager",
            transfer_details={"fromUser": "u1", "toUser": "u2"},
        )

        assert entry.transfer_details.from_user == "u1"
        stored = await store_group.history_store.get_entry(entry.history_id)
        assert stored.transfer_details.to_user == "u2"
        for user_id in ("u1", "u2"):
            assert len(await _all_notifications(store_group, user_id)) == 1

    async def test_unknown_block_key_rejected_without_write(self, service, store_group):
        with pytest.raises(ValidationError):
            await service.record_task_event(
                task_id="task-1",
                action=HistoryAction.TRANSFERRED,
                performed_by="manager",
                transfer_details={"from": "u1", "to": "u2"},
            )
        assert await store_group.history_store.list_for_task("task-1", 50) == []

    async def test_missing_task_keeps_history(self, service, store_group):
        """任务不存在时放弃扇出，历史仍写入"""
        entry = await service.record_task_event(
            task_id="ghost",
            action=HistoryAction.COMPLETED,
            performed_by="u1",
        )
        assert (await service.task_history("ghost"))[0].history_id == entry.history_id
        assert await _all_notifications(store_group, "u1") == []


class TestValidation:
    """写入前校验"""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"task_id": "task-1", "action": "archived", "performed_by": "u1"},
            {"task_id": "  ", "action": "created", "performed_by": "u1"},
            {"task_id": "task-1", "action": "created", "performed_by": ""},
            {
                "task_id": "task-1",
                "action": "assigned",
                "performed_by": "u1",
                "transfer_details": {"from_user": "u1", "to_user": "u2"},
            },
            {
                "task_id": "task-1",
                "action": "priority_changed",
                "performed_by": "u1",
                "changes": {"old_value": "low", "new_value": "high", "description": "x"},
            },
        ],
    )
    async def test_invalid_event_rejected_without_write(self, service, store_group, kwargs):
        with pytest.raises(ValidationError):
            await service.record_task_event(**kwargs)
        assert await store_group.history_store.list_for_task("task-1", 50) == []
        assert await store_group.history_store.list_for_actor("u1", 50) == []


class TestFanOutFailures:
    """扇出失败处理"""

    async def test_task_store_failure_abandons_fanout(
        self, service, store_group, seed_task, monkeypatch
    ):
        await seed_task()

        async def broken_get_task(task_id):
            raise RuntimeError("task store offline")

        monkeypatch.setattr(store_group.task_store, "get_task", broken_get_task)

        entry = await service.record_task_event(
            task_id="task-1", action=HistoryAction.COMPLETED, performed_by="u1"
        )

        assert (await service.task_history("task-1"))[0].history_id == entry.history_id
        assert await _all_notifications(store_group, "creator") == []

        with pytest.raises(DependencyUnavailableError) as exc_info:
            await service.fan_out(entry)
        assert exc_info.value.dependency == "task_store"

    async def test_fanout_is_atomic(self, service, store_group, seed_task, monkeypatch):
        """任意一条通知写入失败，该事件的通知全部回滚"""
        await seed_task()
        store = store_group.notification_store
        original = store.create_notification
        calls = {"n": 0}

        async def flaky_create(notification, dedup_key=None):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("disk full")
            await original(notification, dedup_key)

        monkeypatch.setattr(store, "create_notification", flaky_create)

        await service.record_task_event(
            task_id="task-1", action=HistoryAction.APPROVED, performed_by="manager"
        )

        for user_id in ("creator", "u1", "u2"):
            assert await _all_notifications(store_group, user_id) == []
        assert len(await service.task_history("task-1")) == 1

    async def test_readers_never_see_uncommitted_fanout(
        self, service, store_group, seed_task, monkeypatch
    ):
        """扇出进行中并发读取未读数，看不到随后被回滚的通知"""
        await seed_task()
        store = store_group.notification_store
        original = store.create_notification
        first_inserted = asyncio.Event()
        calls = {"n": 0}

        async def slow_then_failing(notification, dedup_key=None):
            calls["n"] += 1
            if calls["n"] == 1:
                await original(notification, dedup_key)
                first_inserted.set()
                await asyncio.sleep(0.05)
                return
            raise aiosqlite.OperationalError("disk I/O error")

        monkeypatch.setattr(store, "create_notification", slow_then_failing)

        # completed 由 u1 执行：收件人为 creator 与 u2，creator 先写入
        recording = asyncio.create_task(
            service.record_task_event(
                task_id="task-1", action=HistoryAction.COMPLETED, performed_by="u1"
            )
        )
        await first_inserted.wait()
        assert await service.unread_count("creator") == 0

        await recording
        assert await service.unread_count("creator") == 0
        assert (await service.list_notifications("creator")).items == []


class TestStoreFailures:
    """存储层异常转换"""

    async def test_history_write_failure_is_typed(self, service, store_group, monkeypatch):
        async def broken_append(entry):
            raise aiosqlite.OperationalError("database is locked")

        monkeypatch.setattr(store_group.history_store, "append_entry", broken_append)

        with pytest.raises(DependencyUnavailableError) as exc_info:
            await service.record_task_event(
                task_id="task-1", action=HistoryAction.CREATED, performed_by="u1"
            )
        assert exc_info.value.dependency == "history_store"
        assert isinstance(exc_info.value.original_error, aiosqlite.OperationalError)

    async def test_history_query_failure_is_typed(self, service, store_group, monkeypatch):
        async def broken_list(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        monkeypatch.setattr(store_group.history_store, "list_for_task", broken_list)
        monkeypatch.setattr(store_group.history_store, "list_for_actor", broken_list)

        with pytest.raises(DependencyUnavailableError):
            await service.task_history("task-1")
        with pytest.raises(DependencyUnavailableError):
            await service.user_activity("u1")

    async def test_inbox_failure_is_typed(self, service, store_group, monkeypatch):
        async def broken_count(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        monkeypatch.setattr(store_group.notification_store, "count_for_recipient", broken_count)

        with pytest.raises(DependencyUnavailableError) as exc_info:
            await service.unread_count("u1")
        assert exc_info.value.dependency == "notification_store"
        with pytest.raises(DependencyUnavailableError):
            await service.notification_stats("u1")


class TestInbox:
    """通知收件箱"""

    async def _seed_notifications(self, service, seed_task, clock, count: int):
        await seed_task(assignees=("u1",))
        for _ in range(count):
            await service.record_task_event(
                task_id="task-1", action=HistoryAction.ASSIGNED, performed_by="creator"
            )
            clock.advance(timedelta(minutes=1))

    async def test_pagination(self, service, seed_task, clock):
        await self._seed_notifications(service, seed_task, clock, 5)

        page = await service.list_notifications("u1", page=2, limit=2)
        assert page.pagination.total == 5
        assert page.pagination.pages == 3
        assert len(page.items) == 2
        # 最新的在前
        first_page = await service.list_notifications("u1", page=1, limit=2)
        assert first_page.items[0].created_at > first_page.items[1].created_at

    async def test_filters(self, service, seed_task, clock):
        await self._seed_notifications(service, seed_task, clock, 2)
        await service.record_task_event(
            task_id="task-1", action=HistoryAction.COMPLETED, performed_by="creator"
        )

        completed = await service.list_notifications("u1", notification_type="task_completed")
        assert completed.pagination.total == 1

        first = (await service.list_notifications("u1")).items[0]
        await service.mark_read(first.notification_id, "u1")
        unread = await service.list_notifications("u1", unread_only=True)
        assert unread.pagination.total == 2

    @pytest.mark.parametrize(
        "kwargs",
        [{"page": 0}, {"limit": 0}, {"limit": 101}, {"notification_type": "bogus"}],
    )
    async def test_invalid_paging_rejected(self, service, kwargs):
        with pytest.raises(ValidationError):
            await service.list_notifications("u1", **kwargs)

    async def test_mark_read_requires_owner(self, service, seed_task, clock):
        await self._seed_notifications(service, seed_task, clock, 1)
        notification = (await service.list_notifications("u1")).items[0]

        with pytest.raises(NotFoundOrUnauthorizedError):
            await service.mark_read(notification.notification_id, "u2")
        with pytest.raises(NotFoundOrUnauthorizedError):
            await service.mark_read("missing", "u1")

        updated = await service.mark_read(notification.notification_id, "u1")
        assert updated.is_read is True
        assert updated.read_at == clock.now()

    async def test_mark_all_read_then_unread_count_zero(self, service, seed_task, clock):
        await self._seed_notifications(service, seed_task, clock, 3)
        assert await service.unread_count("u1") == 3

        result = await service.mark_all_read("u1")
        assert result.modified_count == 3
        assert await service.unread_count("u1") == 0

        again = await service.mark_all_read("u1")
        assert again.modified_count == 0

    async def test_stats(self, service, seed_task, clock):
        await self._seed_notifications(service, seed_task, clock, 2)
        await service.record_task_event(
            task_id="task-1", action=HistoryAction.REJECTED, performed_by="creator"
        )

        stats = await service.notification_stats("u1")
        assert stats.total == 3
        assert stats.unread == 3
        assert stats.by_type == {"task_assigned": 2, "task_rejected": 1}

    def test_notification_types_catalogue(self):
        types = ActivityService.notification_types()
        values = [t["value"] for t in types]
        assert "task_deadline_reminder" in values
        assert {"value": "task_overdue", "label": "Task Overdue"} in types
