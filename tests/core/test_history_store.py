"""HistoryStore 测试

测试内容：
1. 追加后按 ID 读回，数据块完整
2. 任务历史按时间倒序返回
3. 用户操作记录只含该用户、尊重 limit
"""

from datetime import UTC, datetime, timedelta

from taskfeed.core.models import (
    FieldChange,
    HistoryAction,
    HistoryEntry,
    HistoryMetadata,
    StatusChange,
    TransferDetails,
)
from taskfeed.core.store import append_history_entry

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


def _entry(history_id: str, action: HistoryAction, offset_min: int = 0, **kwargs) -> HistoryEntry:
    kwargs.setdefault("task_id", "task-1")
    kwargs.setdefault("performed_by", "actor")
    return HistoryEntry(
        history_id=history_id,
        action=action,
        performed_at=NOW + timedelta(minutes=offset_min),
        **kwargs,
    )


class TestHistoryStore:
    """HistoryStore 读写"""

    async def test_append_and_get_roundtrip(self, store_group):
        """数据块写入后完整读回"""
        entry = _entry(
            "01JH0000000000000000000001",
            HistoryAction.TRANSFERRED,
            transfer_details=TransferDetails(from_user="u1", to_user="u2", reason="leave"),
            metadata=HistoryMetadata(reason="handover", additional_info={"ticket": 7}),
        )
        await append_history_entry(store_group.conn, store_group.history_store, entry)

        loaded = await store_group.history_store.get_entry(entry.history_id)
        assert loaded.model_dump() == entry.model_dump()

    async def test_status_change_block_survives(self, store_group):
        entry = _entry(
            "01JH0000000000000000000002",
            HistoryAction.STATUS_CHANGED,
            status_change=StatusChange(from_status="pending", to_status="approved"),
        )
        await append_history_entry(store_group.conn, store_group.history_store, entry)

        loaded = await store_group.history_store.get_entry(entry.history_id)
        assert loaded.status_change.from_status == "pending"
        assert loaded.status_change.to_status == "approved"

    async def test_list_for_task_newest_first(self, store_group):
        """任务历史按 performed_at 倒序"""
        store = store_group.history_store
        for i, action in enumerate(
            [HistoryAction.CREATED, HistoryAction.ASSIGNED, HistoryAction.COMPLETED]
        ):
            await append_history_entry(
                store_group.conn, store, _entry(f"h{i}", action, offset_min=i)
            )
        # 其他任务的记录不应出现
        await append_history_entry(
            store_group.conn,
            store,
            _entry("other", HistoryAction.CREATED, offset_min=10, task_id="task-2"),
        )

        entries = await store.list_for_task("task-1", limit=50)
        assert [e.action for e in entries] == [
            HistoryAction.COMPLETED,
            HistoryAction.ASSIGNED,
            HistoryAction.CREATED,
        ]

    async def test_list_for_actor_filters_and_limits(self, store_group):
        store = store_group.history_store
        for i in range(5):
            await append_history_entry(
                store_group.conn,
                store,
                _entry(
                    f"a{i}",
                    HistoryAction.ATTACHMENT_ADDED,
                    offset_min=i,
                    changes=FieldChange(description=f"file-{i}"),
                ),
            )
        await append_history_entry(
            store_group.conn,
            store,
            _entry("b0", HistoryAction.CREATED, performed_by="someone-else"),
        )

        entries = await store.list_for_actor("actor", limit=3)
        assert [e.history_id for e in entries] == ["a4", "a3", "a2"]

    async def test_missing_entry_returns_none(self, store_group):
        assert await store_group.history_store.get_entry("nope") is None
