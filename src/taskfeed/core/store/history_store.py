"""HistoryStore SQLite 实现

历史表 append-only：只允许插入，不允许更新或删除。
查询按 performed_at 倒序，同一时刻按 history_id（ULID）倒序。
"""

import json

import aiosqlite

from ..models.enums import HistoryAction
from ..models.history import (
    FieldChange,
    HistoryEntry,
    HistoryMetadata,
    StatusChange,
    TransferDetails,
)
from .sqlite_init import from_db_ts, to_db_ts

_COLUMNS = (
    "history_id, task_id, action, performed_by, performed_at, "
    "changes, metadata, transfer_details, status_change"
)


def _dump(block) -> str | None:
    if block is None:
        return None
    return json.dumps(block.model_dump(mode="json", by_alias=True), ensure_ascii=False)


class SqliteHistoryStore:
    """HistoryStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_entry(self, entry: HistoryEntry) -> None:
        """追加历史记录（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            f"INSERT INTO task_history ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                entry.history_id,
                entry.task_id,
                entry.action.value,
                entry.performed_by,
                to_db_ts(entry.performed_at),
                _dump(entry.changes),
                _dump(entry.metadata),
                _dump(entry.transfer_details),
                _dump(entry.status_change),
            ),
        )

    async def get_entry(self, history_id: str) -> HistoryEntry | None:
        """根据 history_id 查询历史记录"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM task_history WHERE history_id = ?",
            (history_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)

    async def list_for_task(self, task_id: str, limit: int) -> list[HistoryEntry]:
        """查询指定任务的历史，按 performed_at 倒序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM task_history
            WHERE task_id = ?
            ORDER BY performed_at DESC, history_id DESC
            LIMIT ?
            """,
            (task_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def list_for_actor(self, user_id: str, limit: int) -> list[HistoryEntry]:
        """查询指定用户执行的操作，按 performed_at 倒序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM task_history
            WHERE performed_by = ?
            ORDER BY performed_at DESC, history_id DESC
            LIMIT ?
            """,
            (user_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> HistoryEntry:
        """将数据库行转换为 HistoryEntry 模型"""
        changes = json.loads(row[5]) if row[5] else None
        metadata = json.loads(row[6]) if row[6] else {}
        transfer = json.loads(row[7]) if row[7] else None
        status_change = json.loads(row[8]) if row[8] else None
        return HistoryEntry(
            history_id=row[0],
            task_id=row[1],
            action=HistoryAction(row[2]),
            performed_by=row[3],
            performed_at=from_db_ts(row[4]),
            changes=FieldChange(**changes) if changes is not None else None,
            metadata=HistoryMetadata(**metadata),
            transfer_details=TransferDetails(**transfer) if transfer is not None else None,
            status_change=(
                StatusChange.model_validate(status_change)
                if status_change is not None
                else None
            ),
        )
