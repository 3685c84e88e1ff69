"""TaskStore SQLite 实现

tasks 表是任务协作方的本地视图，核心只读取快照；
create_task / update_task 供协作方同步与测试写入。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import CLOSED_STATUSES, TaskStage
from ..models.task import Assignment, Task
from .sqlite_init import from_db_ts, to_db_ts

_COLUMNS = (
    "task_id, title, priority, status, stage, deadline, "
    "created_by, assigned_to, created_at, updated_at"
)

# 提醒扫描的公共过滤条件：未完成且未结束审批
_OPEN_FILTER = "stage != ? AND status NOT IN ({})".format(
    ", ".join("?" for _ in CLOSED_STATUSES)
)
_OPEN_PARAMS = (TaskStage.DONE.value, *sorted(s.value for s in CLOSED_STATUSES))


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        await self._conn.execute(
            f"INSERT INTO tasks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            self._task_params(task),
        )

    async def update_task(self, task: Task) -> None:
        """整体覆盖任务快照"""
        await self._conn.execute(
            """
            UPDATE tasks
            SET title = ?, priority = ?, status = ?, stage = ?, deadline = ?,
                created_by = ?, assigned_to = ?, created_at = ?, updated_at = ?
            WHERE task_id = ?
            """,
            (*self._task_params(task)[1:], task.task_id),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def find_for_user(self, user_id: str) -> list[Task]:
        """查询用户创建或被指派的任务，按 created_at 倒序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks
            WHERE created_by = ?
               OR EXISTS (
                   SELECT 1 FROM json_each(tasks.assigned_to)
                   WHERE json_extract(json_each.value, '$.user') = ?
               )
            ORDER BY created_at DESC
            """,
            (user_id, user_id),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_open_due_between(self, start: datetime, end: datetime) -> list[Task]:
        """查询 deadline 落在 [start, end] 且仍需提醒的任务"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks
            WHERE deadline IS NOT NULL AND deadline >= ? AND deadline <= ?
              AND {_OPEN_FILTER}
            ORDER BY deadline ASC
            """,
            (to_db_ts(start), to_db_ts(end), *_OPEN_PARAMS),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_open_overdue(self, now: datetime) -> list[Task]:
        """查询 deadline 早于 now 且仍需提醒的任务"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks
            WHERE deadline IS NOT NULL AND deadline < ?
              AND {_OPEN_FILTER}
            ORDER BY deadline ASC
            """,
            (to_db_ts(now), *_OPEN_PARAMS),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    @staticmethod
    def _task_params(task: Task) -> tuple:
        return (
            task.task_id,
            task.title,
            task.priority.value,
            task.status.value,
            task.stage.value,
            to_db_ts(task.deadline) if task.deadline is not None else None,
            task.created_by,
            json.dumps(
                [a.model_dump(mode="json") for a in task.assigned_to],
                ensure_ascii=False,
            ),
            to_db_ts(task.created_at),
            to_db_ts(task.updated_at),
        )

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        assigned_data = json.loads(row[7]) if row[7] else []
        return Task(
            task_id=row[0],
            title=row[1],
            priority=row[2],
            status=row[3],
            stage=row[4],
            deadline=from_db_ts(row[5]),
            created_by=row[6],
            assigned_to=[Assignment(**a) for a in assigned_data],
            created_at=datetime.fromisoformat(row[8]),
            updated_at=datetime.fromisoformat(row[9]),
        )
