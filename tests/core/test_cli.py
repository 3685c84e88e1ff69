"""CLI 测试 -- python -m taskfeed.core <command>"""

import sys
from datetime import UTC, datetime, timedelta

import pytest

from taskfeed.core import __main__ as cli
from taskfeed.core.models import Assignment, Task
from taskfeed.core.store import create_store_group


async def _seed_overdue_task(db_path: str) -> None:
    store_group = await create_store_group(db_path)
    now = datetime.now(UTC)
    try:
        await store_group.task_store.create_task(
            Task(
                task_id="task-cli",
                title="CLI task",
                created_by="creator",
                assigned_to=[Assignment(user="u1")],
                deadline=now - timedelta(days=1),
                created_at=now,
                updated_at=now,
            )
        )
        await store_group.conn.commit()
    finally:
        await store_group.conn.close()


class TestCli:
    """提醒扫描命令"""

    async def test_run_sweeps_counts(self, tmp_path, monkeypatch, capsys):
        db_path = str(tmp_path / "cli.db")
        monkeypatch.setenv("TASKFEED_DB_PATH", db_path)
        await _seed_overdue_task(db_path)

        counts = await cli.run_sweeps("run-sweeps")
        assert counts == {"deadline": 0, "overdue": 1}

        again = await cli.run_sweeps("overdue-sweep")
        assert again == {"overdue": 0}
        assert "overdue" in capsys.readouterr().out

    def test_unknown_command_exits(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["taskfeed.core", "rebuild"])
        with pytest.raises(SystemExit) as exc_info:
            cli.main()
        assert exc_info.value.code == 1

    def test_missing_command_exits(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["taskfeed.core"])
        with pytest.raises(SystemExit):
            cli.main()
