"""全局 pytest 配置 -- 临时 SQLite Store、固定时钟、任务/用户种子数据"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio

from taskfeed.core.clock import FixedClock
from taskfeed.core.models import (
    Assignment,
    Priority,
    Task,
    TaskStage,
    TaskStatus,
    UserProfile,
)
from taskfeed.core.store import StoreGroup, create_store_group

# 测试统一的"当前时间"
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """提供已初始化的 StoreGroup"""
    group = await create_store_group(str(tmp_db_path))
    yield group
    await group.conn.close()


@pytest.fixture
def clock() -> FixedClock:
    """固定在 NOW 的时钟"""
    return FixedClock(NOW)


@pytest.fixture
def seed_task(store_group: StoreGroup) -> Callable[..., Awaitable[Task]]:
    """写入任务快照的工厂"""

    async def _seed(
        task_id: str = "task-1",
        title: str = "Quarterly report",
        created_by: str = "creator",
        assignees: tuple[str, ...] = ("u1", "u2"),
        priority: Priority = Priority.MEDIUM,
        status: TaskStatus = TaskStatus.ASSIGNED,
        stage: TaskStage = TaskStage.NOT_STARTED,
        deadline: datetime | None = None,
    ) -> Task:
        task = Task(
            task_id=task_id,
            title=title,
            priority=priority,
            status=status,
            stage=stage,
            deadline=deadline,
            created_by=created_by,
            assigned_to=[Assignment(user=u, assigned_at=NOW) for u in assignees],
            created_at=NOW,
            updated_at=NOW,
        )
        await store_group.task_store.create_task(task)
        await store_group.conn.commit()
        return task

    return _seed


@pytest.fixture
def seed_user(store_group: StoreGroup) -> Callable[..., Awaitable[UserProfile]]:
    """写入用户展示信息的工厂"""

    async def _seed(user_id: str, name: str = "", role: str = "employee") -> UserProfile:
        user = UserProfile(user_id=user_id, name=name, email=f"{user_id}@example.com", role=role)
        await store_group.user_store.upsert_user(user)
        await store_group.conn.commit()
        return user

    return _seed
