"""gateway 测试配置 -- 手动初始化 app.state 的 FastAPI app + httpx AsyncClient"""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taskfeed.core.activity import ActivityService
from taskfeed.core.reminders import ReminderScheduler


@pytest_asyncio.fixture
async def app(store_group, clock, tmp_db_path, monkeypatch):
    """测试用 FastAPI app（绕过 lifespan，共享 store_group 与固定时钟）"""
    monkeypatch.setenv("TASKFEED_DB_PATH", str(tmp_db_path))
    monkeypatch.setenv("TASKFEED_REMINDER_INTERVAL_S", "0")

    from taskfeed.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    application.state.activity_service = ActivityService(store_group, clock=clock)
    application.state.reminder_scheduler = ReminderScheduler(store_group, clock=clock)
    application.state.reminder_loop = None
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
