"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 业务服务初始化 + 提醒循环启停 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from taskfeed.core.activity import ActivityService
from taskfeed.core.clock import SystemClock
from taskfeed.core.config import get_db_path, get_timezone
from taskfeed.core.reminders import ReminderScheduler
from taskfeed.core.store import create_store_group

from .config import load_gateway_config
from .errors import install_error_handlers
from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import health, notifications, tasks
from .services.reminder_loop import ReminderLoop

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 与服务，关闭时停止提醒循环并关闭连接"""
    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group

    clock = SystemClock()
    tz = get_timezone()
    app.state.activity_service = ActivityService(store_group, clock=clock, tz=tz)
    scheduler = ReminderScheduler(store_group, clock=clock, tz=tz)
    app.state.reminder_scheduler = scheduler

    gateway_config = load_gateway_config()
    app.state.gateway_config = gateway_config

    if gateway_config.reminders_enabled:
        reminder_loop = ReminderLoop(scheduler, gateway_config.reminder_interval_s)
        reminder_loop.start()
        app.state.reminder_loop = reminder_loop
    else:
        app.state.reminder_loop = None
        log.info("reminder_loop_disabled")

    yield

    if app.state.reminder_loop is not None:
        await app.state.reminder_loop.stop()
    await store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="taskfeed Gateway",
        version="0.1.0",
        description="任务活动历史与通知 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    install_error_handlers(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(notifications.router, tags=["notifications"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
