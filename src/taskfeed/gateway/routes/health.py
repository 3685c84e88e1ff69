"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、WAL 模式、提醒循环状态。
"""

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from taskfeed.core.store import verify_wal_mode

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. wal_mode: journal_mode 是否为 WAL
    3. reminder_loop: running / disabled / stopped（不影响就绪状态）
    """
    checks: dict[str, str] = {}
    all_ok = True

    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
        checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "off"
    except Exception as e:
        log.warning("readiness_check_failed", check="sqlite", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    reminder_loop = getattr(request.app.state, "reminder_loop", None)
    if reminder_loop is None:
        checks["reminder_loop"] = "disabled"
    else:
        checks["reminder_loop"] = "running" if reminder_loop.running else "stopped"

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
