"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

from datetime import UTC, datetime

import aiosqlite

# users 表 DDL（身份协作方的本地视图）
_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id  TEXT PRIMARY KEY,
    name     TEXT NOT NULL DEFAULT '',
    email    TEXT NOT NULL DEFAULT '',
    role     TEXT NOT NULL DEFAULT 'employee'
);
"""

# tasks 表 DDL（任务协作方的本地视图）
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id      TEXT PRIMARY KEY,
    title        TEXT NOT NULL DEFAULT '',
    priority     TEXT NOT NULL DEFAULT 'medium',
    status       TEXT NOT NULL DEFAULT 'created',
    stage        TEXT NOT NULL DEFAULT 'not_started',
    deadline     TEXT,
    created_by   TEXT NOT NULL,
    assigned_to  TEXT NOT NULL DEFAULT '[]',
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_by ON tasks(created_by);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_deadline ON tasks(deadline);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status_stage ON tasks(status, stage);",
]

# task_history 表 DDL（append-only，无外键：历史在任务消失后仍然权威）
_HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS task_history (
    history_id        TEXT PRIMARY KEY,
    task_id           TEXT NOT NULL,
    action            TEXT NOT NULL,
    performed_by      TEXT NOT NULL,
    performed_at      TEXT NOT NULL,
    changes           TEXT,
    metadata          TEXT NOT NULL DEFAULT '{}',
    transfer_details  TEXT,
    status_change     TEXT
);
"""

_HISTORY_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_history_task_ts ON task_history(task_id, performed_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_history_actor_ts ON task_history(performed_by, performed_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_history_task_action ON task_history(task_id, action);",
]

# notifications 表 DDL
_NOTIFICATIONS_DDL = """
CREATE TABLE IF NOT EXISTS notifications (
    notification_id  TEXT PRIMARY KEY,
    recipient        TEXT NOT NULL,
    sender           TEXT,
    type             TEXT NOT NULL,
    title            TEXT NOT NULL,
    message          TEXT NOT NULL,
    related_task     TEXT,
    priority         TEXT NOT NULL DEFAULT 'medium',
    data             TEXT NOT NULL DEFAULT '{}',
    is_read          INTEGER NOT NULL DEFAULT 0,
    read_at          TEXT,
    created_at       TEXT NOT NULL,
    dedup_key        TEXT
);
"""

_NOTIFICATIONS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_notifications_recipient_ts "
    "ON notifications(recipient, created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_notifications_recipient_read "
    "ON notifications(recipient, is_read);",
    # 提醒去重键唯一约束（仅对非 NULL 值生效，非提醒类通知 dedup_key 为 NULL）
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_notifications_dedup_key "
        "ON notifications(dedup_key) WHERE dedup_key IS NOT NULL;"
    ),
]


def to_db_ts(moment: datetime) -> str:
    """时间戳统一存储为定宽 UTC ISO-8601，保证字典序即时间序"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_ts(value: str | None) -> datetime | None:
    """解析 to_db_ts 写入的时间戳"""
    if value is None:
        return None
    return datetime.fromisoformat(value)


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_USERS_DDL)
    await conn.execute(_TASKS_DDL)
    await conn.execute(_HISTORY_DDL)
    await conn.execute(_NOTIFICATIONS_DDL)

    # 创建索引
    for idx_sql in _TASKS_INDEXES + _HISTORY_INDEXES + _NOTIFICATIONS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
