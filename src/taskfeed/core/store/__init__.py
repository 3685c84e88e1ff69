"""taskfeed Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .history_store import SqliteHistoryStore
from .notification_store import SqliteNotificationStore, reminder_dedup_key
from .protocols import HistoryStore, NotificationStore, TaskStore, UserStore
from .sqlite_init import init_db, verify_wal_mode
from .task_store import SqliteTaskStore
from .transaction import (
    append_history_entry,
    create_notifications_atomic,
    create_reminder_once,
    is_dedup_conflict,
    mark_all_read_atomic,
    mark_read_atomic,
)
from .user_store import SqliteUserStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接

    db_lock 串行化同一连接上的所有事务与查询：
    写事务之间不会混入彼此的语句，查询也只能看到已提交或已回滚后的状态。
    业务服务只依赖 protocols 中声明的 Store 接口。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.task_store: TaskStore = SqliteTaskStore(conn)
        self.user_store: UserStore = SqliteUserStore(conn)
        self.history_store: HistoryStore = SqliteHistoryStore(conn)
        self.notification_store: NotificationStore = SqliteNotificationStore(conn)
        self.db_lock = asyncio.Lock()


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "TaskStore",
    "UserStore",
    "HistoryStore",
    "NotificationStore",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteUserStore",
    "SqliteHistoryStore",
    "SqliteNotificationStore",
    "init_db",
    "verify_wal_mode",
    "reminder_dedup_key",
    "append_history_entry",
    "create_notifications_atomic",
    "create_reminder_once",
    "is_dedup_conflict",
    "mark_all_read_atomic",
    "mark_read_atomic",
]
