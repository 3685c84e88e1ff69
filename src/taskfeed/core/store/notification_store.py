"""NotificationStore SQLite 实现

每条通知对应一个收件人。提醒类通知携带 dedup_key，
由部分唯一索引保证 (recipient, type, task, 本地日历日) 至多一条。
未读数在读取时计算，不单独维护计数器。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import NotificationType, is_reminder_type
from ..models.notification import Notification
from .sqlite_init import from_db_ts, to_db_ts

_COLUMNS = (
    "notification_id, recipient, sender, type, title, message, "
    "related_task, priority, data, is_read, read_at, created_at"
)


def reminder_dedup_key(
    recipient: str,
    notification_type: NotificationType,
    related_task: str,
    day: str,
) -> str:
    """提醒去重键：收件人 + 类型 + 任务 + 本地日历日"""
    return f"{recipient}:{notification_type.value}:{related_task}:{day}"


class SqliteNotificationStore:
    """NotificationStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_notification(
        self,
        notification: Notification,
        dedup_key: str | None = None,
    ) -> None:
        """写入通知

        注意：此方法不自动提交事务，需由调用方管理事务。
        dedup_key 冲突时抛出 aiosqlite.IntegrityError。

        Raises:
            ValueError: 提醒类通知缺少 dedup_key
        """
        if is_reminder_type(notification.type) and not dedup_key:
            raise ValueError(f"提醒类通知必须携带 dedup_key: {notification.type.value}")
        await self._conn.execute(
            f"""
            INSERT INTO notifications ({_COLUMNS}, dedup_key)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                notification.notification_id,
                notification.recipient,
                notification.sender,
                notification.type.value,
                notification.title,
                notification.message,
                notification.related_task,
                notification.priority.value,
                json.dumps(notification.data, ensure_ascii=False, default=str),
                1 if notification.is_read else 0,
                to_db_ts(notification.read_at) if notification.read_at else None,
                to_db_ts(notification.created_at),
                dedup_key,
            ),
        )

    async def find_reminder_since(
        self,
        recipient: str,
        notification_type: NotificationType,
        related_task: str,
        since: datetime,
    ) -> Notification | None:
        """查询 since 之后是否已为该 (收件人, 任务) 发过同类提醒"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM notifications
            WHERE recipient = ? AND type = ? AND related_task = ? AND created_at >= ?
            LIMIT 1
            """,
            (recipient, notification_type.value, related_task, to_db_ts(since)),
        )
        row = await cursor.fetchone()
        return self._row_to_notification(row) if row is not None else None

    async def get_for_recipient(
        self,
        notification_id: str,
        recipient: str,
    ) -> Notification | None:
        """按 ID 查询属于该收件人的通知"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM notifications WHERE notification_id = ? AND recipient = ?",
            (notification_id, recipient),
        )
        row = await cursor.fetchone()
        return self._row_to_notification(row) if row is not None else None

    async def mark_read(self, notification_id: str, read_at: datetime) -> None:
        """标记单条已读（已读时间只在首次写入）"""
        await self._conn.execute(
            """
            UPDATE notifications
            SET is_read = 1, read_at = COALESCE(read_at, ?)
            WHERE notification_id = ?
            """,
            (to_db_ts(read_at), notification_id),
        )

    async def mark_all_read(self, recipient: str, read_at: datetime) -> int:
        """标记收件人全部未读为已读，返回修改条数"""
        cursor = await self._conn.execute(
            "UPDATE notifications SET is_read = 1, read_at = ? WHERE recipient = ? AND is_read = 0",
            (to_db_ts(read_at), recipient),
        )
        return cursor.rowcount

    async def list_for_recipient(
        self,
        recipient: str,
        offset: int,
        limit: int,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
    ) -> list[Notification]:
        """分页查询收件人的通知，按 created_at 倒序"""
        where, params = self._filter(recipient, unread_only, notification_type)
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM notifications
            WHERE {where}
            ORDER BY created_at DESC, notification_id DESC
            LIMIT ? OFFSET ?
            """,
            (*params, limit, offset),
        )
        rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def count_for_recipient(
        self,
        recipient: str,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
    ) -> int:
        """统计收件人的通知数"""
        where, params = self._filter(recipient, unread_only, notification_type)
        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM notifications WHERE {where}",
            params,
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def count_by_type(self, recipient: str) -> dict[str, int]:
        """按类型统计收件人的通知数"""
        cursor = await self._conn.execute(
            "SELECT type, COUNT(*) FROM notifications WHERE recipient = ? GROUP BY type",
            (recipient,),
        )
        rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}

    @staticmethod
    def _filter(
        recipient: str,
        unread_only: bool,
        notification_type: NotificationType | None,
    ) -> tuple[str, tuple]:
        clauses = ["recipient = ?"]
        params: list = [recipient]
        if unread_only:
            clauses.append("is_read = 0")
        if notification_type is not None:
            clauses.append("type = ?")
            params.append(notification_type.value)
        return " AND ".join(clauses), tuple(params)

    @staticmethod
    def _row_to_notification(row: aiosqlite.Row) -> Notification:
        """将数据库行转换为 Notification 模型"""
        data = json.loads(row[8]) if row[8] else {}
        return Notification(
            notification_id=row[0],
            recipient=row[1],
            sender=row[2],
            type=NotificationType(row[3]),
            title=row[4],
            message=row[5],
            related_task=row[6],
            priority=row[7],
            data=data,
            is_read=bool(row[9]),
            read_at=from_db_ts(row[10]),
            created_at=from_db_ts(row[11]),
        )
