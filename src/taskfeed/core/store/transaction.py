"""事务封装 -- 历史写入、事件扇出、提醒写入

每个函数在同一 SQLite 连接上完成一次提交或回滚：
一次扇出的所有通知同时可见或同时不可见。
"""

from datetime import datetime

import aiosqlite

from ..models.history import HistoryEntry
from ..models.notification import Notification
from .protocols import HistoryStore, NotificationStore


def is_dedup_conflict(error: Exception) -> bool:
    """判断是否为提醒去重唯一索引冲突"""
    if not isinstance(error, aiosqlite.IntegrityError):
        return False
    text = str(error)
    return "idx_notifications_dedup_key" in text or "notifications.dedup_key" in text


async def append_history_entry(
    conn: aiosqlite.Connection,
    history_store: HistoryStore,
    entry: HistoryEntry,
) -> None:
    """写入单条历史记录并提交

    Raises:
        Exception: 如果事务提交失败，自动回滚
    """
    try:
        await history_store.append_entry(entry)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def create_notifications_atomic(
    conn: aiosqlite.Connection,
    notification_store: NotificationStore,
    notifications: list[Notification],
) -> None:
    """在同一事务内写入一次扇出的全部通知

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        notification_store: NotificationStore 实例
        notifications: 同一历史事件派生的通知

    Raises:
        Exception: 任意一条写入失败时整体回滚
    """
    try:
        for notification in notifications:
            await notification_store.create_notification(notification)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def create_reminder_once(
    conn: aiosqlite.Connection,
    notification_store: NotificationStore,
    notification: Notification,
    dedup_key: str,
) -> bool:
    """写入单条提醒，去重键冲突时视为已存在

    Returns:
        True 表示写入成功，False 表示当天已有同类提醒
    """
    try:
        await notification_store.create_notification(notification, dedup_key=dedup_key)
        await conn.commit()
        return True
    except Exception as e:
        await conn.rollback()
        if is_dedup_conflict(e):
            return False
        raise


async def mark_all_read_atomic(
    conn: aiosqlite.Connection,
    notification_store: NotificationStore,
    recipient: str,
    read_at: datetime,
) -> int:
    """批量标记已读并提交，返回修改条数"""
    try:
        modified = await notification_store.mark_all_read(recipient, read_at)
        await conn.commit()
        return modified
    except Exception:
        await conn.rollback()
        raise


async def mark_read_atomic(
    conn: aiosqlite.Connection,
    notification_store: NotificationStore,
    notification_id: str,
    read_at: datetime,
) -> None:
    """标记单条已读并提交"""
    try:
        await notification_store.mark_read(notification_id, read_at)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
