"""UserStore SQLite 实现 -- 身份协作方的只读展示视图"""

import aiosqlite

from ..models.user import UserProfile


class SqliteUserStore:
    """UserStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_user(self, user: UserProfile) -> None:
        """写入或更新用户展示信息"""
        await self._conn.execute(
            """
            INSERT INTO users (user_id, name, email, role)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                name = excluded.name,
                email = excluded.email,
                role = excluded.role
            """,
            (user.user_id, user.name, user.email, user.role),
        )

    async def get_user(self, user_id: str) -> UserProfile | None:
        """根据 user_id 查询用户"""
        cursor = await self._conn.execute(
            "SELECT user_id, name, email, role FROM users WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return UserProfile(user_id=row[0], name=row[1], email=row[2], role=row[3])
