"""NotificationStore SQLite 实现

related_to 拆为 related_kind / related_id 两列落盘，读出时还原为带标签的引用。
"""

import aiosqlite

from ..models.enums import NotificationType
from ..models.notification import CommentRef, Notification, TaskRef
from ..models.query import PaginationResult
from ._codec import from_db_ts, to_db_ts


class SqliteNotificationStore:
    """NotificationStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_notification(self, notification: Notification) -> Notification:
        await self._conn.execute(
            """
            INSERT INTO notifications (notification_id, user_id, type, content,
                                       related_kind, related_id, is_read, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                notification.notification_id,
                notification.user_id,
                notification.type.value,
                notification.content,
                notification.related_to.kind,
                notification.related_to.id,
                int(notification.is_read),
                to_db_ts(notification.created_at),
            ),
        )
        await self._conn.commit()
        return notification

    async def get_notification(self, notification_id: str) -> Notification | None:
        cursor = await self._conn.execute(
            "SELECT * FROM notifications WHERE notification_id = ?",
            (notification_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_notification(row) if row else None

    async def find_user_notifications(
        self,
        user_id: str,
        page: int,
        limit: int,
        only_unread: bool = False,
    ) -> PaginationResult[Notification]:
        """分页查询用户通知，按创建时间倒序"""
        where = "user_id = ?" + (" AND is_read = 0" if only_unread else "")

        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM notifications WHERE {where}",
            (user_id,),
        )
        row = await cursor.fetchone()
        total_count = row[0] if row else 0

        cursor = await self._conn.execute(
            f"""
            SELECT * FROM notifications WHERE {where}
            ORDER BY created_at DESC, notification_id DESC
            LIMIT ? OFFSET ?
            """,
            (user_id, limit, (page - 1) * limit),
        )
        rows = await cursor.fetchall()
        return PaginationResult[Notification].build(
            data=[self._row_to_notification(r) for r in rows],
            page=page,
            limit=limit,
            total_count=total_count,
        )

    async def mark_as_read(self, notification_id: str) -> bool:
        """标记单条通知已读，通知不存在时返回 False"""
        cursor = await self._conn.execute(
            "UPDATE notifications SET is_read = 1 WHERE notification_id = ?",
            (notification_id,),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def mark_all_as_read(self, user_id: str) -> int:
        """标记用户全部未读通知为已读，返回实际修改的行数"""
        cursor = await self._conn.execute(
            "UPDATE notifications SET is_read = 1 WHERE user_id = ? AND is_read = 0",
            (user_id,),
        )
        await self._conn.commit()
        return cursor.rowcount

    @staticmethod
    def _row_to_notification(row: aiosqlite.Row) -> Notification:
        kind, related_id = row[4], row[5]
        related_to = (
            CommentRef(id=related_id) if kind == "TaskComment" else TaskRef(id=related_id)
        )
        return Notification(
            notification_id=row[0],
            user_id=row[1],
            type=NotificationType(row[2]),
            content=row[3],
            related_to=related_to,
            is_read=bool(row[6]),
            created_at=from_db_ts(row[7]),
        )
