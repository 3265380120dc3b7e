"""CommentStore SQLite 实现"""

import aiosqlite

from ..models.comment import TaskComment
from ..models.query import PaginationResult
from ._codec import from_db_ts, to_db_ts


class SqliteCommentStore:
    """CommentStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_comment(self, comment: TaskComment) -> TaskComment:
        await self._conn.execute(
            """
            INSERT INTO task_comments (comment_id, task_id, user_id, text,
                                       created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                comment.comment_id,
                comment.task_id,
                comment.user_id,
                comment.text,
                to_db_ts(comment.created_at),
                to_db_ts(comment.updated_at),
            ),
        )
        await self._conn.commit()
        return comment

    async def find_task_comments(
        self,
        task_id: str,
        page: int,
        limit: int,
    ) -> PaginationResult[TaskComment]:
        """分页查询任务评论，按创建时间倒序"""
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM task_comments WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        total_count = row[0] if row else 0

        cursor = await self._conn.execute(
            """
            SELECT * FROM task_comments
            WHERE task_id = ?
            ORDER BY created_at DESC, comment_id DESC
            LIMIT ? OFFSET ?
            """,
            (task_id, limit, (page - 1) * limit),
        )
        rows = await cursor.fetchall()
        return PaginationResult[TaskComment].build(
            data=[self._row_to_comment(r) for r in rows],
            page=page,
            limit=limit,
            total_count=total_count,
        )

    async def delete_for_task(self, task_id: str) -> int:
        """删除任务的全部评论（任务删除后的清理）"""
        cursor = await self._conn.execute(
            "DELETE FROM task_comments WHERE task_id = ?",
            (task_id,),
        )
        await self._conn.commit()
        return cursor.rowcount

    @staticmethod
    def _row_to_comment(row: aiosqlite.Row) -> TaskComment:
        return TaskComment(
            comment_id=row[0],
            task_id=row[1],
            user_id=row[2],
            text=row[3],
            created_at=from_db_ts(row[4]),
            updated_at=from_db_ts(row[5]),
        )
