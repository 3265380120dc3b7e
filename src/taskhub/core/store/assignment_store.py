"""AssignmentStore SQLite 实现

(user_id, task_id) 至多一行：先查后插，再以 ON CONFLICT DO NOTHING
兜底并发下的重复插入，唯一索引是最终保证。
"""

from datetime import UTC, datetime

import aiosqlite

from ..models.assignment import Assignment
from ._codec import from_db_ts, to_db_ts


class SqliteAssignmentStore:
    """AssignmentStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_assignment(self, task_id: str, user_id: str) -> Assignment | None:
        cursor = await self._conn.execute(
            """
            SELECT user_id, task_id, assigned_at, assigned_by
            FROM assignments WHERE task_id = ? AND user_id = ?
            """,
            (task_id, user_id),
        )
        row = await cursor.fetchone()
        return self._row_to_assignment(row) if row else None

    async def assign_task_to_user(
        self,
        task_id: str,
        user_id: str,
        assigned_by: str,
    ) -> tuple[Assignment, bool]:
        """幂等地建立分配关系

        Returns:
            (assignment, created) -- created=False 表示关系已存在
        """
        existing = await self.get_assignment(task_id, user_id)
        if existing is not None:
            return existing, False

        assignment = Assignment(
            user_id=user_id,
            task_id=task_id,
            assigned_at=datetime.now(UTC),
            assigned_by=assigned_by,
        )
        cursor = await self._conn.execute(
            """
            INSERT INTO assignments (user_id, task_id, assigned_at, assigned_by)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id, task_id) DO NOTHING
            """,
            (
                assignment.user_id,
                assignment.task_id,
                to_db_ts(assignment.assigned_at),
                assignment.assigned_by,
            ),
        )
        await self._conn.commit()
        if cursor.rowcount == 0:
            # 并发窗口内另一协程已插入
            existing = await self.get_assignment(task_id, user_id)
            if existing is not None:
                return existing, False
        return assignment, True

    async def remove_task_from_user(self, task_id: str, user_id: str) -> bool:
        """删除分配关系，返回是否确实删除了一行"""
        cursor = await self._conn.execute(
            "DELETE FROM assignments WHERE task_id = ? AND user_id = ?",
            (task_id, user_id),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def find_users_by_task_id(self, task_id: str) -> list[str]:
        """查询任务的负责人 user_id 列表（按分配时间正序）"""
        cursor = await self._conn.execute(
            """
            SELECT user_id FROM assignments
            WHERE task_id = ?
            ORDER BY assigned_at ASC, user_id ASC
            """,
            (task_id,),
        )
        return [row[0] for row in await cursor.fetchall()]

    async def delete_for_task(self, task_id: str) -> int:
        """删除任务的全部分配关系（任务删除后的清理）"""
        cursor = await self._conn.execute(
            "DELETE FROM assignments WHERE task_id = ?",
            (task_id,),
        )
        await self._conn.commit()
        return cursor.rowcount

    @staticmethod
    def _row_to_assignment(row: aiosqlite.Row) -> Assignment:
        return Assignment(
            user_id=row[0],
            task_id=row[1],
            assigned_at=from_db_ts(row[2]),
            assigned_by=row[3],
        )
