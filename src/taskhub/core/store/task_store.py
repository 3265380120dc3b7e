"""TaskStore SQLite 实现

负责 tasks 表的 CRUD，以及限定在某用户负责范围内的列表查询与状态计数。
写操作在方法内提交：主实体写入必须先于任何副作用落盘。
"""

from datetime import datetime
from typing import Any

import aiosqlite

from ..models.enums import TaskStatus
from ..models.query import Pagination, PaginationResult, TaskFilter
from ..models.task import Task
from ._codec import from_db_ts, like_contains, to_db_ts

_COLUMNS = (
    "task_id, title, description, status, priority, "
    "due_date, created_by, created_at, updated_at"
)

# 允许排序的列（防止把外部输入拼进 SQL）
_SORTABLE = {"due_date", "created_at", "updated_at", "priority", "status", "title"}

# 允许通过 update_task 修改的列
_MUTABLE = {"title", "description", "status", "priority", "due_date"}


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> Task:
        """创建任务记录"""
        await self._conn.execute(
            f"INSERT INTO tasks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                task.task_id,
                task.title,
                task.description,
                task.status.value,
                task.priority.value,
                to_db_ts(task.due_date),
                task.created_by,
                to_db_ts(task.created_at),
                to_db_ts(task.updated_at),
            ),
        )
        await self._conn.commit()
        return task

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def update_task(
        self,
        task_id: str,
        changes: dict[str, Any],
        updated_at: datetime,
    ) -> Task | None:
        """部分更新任务字段

        Returns:
            更新后的 Task；任务不存在时返回 None
        """
        unknown = set(changes) - _MUTABLE
        if unknown:
            raise ValueError(f"Unsupported task fields: {sorted(unknown)}")

        assignments = ["updated_at = ?"]
        params: list[Any] = [to_db_ts(updated_at)]
        for name, value in changes.items():
            assignments.append(f"{name} = ?")
            if isinstance(value, datetime):
                params.append(to_db_ts(value))
            elif hasattr(value, "value"):
                params.append(value.value)
            else:
                params.append(value)
        params.append(task_id)

        cursor = await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE task_id = ?",
            params,
        )
        await self._conn.commit()
        if cursor.rowcount == 0:
            return None
        return await self.get_task(task_id)

    async def delete_task(self, task_id: str) -> bool:
        """删除任务记录，返回是否确实删除了一行"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def find_tasks_for_user(
        self,
        user_id: str,
        task_filter: TaskFilter,
        pagination: Pagination,
    ) -> PaginationResult[Task]:
        """查询用户负责的任务列表（筛选 + 排序 + 分页）"""
        where = ["a.user_id = ?"]
        params: list[Any] = [user_id]

        if task_filter.status is not None:
            where.append("t.status = ?")
            params.append(task_filter.status.value)
        if task_filter.due_from is not None:
            where.append("t.due_date >= ?")
            params.append(to_db_ts(task_filter.due_from))
        if task_filter.due_to is not None:
            where.append("t.due_date <= ?")
            params.append(to_db_ts(task_filter.due_to))
        if task_filter.search:
            pattern = like_contains(task_filter.search)
            where.append(
                "(casefold(t.title) LIKE ? ESCAPE '\\' "
                "OR casefold(t.description) LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern])

        from_clause = (
            "FROM tasks t JOIN assignments a ON a.task_id = t.task_id "
            f"WHERE {' AND '.join(where)}"
        )

        cursor = await self._conn.execute(f"SELECT COUNT(*) {from_clause}", params)
        row = await cursor.fetchone()
        total_count = row[0] if row else 0

        order_by = self._order_by(pagination.sort)
        columns = ", ".join(f"t.{c.strip()}" for c in _COLUMNS.split(","))
        cursor = await self._conn.execute(
            f"SELECT {columns} {from_clause} ORDER BY {order_by} LIMIT ? OFFSET ?",
            [*params, pagination.limit, pagination.skip],
        )
        rows = await cursor.fetchall()

        return PaginationResult[Task].build(
            data=[self._row_to_task(r) for r in rows],
            page=pagination.page,
            limit=pagination.limit,
            total_count=total_count,
        )

    async def count_tasks_by_status(self, user_id: str) -> dict[str, int]:
        """统计用户负责的任务在各状态下的数量（所有状态均有键）"""
        counts = {status.value: 0 for status in TaskStatus}
        cursor = await self._conn.execute(
            """
            SELECT t.status, COUNT(*)
            FROM tasks t JOIN assignments a ON a.task_id = t.task_id
            WHERE a.user_id = ?
            GROUP BY t.status
            """,
            (user_id,),
        )
        for status, count in await cursor.fetchall():
            counts[status] = count
        return counts

    @staticmethod
    def _order_by(sort: dict[str, int]) -> str:
        parts = [
            f"t.{field} {'ASC' if direction == 1 else 'DESC'}"
            for field, direction in sort.items()
            if field in _SORTABLE
        ]
        # task_id 兜底，保证分页结果稳定
        parts.append("t.task_id ASC")
        return ", ".join(parts)

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row[0],
            title=row[1],
            description=row[2],
            status=row[3],
            priority=row[4],
            due_date=from_db_ts(row[5]),
            created_by=row[6],
            created_at=from_db_ts(row[7]),
            updated_at=from_db_ts(row[8]),
        )
