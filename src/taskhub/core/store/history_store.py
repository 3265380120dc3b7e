"""HistoryStore SQLite 实现

task_history 表 append-only：只提供追加与按任务查询，
唯一的删除入口是任务删除后的清理。
"""

import json

import aiosqlite

from ..models.enums import HistoryAction
from ..models.history import TaskHistory
from ._codec import from_db_ts, to_db_ts


class SqliteHistoryStore:
    """HistoryStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_history(self, record: TaskHistory) -> TaskHistory:
        """追加历史记录（append-only）"""
        await self._conn.execute(
            """
            INSERT INTO task_history (history_id, task_id, user_id, action,
                                      previous_value, new_value, timestamp, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.history_id,
                record.task_id,
                record.user_id,
                record.action.value,
                record.previous_value,
                record.new_value,
                to_db_ts(record.timestamp),
                json.dumps(record.metadata, ensure_ascii=False)
                if record.metadata is not None
                else None,
            ),
        )
        await self._conn.commit()
        return record

    async def find_task_history(self, task_id: str) -> list[TaskHistory]:
        """查询指定任务的历史记录，按时间倒序"""
        cursor = await self._conn.execute(
            """
            SELECT * FROM task_history
            WHERE task_id = ?
            ORDER BY timestamp DESC, history_id DESC
            """,
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_history(row) for row in rows]

    async def delete_for_task(self, task_id: str) -> int:
        """删除任务的全部历史记录（任务删除后的清理）"""
        cursor = await self._conn.execute(
            "DELETE FROM task_history WHERE task_id = ?",
            (task_id,),
        )
        await self._conn.commit()
        return cursor.rowcount

    @staticmethod
    def _row_to_history(row: aiosqlite.Row) -> TaskHistory:
        """将数据库行转换为 TaskHistory 模型"""
        return TaskHistory(
            history_id=row[0],
            task_id=row[1],
            user_id=row[2],
            action=HistoryAction(row[3]),
            previous_value=row[4],
            new_value=row[5],
            timestamp=from_db_ts(row[6]),
            metadata=json.loads(row[7]) if row[7] else None,
        )
