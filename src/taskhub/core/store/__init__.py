"""TaskHub Core Store -- SQLite 持久化实现

五个 Store 共享一条 aiosqlite 连接，由 create_store_group() 统一打开和关闭。
"""

from pathlib import Path

import aiosqlite
import structlog

from .assignment_store import SqliteAssignmentStore
from .comment_store import SqliteCommentStore
from .history_store import SqliteHistoryStore
from .notification_store import SqliteNotificationStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore

log = structlog.get_logger()

_MEMORY_DB = ":memory:"


class StoreGroup:
    """任务、分配、历史、评论、通知五个 Store 的组合"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.task_store = SqliteTaskStore(conn)
        self.assignment_store = SqliteAssignmentStore(conn)
        self.history_store = SqliteHistoryStore(conn)
        self.comment_store = SqliteCommentStore(conn)
        self.notification_store = SqliteNotificationStore(conn)

    async def close(self) -> None:
        await self.conn.close()
        log.info("store_group_closed")


async def create_store_group(db_path: str) -> StoreGroup:
    """打开数据库并建表

    Args:
        db_path: SQLite 文件路径；":memory:" 表示进程内临时库

    Returns:
        StoreGroup 实例
    """
    if db_path != _MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)
    log.info("store_group_opened", db_path=db_path)
    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteAssignmentStore",
    "SqliteHistoryStore",
    "SqliteCommentStore",
    "SqliteNotificationStore",
    "init_db",
]
