"""SQLite 数据库初始化

PRAGMA 配置 + casefold() 函数注册 + 五张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

from ._codec import casefold

# tasks 表 DDL（不包含负责人，负责人只存在于 assignments）
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id      TEXT PRIMARY KEY,
    title        TEXT NOT NULL,
    description  TEXT NOT NULL DEFAULT '',
    status       TEXT NOT NULL DEFAULT 'todo',
    priority     TEXT NOT NULL DEFAULT 'medium',
    due_date     TEXT NOT NULL,
    created_by   TEXT NOT NULL,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_by ON tasks(created_by);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status_due ON tasks(status, due_date);",
]

# assignments 表 DDL -- 纯关联表，不设外键：
# Task 删除后关联行由异步清理任务移除
_ASSIGNMENTS_DDL = """
CREATE TABLE IF NOT EXISTS assignments (
    user_id      TEXT NOT NULL,
    task_id      TEXT NOT NULL,
    assigned_at  TEXT NOT NULL,
    assigned_by  TEXT NOT NULL
);
"""

_ASSIGNMENTS_INDEXES = [
    # 同一 (user, task) 至多一行
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_assignments_user_task "
        "ON assignments(user_id, task_id);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_assignments_task_id ON assignments(task_id);",
    "CREATE INDEX IF NOT EXISTS idx_assignments_user_id ON assignments(user_id);",
]

# task_history 表 DDL（append-only）
_HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS task_history (
    history_id      TEXT PRIMARY KEY,
    task_id         TEXT NOT NULL,
    user_id         TEXT NOT NULL,
    action          TEXT NOT NULL,
    previous_value  TEXT,
    new_value       TEXT,
    timestamp       TEXT NOT NULL,
    metadata        TEXT
);
"""

_HISTORY_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_history_task_ts ON task_history(task_id, timestamp DESC);",
    "CREATE INDEX IF NOT EXISTS idx_history_user_id ON task_history(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_history_action ON task_history(action);",
]

# task_comments 表 DDL
_COMMENTS_DDL = """
CREATE TABLE IF NOT EXISTS task_comments (
    comment_id  TEXT PRIMARY KEY,
    task_id     TEXT NOT NULL,
    user_id     TEXT NOT NULL,
    text        TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

_COMMENTS_INDEXES = [
    (
        "CREATE INDEX IF NOT EXISTS idx_comments_task_created "
        "ON task_comments(task_id, created_at DESC);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_comments_user_id ON task_comments(user_id);",
]

# notifications 表 DDL
_NOTIFICATIONS_DDL = """
CREATE TABLE IF NOT EXISTS notifications (
    notification_id  TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    type             TEXT NOT NULL,
    content          TEXT NOT NULL,
    related_kind     TEXT NOT NULL,
    related_id       TEXT NOT NULL,
    is_read          INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT NOT NULL
);
"""

_NOTIFICATIONS_INDEXES = [
    (
        "CREATE INDEX IF NOT EXISTS idx_notifications_user_read "
        "ON notifications(user_id, is_read, created_at DESC);"
    ),
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：注册 SQL 函数 + 设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.create_function("casefold", 1, casefold, deterministic=True)

    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    for ddl in (
        _TASKS_DDL,
        _ASSIGNMENTS_DDL,
        _HISTORY_DDL,
        _COMMENTS_DDL,
        _NOTIFICATIONS_DDL,
    ):
        await conn.execute(ddl)

    # 创建索引
    for idx_sql in (
        _TASKS_INDEXES
        + _ASSIGNMENTS_INDEXES
        + _HISTORY_INDEXES
        + _COMMENTS_INDEXES
        + _NOTIFICATIONS_INDEXES
    ):
        await conn.execute(idx_sql)

    await conn.commit()
