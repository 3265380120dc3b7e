"""枚举定义

包含 TaskStatus、TaskPriority、HistoryAction、NotificationType，
以及消息总线主题 EventTopic 和队列名 JobName。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态 -- 不设状态机，任意状态之间可自由切换"""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


class TaskPriority(StrEnum):
    """Task 优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class HistoryAction(StrEnum):
    """历史记录动作类型"""

    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    DELETED = "deleted"


class NotificationType(StrEnum):
    """通知类型"""

    TASK_ASSIGNED = "task_assigned"
    TASK_UPDATED = "task_updated"
    COMMENT_ADDED = "comment_added"
    DEADLINE_REMINDER = "deadline_reminder"


class EventTopic(StrEnum):
    """消息总线主题"""

    TASK_CREATED = "task.created"
    TASK_UPDATED = "task.updated"
    TASK_STATUS_CHANGED = "task.status.changed"


class JobName(StrEnum):
    """后台任务队列名"""

    CREATE_NOTIFICATION = "create_notification"
    CREATE_NOTIFICATIONS = "create_notifications"
    CLEANUP_TASK_RESOURCES = "cleanup_task_resources"
    SEND_DUE_DATE_REMINDER = "send_due_date_reminder"
