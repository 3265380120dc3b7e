"""TaskHub Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .assignment import Assignment
from .comment import TaskComment
from .enums import (
    EventTopic,
    HistoryAction,
    JobName,
    NotificationType,
    TaskPriority,
    TaskStatus,
)
from .history import TaskHistory
from .notification import CommentRef, Notification, RelatedRef, TaskRef
from .payloads import (
    CreateNotificationJob,
    CreateNotificationsJob,
    DueDateReminderJob,
    TaskCleanupJob,
    TaskCreatedPayload,
    TaskStatusChangedPayload,
    TaskUpdatedPayload,
)
from .query import Pagination, PaginationMeta, PaginationResult, TaskFilter
from .task import Task, TaskDraft, TaskPatch, TaskWithAssignees

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "HistoryAction",
    "NotificationType",
    "EventTopic",
    "JobName",
    # Task
    "Task",
    "TaskDraft",
    "TaskPatch",
    "TaskWithAssignees",
    # 关联实体
    "Assignment",
    "TaskHistory",
    "TaskComment",
    # Notification
    "Notification",
    "RelatedRef",
    "TaskRef",
    "CommentRef",
    # 查询
    "TaskFilter",
    "Pagination",
    "PaginationMeta",
    "PaginationResult",
    # Payloads
    "TaskCreatedPayload",
    "TaskUpdatedPayload",
    "TaskStatusChangedPayload",
    "CreateNotificationJob",
    "CreateNotificationsJob",
    "TaskCleanupJob",
    "DueDateReminderJob",
]
