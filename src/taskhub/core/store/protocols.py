"""Store Protocol 接口定义

定义各实体存储的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import datetime
from typing import Any, Protocol

from ..models.assignment import Assignment
from ..models.comment import TaskComment
from ..models.history import TaskHistory
from ..models.notification import Notification
from ..models.query import Pagination, PaginationResult, TaskFilter
from ..models.task import Task


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> Task: ...

    async def get_task(self, task_id: str) -> Task | None: ...

    async def update_task(
        self,
        task_id: str,
        changes: dict[str, Any],
        updated_at: datetime,
    ) -> Task | None: ...

    async def delete_task(self, task_id: str) -> bool: ...

    async def find_tasks_for_user(
        self,
        user_id: str,
        task_filter: TaskFilter,
        pagination: Pagination,
    ) -> PaginationResult[Task]: ...

    async def count_tasks_by_status(self, user_id: str) -> dict[str, int]: ...


class AssignmentStore(Protocol):
    """Assignment 存储接口 -- 按 task_id / user_id 双向索引"""

    async def get_assignment(self, task_id: str, user_id: str) -> Assignment | None: ...

    async def assign_task_to_user(
        self,
        task_id: str,
        user_id: str,
        assigned_by: str,
    ) -> tuple[Assignment, bool]: ...

    async def remove_task_from_user(self, task_id: str, user_id: str) -> bool: ...

    async def find_users_by_task_id(self, task_id: str) -> list[str]: ...

    async def delete_for_task(self, task_id: str) -> int: ...


class HistoryStore(Protocol):
    """TaskHistory 存储接口 -- append-only"""

    async def append_history(self, record: TaskHistory) -> TaskHistory: ...

    async def find_task_history(self, task_id: str) -> list[TaskHistory]: ...

    async def delete_for_task(self, task_id: str) -> int: ...


class CommentStore(Protocol):
    """TaskComment 存储接口"""

    async def create_comment(self, comment: TaskComment) -> TaskComment: ...

    async def find_task_comments(
        self,
        task_id: str,
        page: int,
        limit: int,
    ) -> PaginationResult[TaskComment]: ...

    async def delete_for_task(self, task_id: str) -> int: ...


class NotificationStore(Protocol):
    """Notification 存储接口"""

    async def create_notification(self, notification: Notification) -> Notification: ...

    async def get_notification(self, notification_id: str) -> Notification | None: ...

    async def find_user_notifications(
        self,
        user_id: str,
        page: int,
        limit: int,
        only_unread: bool = False,
    ) -> PaginationResult[Notification]: ...

    async def mark_as_read(self, notification_id: str) -> bool: ...

    async def mark_all_as_read(self, user_id: str) -> int: ...
