"""TaskService -- 任务变更编排

每个变更操作的顺序：
1. 写入主实体（Task / Assignment / Comment）
2. 追加历史记录
3. 调整分配关系
4. 失效受影响用户的缓存视图
5. 投递通知任务
6. 发布领域事件

主实体写入之后的任何下游失败都会原样抛给调用方（主写入不回滚），
唯一的例外是缓存失效：记录日志后忽略。
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from taskhub.core.bus import MessageBus
from taskhub.core.cache import CacheService, status_counts_key, user_tasks_key
from taskhub.core.config import DEFAULT_CACHE_TTL_S
from taskhub.core.exceptions import TaskNotFoundError
from taskhub.core.models import (
    CommentRef,
    CreateNotificationJob,
    EventTopic,
    HistoryAction,
    JobName,
    NotificationType,
    Pagination,
    PaginationResult,
    RelatedRef,
    Task,
    TaskCleanupJob,
    TaskComment,
    TaskCreatedPayload,
    TaskDraft,
    TaskFilter,
    TaskHistory,
    TaskPatch,
    TaskRef,
    TaskStatusChangedPayload,
    TaskUpdatedPayload,
    TaskWithAssignees,
)
from taskhub.core.queue import JobQueue
from taskhub.core.store import StoreGroup
from ulid import ULID

from .cache_policy import invalidate_user_views

log = structlog.get_logger()


class TaskService:
    """任务变更编排服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        cache: CacheService,
        job_queue: JobQueue,
        bus: MessageBus,
        cache_ttl_s: int = DEFAULT_CACHE_TTL_S,
    ) -> None:
        self._stores = store_group
        self._cache = cache
        self._job_queue = job_queue
        self._bus = bus
        self._cache_ttl_s = cache_ttl_s

    # ---- 变更操作 ----

    async def create_task(self, data: TaskDraft, created_by: str) -> Task:
        """创建任务

        assignees 不写入 tasks 表：任务落盘后逐个并发建立分配关系，
        最后发布 task.created。

        Args:
            data: 创建输入
            created_by: 创建者 user_id

        Returns:
            落盘后的 Task
        """
        now = datetime.now(UTC)
        task = Task(
            task_id=str(ULID()),
            created_by=created_by,
            created_at=now,
            updated_at=now,
            **data.model_dump(exclude={"assignees"}),
        )
        task = await self._stores.task_store.create_task(task)

        await self._record(
            task.task_id, created_by, HistoryAction.CREATED, new_value=task.title
        )

        assignees = list(dict.fromkeys(data.assignees or []))
        if assignees:
            await asyncio.gather(
                *(
                    self.assign_task_to_user(task.task_id, user_id, created_by)
                    for user_id in assignees
                )
            )

        payload = TaskCreatedPayload(
            task_id=task.task_id,
            title=task.title,
            description=task.description,
            due_date=task.due_date.isoformat(),
            created_by=created_by,
            assignees=assignees,
            timestamp=now.isoformat(),
        )
        await self._bus.publish(EventTopic.TASK_CREATED, payload.to_wire())

        log.info("task_created", task_id=task.task_id, assignee_count=len(assignees))
        return task

    async def update_task(
        self,
        task_id: str,
        patch: TaskPatch,
        acting_user_id: str,
    ) -> Task | None:
        """更新任务

        Raises:
            TaskNotFoundError: 任务不存在

        Returns:
            更新后的 Task；更新过程中任务被并发删除时返回 None
        """
        current = await self._stores.task_store.get_task(task_id)
        if current is None:
            raise TaskNotFoundError(task_id)

        changes = patch.changes()
        is_status_change = patch.status is not None and patch.status != current.status
        now = datetime.now(UTC)

        updated = await self._stores.task_store.update_task(task_id, changes, now)
        if updated is None:
            log.warning("task_vanished_during_update", task_id=task_id)
            return None

        updated_fields = [to_camel(name) for name in changes]
        if is_status_change:
            await self._record(
                task_id,
                acting_user_id,
                HistoryAction.STATUS_CHANGED,
                previous_value=current.status.value,
                new_value=updated.status.value,
            )
        else:
            await self._record(
                task_id,
                acting_user_id,
                HistoryAction.UPDATED,
                metadata={"updatedFields": updated_fields},
            )

        assignees = await self._stores.assignment_store.find_users_by_task_id(task_id)
        if patch.has_assignees():
            await self._reconcile_assignees(
                task_id, assignees, patch.assignees or [], acting_user_id
            )
            assignees = await self._stores.assignment_store.find_users_by_task_id(task_id)

        content = f'Task "{updated.title}" has been updated'
        await asyncio.gather(
            *(
                self._enqueue_notification(
                    user_id, NotificationType.TASK_UPDATED, content, TaskRef(id=task_id)
                )
                for user_id in assignees
            ),
            invalidate_user_views(self._cache, assignees),
        )

        timestamp = now.isoformat()
        updated_payload = TaskUpdatedPayload(
            task_id=task_id,
            title=updated.title,
            description=updated.description,
            status=updated.status,
            previous_status=current.status if is_status_change else None,
            due_date=updated.due_date.isoformat(),
            updated_by=acting_user_id,
            updated_fields=updated_fields,
            assignees=assignees,
            timestamp=timestamp,
        )
        await self._bus.publish(EventTopic.TASK_UPDATED, updated_payload.to_wire())

        if is_status_change:
            status_payload = TaskStatusChangedPayload(
                task_id=task_id,
                title=updated.title,
                previous_status=current.status,
                new_status=updated.status,
                updated_by=acting_user_id,
                timestamp=timestamp,
            )
            await self._bus.publish(EventTopic.TASK_STATUS_CHANGED, status_payload.to_wire())

        log.info(
            "task_updated",
            task_id=task_id,
            updated_fields=updated_fields,
            status_changed=is_status_change,
        )
        return updated

    async def delete_task(self, task_id: str) -> bool:
        """删除任务

        关联数据（分配/历史/评论）的清理量无上限，交给 cleanup 队列异步执行。
        负责人列表必须在删除前取出，删除后用于失效缓存。
        """
        assignees = await self._stores.assignment_store.find_users_by_task_id(task_id)

        deleted = await self._stores.task_store.delete_task(task_id)
        if not deleted:
            return False

        await self._job_queue.add_job(
            JobName.CLEANUP_TASK_RESOURCES,
            TaskCleanupJob(task_id=task_id).to_wire(),
        )
        await invalidate_user_views(self._cache, assignees)

        log.info("task_deleted", task_id=task_id, assignee_count=len(assignees))
        return True

    async def assign_task_to_user(self, task_id: str, user_id: str, assigned_by: str) -> bool:
        """分配任务（幂等：重复分配不会产生第二条关系）

        Raises:
            TaskNotFoundError: 任务不存在
        """
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        _, created = await self._stores.assignment_store.assign_task_to_user(
            task_id, user_id, assigned_by
        )
        await self._record(task_id, assigned_by, HistoryAction.ASSIGNED, new_value=user_id)

        await asyncio.gather(
            self._enqueue_notification(
                user_id,
                NotificationType.TASK_ASSIGNED,
                f'You have been assigned to task "{task.title}"',
                TaskRef(id=task_id),
            ),
            invalidate_user_views(self._cache, [user_id]),
        )

        log.info("task_assigned", task_id=task_id, user_id=user_id, created=created)
        return True

    async def remove_task_from_user(
        self,
        task_id: str,
        user_id: str,
        removed_by: str | None = None,
    ) -> bool:
        """取消分配

        Args:
            removed_by: 执行取消的 user_id；提供时追加 unassigned 历史

        Returns:
            关系不存在时返回 False
        """
        removed = await self._stores.assignment_store.remove_task_from_user(task_id, user_id)
        if not removed:
            return False

        if removed_by is not None:
            await self._record(
                task_id, removed_by, HistoryAction.UNASSIGNED, previous_value=user_id
            )
        await invalidate_user_views(self._cache, [user_id])

        log.info("task_unassigned", task_id=task_id, user_id=user_id)
        return True

    async def add_comment(self, task_id: str, user_id: str, text: str) -> TaskComment:
        """添加评论，并通知除作者外的全部负责人

        Raises:
            TaskNotFoundError: 任务不存在
        """
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        now = datetime.now(UTC)
        comment = TaskComment(
            comment_id=str(ULID()),
            task_id=task_id,
            user_id=user_id,
            text=text,
            created_at=now,
            updated_at=now,
        )
        comment = await self._stores.comment_store.create_comment(comment)

        assignees = await self._stores.assignment_store.find_users_by_task_id(task_id)
        recipients = [a for a in assignees if a != user_id]
        content = f'New comment on task "{task.title}"'
        await asyncio.gather(
            *(
                self._enqueue_notification(
                    recipient,
                    NotificationType.COMMENT_ADDED,
                    content,
                    CommentRef(id=comment.comment_id),
                )
                for recipient in recipients
            )
        )

        log.info(
            "comment_added",
            task_id=task_id,
            comment_id=comment.comment_id,
            notified=len(recipients),
        )
        return comment

    # ---- 查询操作 ----

    async def get_task_by_id(self, task_id: str) -> TaskWithAssignees | None:
        """读取任务及其当前负责人；不存在返回 None"""
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            return None
        assignees = await self._stores.assignment_store.find_users_by_task_id(task_id)
        return TaskWithAssignees(**task.model_dump(), assignees=assignees)

    async def get_user_tasks(
        self,
        user_id: str,
        task_filter: TaskFilter | None = None,
        pagination: Pagination | None = None,
    ) -> PaginationResult[Task]:
        """用户任务列表（缓存优先）"""
        task_filter = task_filter or TaskFilter()
        pagination = pagination or Pagination()
        key = user_tasks_key(user_id, task_filter, pagination)

        cached = await self._cache_get(key)
        if cached is not None:
            try:
                return PaginationResult[Task].model_validate(cached)
            except ValidationError:
                log.warning("cache_payload_invalid", key=key)

        result = await self._stores.task_store.find_tasks_for_user(
            user_id, task_filter, pagination
        )
        await self._cache_set(key, result.model_dump(mode="json"))
        return result

    async def get_task_status_counts(self, user_id: str) -> dict[str, int]:
        """用户负责任务的按状态计数（缓存优先）"""
        key = status_counts_key(user_id)
        cached = await self._cache_get(key)
        if isinstance(cached, dict):
            return cached

        counts = await self._stores.task_store.count_tasks_by_status(user_id)
        await self._cache_set(key, counts)
        return counts

    async def get_task_comments(
        self, task_id: str, page: int = 1, limit: int = 10
    ) -> PaginationResult[TaskComment]:
        """任务评论列表，最新在前；page / limit 越界时抛出 ValidationError"""
        pagination = Pagination(page=page, limit=limit)
        return await self._stores.comment_store.find_task_comments(
            task_id, pagination.page, pagination.limit
        )

    async def get_task_history(self, task_id: str) -> list[TaskHistory]:
        return await self._stores.history_store.find_task_history(task_id)

    # ---- 内部辅助 ----

    async def _reconcile_assignees(
        self,
        task_id: str,
        current: list[str],
        requested: list[str],
        acting_user_id: str,
    ) -> None:
        """按集合差调整分配关系：R - C 新增，C - R 移除，并发执行"""
        current_set = set(current)
        requested_set = set(requested)
        to_add = [u for u in dict.fromkeys(requested) if u not in current_set]
        to_remove = [u for u in current if u not in requested_set]

        await asyncio.gather(
            *(self.assign_task_to_user(task_id, u, acting_user_id) for u in to_add),
            *(self.remove_task_from_user(task_id, u, removed_by=acting_user_id) for u in to_remove),
        )
        log.debug(
            "assignees_reconciled",
            task_id=task_id,
            added=to_add,
            removed=to_remove,
        )

    async def _record(
        self,
        task_id: str,
        user_id: str,
        action: HistoryAction,
        previous_value: str | None = None,
        new_value: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TaskHistory:
        record = TaskHistory(
            history_id=str(ULID()),
            task_id=task_id,
            user_id=user_id,
            action=action,
            previous_value=previous_value,
            new_value=new_value,
            timestamp=datetime.now(UTC),
            metadata=metadata,
        )
        return await self._stores.history_store.append_history(record)

    async def _enqueue_notification(
        self,
        user_id: str,
        notification_type: NotificationType,
        content: str,
        related_to: RelatedRef,
    ) -> None:
        job = CreateNotificationJob(
            user_id=user_id,
            type=notification_type,
            content=content,
            related_to=related_to,
        )
        await self._job_queue.add_job(JobName.CREATE_NOTIFICATION, job.to_wire())

    async def _cache_get(self, key: str) -> Any | None:
        try:
            return await self._cache.get(key)
        except Exception as e:
            log.warning("cache_read_failed", key=key, error_type=type(e).__name__)
            return None

    async def _cache_set(self, key: str, value: Any) -> None:
        try:
            await self._cache.set(key, value, self._cache_ttl_s)
        except Exception as e:
            log.warning("cache_write_failed", key=key, error_type=type(e).__name__)
