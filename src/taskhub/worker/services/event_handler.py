"""TaskEventHandler -- 领域事件消费与截止提醒

- 订阅 task.created / task.updated，按截止时间投递延迟提醒任务
- 作为 send_due_date_reminder 队列的 processor，为每个负责人生成提醒通知

重新排期只是"再投递一个新的延迟任务"，默认不会取消之前的提醒；
开启 reminder_dedupe 后按 task_id 生成固定 job_id，由队列替换未触发的旧任务。
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from taskhub.core.models import (
    DueDateReminderJob,
    JobName,
    Notification,
    NotificationType,
    TaskCreatedPayload,
    TaskRef,
    TaskUpdatedPayload,
)
from taskhub.core.queue import JobOptions, JobQueue
from taskhub.core.store import StoreGroup
from ulid import ULID

from .job_payload import parse_job_payload

log = structlog.get_logger()

REMINDER_ATTEMPTS = 3


def _utc_now() -> datetime:
    return datetime.now(UTC)


def reminder_job_id(task_id: str) -> str:
    return f"due-reminder:{task_id}"


class TaskEventHandler:
    """任务事件处理器"""

    def __init__(
        self,
        store_group: StoreGroup,
        job_queue: JobQueue,
        reminder_lead: timedelta = timedelta(days=1),
        dedupe_reminders: bool = False,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._stores = store_group
        self._job_queue = job_queue
        self._reminder_lead = reminder_lead
        self._dedupe = dedupe_reminders
        self._clock = clock

    async def handle_task_created(self, message: dict[str, Any]) -> None:
        """task.created：为新任务安排截止提醒"""
        payload = TaskCreatedPayload.model_validate(message)
        await self.schedule_due_date_reminder(payload.task_id, payload.due_date)

    async def handle_task_updated(self, message: dict[str, Any]) -> None:
        """task.updated：仅当截止时间变化时重新安排提醒"""
        payload = TaskUpdatedPayload.model_validate(message)
        if "dueDate" not in payload.updated_fields:
            return
        await self.schedule_due_date_reminder(payload.task_id, payload.due_date)

    async def schedule_due_date_reminder(self, task_id: str, due_date: str) -> float:
        """投递延迟提醒任务

        提醒时间 = 截止时间 - 提前量；已过或不足提前量时立即触发。

        Returns:
            延迟秒数
        """
        due = datetime.fromisoformat(due_date)
        if due.tzinfo is None:
            due = due.replace(tzinfo=UTC)
        delay = max(0.0, (due - self._reminder_lead - self._clock()).total_seconds())

        options = JobOptions(
            delay=delay,
            attempts=REMINDER_ATTEMPTS,
            job_id=reminder_job_id(task_id) if self._dedupe else None,
        )
        await self._job_queue.add_job(
            JobName.SEND_DUE_DATE_REMINDER,
            DueDateReminderJob(task_id=task_id).to_wire(),
            options,
        )
        log.info("due_date_reminder_scheduled", task_id=task_id, delay_s=delay)
        return delay

    async def send_due_date_reminder(self, payload: dict[str, Any]) -> None:
        """send_due_date_reminder 队列 processor

        任务已删除或没有负责人都属于正常结果：记录告警后返回。
        """
        job = parse_job_payload(DueDateReminderJob, JobName.SEND_DUE_DATE_REMINDER, payload)

        task = await self._stores.task_store.get_task(job.task_id)
        if task is None:
            log.warning("reminder_task_missing", task_id=job.task_id)
            return

        assignees = await self._stores.assignment_store.find_users_by_task_id(job.task_id)
        if not assignees:
            log.warning("reminder_no_assignees", task_id=job.task_id)
            return

        now = self._clock()
        content = f'Reminder: Task "{task.title}" is due tomorrow'
        await asyncio.gather(
            *(
                self._stores.notification_store.create_notification(
                    Notification(
                        notification_id=str(ULID()),
                        user_id=user_id,
                        type=NotificationType.DEADLINE_REMINDER,
                        content=content,
                        related_to=TaskRef(id=task.task_id),
                        created_at=now,
                    )
                )
                for user_id in assignees
            )
        )
        log.info("due_date_reminder_sent", task_id=job.task_id, recipients=len(assignees))
