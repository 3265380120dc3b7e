"""NotificationProcessor -- 通知队列 processor

把 {userId, type, content, relatedTo} 请求翻译为 Notification 记录。
不含业务逻辑；异常交给队列重试。
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import structlog
from taskhub.core.models import (
    CreateNotificationJob,
    CreateNotificationsJob,
    JobName,
    Notification,
    NotificationType,
    RelatedRef,
)
from taskhub.core.store.protocols import NotificationStore
from ulid import ULID

from .job_payload import parse_job_payload

log = structlog.get_logger()


class NotificationProcessor:
    """通知落库 processor"""

    def __init__(self, notification_store: NotificationStore) -> None:
        self._notification_store = notification_store

    async def process_create_notification(self, payload: dict[str, Any]) -> None:
        job = parse_job_payload(CreateNotificationJob, JobName.CREATE_NOTIFICATION, payload)
        await self._create(job.user_id, job.type, job.content, job.related_to)

    async def process_create_notifications(self, payload: dict[str, Any]) -> None:
        job = parse_job_payload(CreateNotificationsJob, JobName.CREATE_NOTIFICATIONS, payload)
        await asyncio.gather(
            *(
                self._create(user_id, job.type, job.content, job.related_to)
                for user_id in dict.fromkeys(job.user_ids)
            )
        )

    async def _create(
        self,
        user_id: str,
        notification_type: NotificationType,
        content: str,
        related_to: RelatedRef,
    ) -> Notification:
        notification = Notification(
            notification_id=str(ULID()),
            user_id=user_id,
            type=notification_type,
            content=content,
            related_to=related_to,
            created_at=datetime.now(UTC),
        )
        notification = await self._notification_store.create_notification(notification)
        log.debug(
            "notification_created",
            notification_id=notification.notification_id,
            user_id=user_id,
            type=notification_type,
        )
        return notification
