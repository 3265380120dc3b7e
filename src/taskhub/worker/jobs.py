"""队列 processor 与事件订阅的注册"""

import structlog
from taskhub.core.bus import MessageBus
from taskhub.core.models import EventTopic, JobName
from taskhub.core.queue import JobQueue

from .services.cleanup_processor import TaskCleanupProcessor
from .services.event_handler import TaskEventHandler
from .services.notification_processor import NotificationProcessor

log = structlog.get_logger()


def register_job_processors(
    job_queue: JobQueue,
    notification_processor: NotificationProcessor,
    cleanup_processor: TaskCleanupProcessor,
    event_handler: TaskEventHandler,
) -> None:
    """为全部后台队列注册 processor"""
    job_queue.register_processor(
        JobName.CREATE_NOTIFICATION, notification_processor.process_create_notification
    )
    job_queue.register_processor(
        JobName.CREATE_NOTIFICATIONS, notification_processor.process_create_notifications
    )
    job_queue.register_processor(
        JobName.CLEANUP_TASK_RESOURCES, cleanup_processor.process_task_cleanup
    )
    job_queue.register_processor(
        JobName.SEND_DUE_DATE_REMINDER, event_handler.send_due_date_reminder
    )
    log.info("job_processors_registered", count=4)


async def register_event_handlers(bus: MessageBus, event_handler: TaskEventHandler) -> None:
    """订阅领域事件"""
    await bus.subscribe(EventTopic.TASK_CREATED, event_handler.handle_task_created)
    await bus.subscribe(EventTopic.TASK_UPDATED, event_handler.handle_task_updated)
    log.info("event_handlers_registered", topics=[EventTopic.TASK_CREATED, EventTopic.TASK_UPDATED])
