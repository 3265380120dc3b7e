"""组件装配与关闭

create_components() 在进程启动时调用一次，返回绑定好的组件集合；
shutdown() 依次冲刷总线与队列，最后关闭数据库连接。
"""

from dataclasses import dataclass
from datetime import timedelta

import structlog
from taskhub.core.bus import InMemoryMessageBus
from taskhub.core.cache import MemoryCache
from taskhub.core.config import Settings, load_settings
from taskhub.core.queue import InMemoryJobQueue
from taskhub.core.store import StoreGroup, create_store_group

from .jobs import register_event_handlers, register_job_processors
from .services.cleanup_processor import TaskCleanupProcessor
from .services.event_handler import TaskEventHandler
from .services.notification_processor import NotificationProcessor
from .services.notification_service import NotificationService
from .services.task_service import TaskService

log = structlog.get_logger()


@dataclass
class Components:
    """进程级组件集合"""

    settings: Settings
    store_group: StoreGroup
    cache: MemoryCache
    job_queue: InMemoryJobQueue
    bus: InMemoryMessageBus
    task_service: TaskService
    notification_service: NotificationService
    event_handler: TaskEventHandler


async def create_components(settings: Settings | None = None) -> Components:
    """创建并连接全部组件

    Args:
        settings: 运行参数；None 时从环境变量加载

    Returns:
        已注册 processor、已订阅事件、队列已启动的 Components
    """
    settings = settings or load_settings()

    store_group = await create_store_group(settings.db_path)
    cache = MemoryCache()
    job_queue = InMemoryJobQueue(
        default_attempts=settings.job_attempts,
        backoff_s=settings.job_backoff_s,
        concurrency=settings.queue_concurrency,
    )
    bus = InMemoryMessageBus(max_deliveries=settings.bus_max_deliveries)

    task_service = TaskService(
        store_group, cache, job_queue, bus, cache_ttl_s=settings.cache_ttl_s
    )
    event_handler = TaskEventHandler(
        store_group,
        job_queue,
        reminder_lead=timedelta(hours=settings.reminder_lead_h),
        dedupe_reminders=settings.reminder_dedupe,
    )

    register_job_processors(
        job_queue,
        NotificationProcessor(store_group.notification_store),
        TaskCleanupProcessor(store_group),
        event_handler,
    )
    await register_event_handlers(bus, event_handler)
    await job_queue.start()

    log.info("components_initialized", db_path=settings.db_path)
    return Components(
        settings=settings,
        store_group=store_group,
        cache=cache,
        job_queue=job_queue,
        bus=bus,
        task_service=task_service,
        notification_service=NotificationService(store_group.notification_store),
        event_handler=event_handler,
    )


async def shutdown(components: Components) -> None:
    """关闭组件：先总线（其 handler 会投递任务），再队列，最后数据库"""
    await components.bus.close()
    await components.job_queue.close()
    await components.store_group.close()
    log.info("components_shutdown")
