"""TaskCleanupProcessor -- 任务删除后的级联清理"""

import asyncio
from typing import Any

import structlog
from taskhub.core.models import JobName, TaskCleanupJob
from taskhub.core.store import StoreGroup

from .job_payload import parse_job_payload

log = structlog.get_logger()


class TaskCleanupProcessor:
    """cleanup_task_resources 队列 processor

    并发删除任务的分配关系、历史与评论。各删除天然幂等，失败时整体重试即可。
    """

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def process_task_cleanup(self, payload: dict[str, Any]) -> None:
        job = parse_job_payload(TaskCleanupJob, JobName.CLEANUP_TASK_RESOURCES, payload)

        assignments, history, comments = await asyncio.gather(
            self._stores.assignment_store.delete_for_task(job.task_id),
            self._stores.history_store.delete_for_task(job.task_id),
            self._stores.comment_store.delete_for_task(job.task_id),
        )
        log.info(
            "task_resources_cleaned",
            task_id=job.task_id,
            assignments=assignments,
            history=history,
            comments=comments,
        )
