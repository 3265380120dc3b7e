"""InMemoryJobQueue -- 基于 asyncio 的进程内任务队列

- 延迟任务由定时协程到期后放入就绪队列
- 固定数量的 worker 协程按 (priority, 入队顺序) 消费就绪队列
- processor 失败后按 backoff_s * 2^(n-1) 退避重试，耗尽后记入 failed_jobs
- 队列尚未注册 processor 的任务会暂存，注册时再放行
"""

import asyncio
import itertools
import json
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, Field
from ulid import ULID

from .protocols import JobHandler, JobOptions

log = structlog.get_logger()


class Job(BaseModel):
    """队列中的一个任务及其投递状态"""

    job_id: str
    queue_name: str
    payload: dict[str, Any]
    priority: int = 0
    max_attempts: int
    backoff_s: float
    attempts_made: int = 0
    last_error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class InMemoryJobQueue:
    """JobQueue 的进程内实现"""

    def __init__(
        self,
        default_attempts: int = 3,
        backoff_s: float = 1.0,
        concurrency: int = 4,
    ) -> None:
        self._default_attempts = default_attempts
        self._backoff_s = backoff_s
        self._concurrency = concurrency

        self._processors: dict[str, JobHandler] = {}
        self._ready: asyncio.PriorityQueue[tuple[int, int, Job]] = asyncio.PriorityQueue()
        self._parked: dict[str, list[Job]] = defaultdict(list)
        self._timers: dict[str, asyncio.Task] = {}
        self._workers: list[asyncio.Task] = []
        self._seq = itertools.count()

        self._outstanding = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False

        self.failed_jobs: list[Job] = []
        self.completed_count = 0

    async def start(self) -> None:
        """启动 worker 协程（重复调用无副作用）"""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(), name=f"job-worker-{i}")
            for i in range(self._concurrency)
        ]
        log.info("job_queue_started", concurrency=self._concurrency)

    async def add_job(
        self,
        queue_name: str,
        payload: dict[str, Any],
        options: JobOptions | None = None,
    ) -> str:
        """投递任务

        payload 经过一次 JSON 往返，保证与网络队列同样只接受可序列化数据。
        """
        if self._closed:
            raise RuntimeError("job queue is closed")

        opts = options or JobOptions()
        job = Job(
            job_id=opts.job_id or str(ULID()),
            queue_name=queue_name,
            payload=json.loads(json.dumps(payload)),
            priority=opts.priority,
            max_attempts=opts.attempts or self._default_attempts,
            backoff_s=self._backoff_s if opts.backoff_s is None else opts.backoff_s,
        )

        previous = self._timers.pop(job.job_id, None)
        if previous is not None:
            # 同键任务尚未到期：替换而不是叠加
            previous.cancel()
            log.info("job_replaced", queue=queue_name, job_id=job.job_id)
        else:
            self._track()

        self._schedule(job, opts.delay)
        log.debug(
            "job_added",
            queue=queue_name,
            job_id=job.job_id,
            delay_s=opts.delay,
            attempts=job.max_attempts,
        )
        return job.job_id

    def register_processor(self, queue_name: str, handler: JobHandler) -> None:
        """注册 processor，并放行此前暂存的任务"""
        self._processors[queue_name] = handler
        for job in self._parked.pop(queue_name, []):
            self._enqueue(job)
        log.debug("job_processor_registered", queue=queue_name)

    def pending_delayed(self) -> int:
        """尚未到期的延迟任务数"""
        return len(self._timers)

    async def drain(self, timeout: float | None = None) -> None:
        """等待全部已投递任务（含延迟与重试）结束"""
        await self.start()
        await asyncio.wait_for(self._idle.wait(), timeout)

    async def close(self, timeout: float = 5.0) -> None:
        """关闭队列：等待就绪与执行中的任务完成，丢弃未到期的延迟任务"""
        if self._closed:
            return
        self._closed = True

        if self._workers:
            try:
                await asyncio.wait_for(self._ready.join(), timeout)
            except TimeoutError:
                log.warning("job_queue_flush_timeout", remaining=self._ready.qsize())

        if self._timers:
            log.warning("delayed_jobs_dropped_on_close", count=len(self._timers))
        for timer in self._timers.values():
            timer.cancel()
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(
            *self._timers.values(), *self._workers, return_exceptions=True
        )
        self._timers.clear()
        self._workers.clear()
        log.info("job_queue_closed", failed=len(self.failed_jobs))

    def _schedule(self, job: Job, delay: float) -> None:
        if delay > 0:
            self._timers[job.job_id] = asyncio.create_task(self._release_later(job, delay))
        else:
            self._enqueue(job)

    async def _release_later(self, job: Job, delay: float) -> None:
        await asyncio.sleep(delay)
        self._timers.pop(job.job_id, None)
        self._enqueue(job)

    def _enqueue(self, job: Job) -> None:
        if job.queue_name not in self._processors:
            self._parked[job.queue_name].append(job)
            return
        self._ready.put_nowait((job.priority, next(self._seq), job))

    async def _worker(self) -> None:
        while True:
            _, _, job = await self._ready.get()
            try:
                await self._run(job)
            finally:
                self._ready.task_done()

    async def _run(self, job: Job) -> None:
        handler = self._processors[job.queue_name]
        job.attempts_made += 1
        try:
            await handler(job.payload)
        except Exception as e:
            job.last_error = f"{type(e).__name__}: {e}"
            if job.attempts_made < job.max_attempts:
                retry_delay = job.backoff_s * 2 ** (job.attempts_made - 1)
                log.warning(
                    "job_retry_scheduled",
                    queue=job.queue_name,
                    job_id=job.job_id,
                    attempt=job.attempts_made,
                    retry_in_s=retry_delay,
                    error_type=type(e).__name__,
                )
                self._schedule(job, retry_delay)
                return
            log.error(
                "job_failed",
                queue=job.queue_name,
                job_id=job.job_id,
                attempts=job.attempts_made,
                error=job.last_error,
            )
            self.failed_jobs.append(job)
            self._untrack()
            return

        self.completed_count += 1
        log.debug(
            "job_completed",
            queue=job.queue_name,
            job_id=job.job_id,
            attempt=job.attempts_made,
        )
        self._untrack()

    def _track(self) -> None:
        self._outstanding += 1
        self._idle.clear()

    def _untrack(self) -> None:
        self._outstanding -= 1
        if self._outstanding <= 0:
            self._outstanding = 0
            self._idle.set()
