"""TaskHub Core Queue -- 任务队列接口与进程内实现"""

from .memory_queue import InMemoryJobQueue, Job
from .protocols import JobHandler, JobOptions, JobQueue

__all__ = [
    "JobQueue",
    "JobOptions",
    "JobHandler",
    "Job",
    "InMemoryJobQueue",
]
