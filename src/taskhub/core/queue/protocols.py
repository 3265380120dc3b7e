"""JobQueue Protocol 接口定义

至少一次投递：processor 抛出异常即按 attempts/退避策略重试，
重试耗尽的任务会被记录，而不是静默丢弃。
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pydantic import BaseModel, Field

JobHandler = Callable[[dict[str, Any]], Awaitable[None]]


class JobOptions(BaseModel):
    """单个任务的投递参数"""

    delay: float = Field(default=0.0, ge=0, description="延迟执行（秒）")
    attempts: int | None = Field(default=None, ge=1, description="最大尝试次数，None 使用队列默认值")
    priority: int = Field(default=0, description="数值越小越先执行")
    backoff_s: float | None = Field(default=None, ge=0, description="指数退避基数（秒）")
    job_id: str | None = Field(
        default=None,
        description="任务键；队列中尚未执行的同键任务会被替换",
    )


class JobQueue(Protocol):
    """后台任务队列接口"""

    async def add_job(
        self,
        queue_name: str,
        payload: dict[str, Any],
        options: JobOptions | None = None,
    ) -> str:
        """投递任务，返回 job_id"""
        ...

    def register_processor(self, queue_name: str, handler: JobHandler) -> None:
        """为队列注册 processor"""
        ...
