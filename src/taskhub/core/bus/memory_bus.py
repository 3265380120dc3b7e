"""InMemoryMessageBus -- 进程内 topic 广播器

publish 不等待 handler：每个订阅者的投递在独立的 asyncio.Task 中执行。
handler 抛出异常时立即重新投递，最多 max_deliveries 次，之后记录并丢弃。
"""

import asyncio
import json
from collections import defaultdict
from typing import Any

import structlog

from .protocols import MessageHandler

log = structlog.get_logger()


class InMemoryMessageBus:
    """MessageBus 的进程内实现"""

    def __init__(self, max_deliveries: int = 3) -> None:
        # topic -> handlers
        self._subscribers: dict[str, list[MessageHandler]] = defaultdict(list)
        self._max_deliveries = max(1, max_deliveries)
        self._inflight: set[asyncio.Task] = set()
        self._closed = False
        self.dropped: list[tuple[str, dict[str, Any]]] = []

    async def subscribe(self, topic: str, handler: MessageHandler) -> None:
        """注册 handler

        Args:
            topic: 事件 topic
            handler: 接收消息副本的协程函数
        """
        self._subscribers[topic].append(handler)
        log.debug("bus_subscribed", topic=topic, subscriber_count=len(self._subscribers[topic]))

    async def publish(self, topic: str, message: dict[str, Any]) -> None:
        """发布消息

        Raises:
            RuntimeError: 总线已关闭
            TypeError: 消息不可 JSON 序列化
        """
        if self._closed:
            raise RuntimeError("message bus is closed")

        raw = json.dumps(message, ensure_ascii=False)
        handlers = list(self._subscribers.get(topic, []))
        for handler in handlers:
            # 每个订阅者拿到独立副本
            task = asyncio.create_task(self._deliver(topic, handler, json.loads(raw)))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

        log.debug("bus_published", topic=topic, subscriber_count=len(handlers))

    async def drain(self) -> None:
        """等待所有在途投递结束（含重新投递）"""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def close(self) -> None:
        """停止接受新消息并等待在途投递结束"""
        self._closed = True
        await self.drain()
        log.info("bus_closed", dropped=len(self.dropped))

    async def _deliver(
        self, topic: str, handler: MessageHandler, message: dict[str, Any]
    ) -> None:
        for delivery in range(1, self._max_deliveries + 1):
            try:
                await handler(message)
                return
            except Exception as e:
                log.warning(
                    "bus_handler_failed",
                    topic=topic,
                    delivery=delivery,
                    error_type=type(e).__name__,
                    error=str(e),
                )
        log.error("bus_message_dropped", topic=topic, deliveries=self._max_deliveries)
        self.dropped.append((topic, message))
