"""MessageBus Protocol 接口定义"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

MessageHandler = Callable[[dict[str, Any]], Awaitable[None]]


class MessageBus(Protocol):
    """按 topic 的发布/订阅接口

    消息必须可 JSON 序列化；handler 失败会被重新投递，因此 handler 需要幂等。
    """

    async def publish(self, topic: str, message: dict[str, Any]) -> None:
        """向 topic 发布消息"""
        ...

    async def subscribe(self, topic: str, handler: MessageHandler) -> None:
        """为 topic 注册 handler"""
        ...
