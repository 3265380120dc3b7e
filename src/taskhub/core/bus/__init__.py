"""TaskHub Core Bus -- 领域事件总线"""

from .memory_bus import InMemoryMessageBus
from .protocols import MessageBus, MessageHandler

__all__ = [
    "MessageBus",
    "MessageHandler",
    "InMemoryMessageBus",
]
