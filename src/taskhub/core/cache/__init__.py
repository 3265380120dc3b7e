"""TaskHub Core Cache -- 缓存接口、进程内实现与键规则"""

from .keys import status_counts_key, user_tasks_key, user_tasks_pattern
from .memory_cache import MemoryCache
from .protocols import CacheService

__all__ = [
    "CacheService",
    "MemoryCache",
    "user_tasks_key",
    "user_tasks_pattern",
    "status_counts_key",
]
