"""MemoryCache -- 进程内 TTL 缓存

值以 JSON 文本存放，与网络缓存的序列化语义一致：
读出的是副本，调用方修改返回值不会污染缓存。
"""

import json
import time
from collections.abc import Callable
from fnmatch import fnmatchcase
from typing import Any


class MemoryCache:
    """CacheService 的进程内实现"""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        # key -> (expires_at, json 文本)
        self._data: dict[str, tuple[float, str]] = {}
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if expires_at <= self._clock():
            self._data.pop(key, None)
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        raw = json.dumps(value, ensure_ascii=False)
        self._data[key] = (self._clock() + max(1, int(ttl_seconds)), raw)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        for key in [k for k in self._data if fnmatchcase(k, pattern)]:
            del self._data[key]

    def keys(self) -> list[str]:
        """当前未过期的全部键"""
        now = self._clock()
        return [k for k, (expires_at, _) in self._data.items() if expires_at > now]
