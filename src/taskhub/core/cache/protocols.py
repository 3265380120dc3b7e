"""CacheService Protocol 接口定义

缓存只是性能层，从不作为事实来源：任何时刻缓存为空，系统行为都必须正确。
"""

from typing import Any, Protocol


class CacheService(Protocol):
    """键值缓存接口 -- 值为可 JSON 序列化的数据"""

    async def get(self, key: str) -> Any | None:
        """读取缓存，不存在或已过期返回 None"""
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """写入缓存并设置 TTL"""
        ...

    async def delete(self, key: str) -> None:
        """删除单个键"""
        ...

    async def delete_pattern(self, pattern: str) -> None:
        """按 glob 模式（如 "user-tasks:u1:*"）批量删除；字面元字符写作 [*] [?] [[]"""
        ...
