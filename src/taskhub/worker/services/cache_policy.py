"""用户视图缓存的失效策略

任何可能改变"某用户能看到哪些任务"或"某任务状态"的操作，
都必须同时失效该用户的列表缓存（全部筛选/分页变体）与状态计数缓存。
失效失败只记录日志，不影响主写入。
"""

import asyncio
from collections.abc import Iterable

import structlog
from taskhub.core.cache import CacheService, status_counts_key, user_tasks_pattern

log = structlog.get_logger()


async def invalidate_user_views(cache: CacheService, user_ids: Iterable[str]) -> None:
    """并发失效一组用户的列表与计数缓存"""
    targets = list(dict.fromkeys(user_ids))
    if not targets:
        return

    ops = []
    for user_id in targets:
        ops.append(cache.delete_pattern(user_tasks_pattern(user_id)))
        ops.append(cache.delete(status_counts_key(user_id)))

    results = await asyncio.gather(*ops, return_exceptions=True)
    for index, result in enumerate(results):
        if isinstance(result, Exception):
            log.warning(
                "cache_invalidation_failed",
                user_id=targets[index // 2],
                error_type=type(result).__name__,
                error=str(result),
            )
