"""缓存键规则

键由 操作名 + 主体 ID + 筛选/分页参数的规范化 JSON 组成，
同样的参数总是得到同样的键；按用户前缀可一次性失效其全部列表变体。
"""

import json
import re

from ..models.query import Pagination, TaskFilter

USER_TASKS_PREFIX = "user-tasks"
STATUS_COUNTS_PREFIX = "task-status-counts"


def _canonical(data: dict) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def user_tasks_key(user_id: str, task_filter: TaskFilter, pagination: Pagination) -> str:
    """用户任务列表查询的缓存键"""
    filter_part = _canonical(task_filter.model_dump(mode="json", exclude_none=True))
    page_part = _canonical(pagination.model_dump(mode="json"))
    return f"{USER_TASKS_PREFIX}:{user_id}:{filter_part}:{page_part}"


def _glob_escape(text: str) -> str:
    # 元字符放进单字符集合：[*] [?] [[]
    return re.sub(r"([*?\[])", r"[\1]", text)


def user_tasks_pattern(user_id: str) -> str:
    """匹配某用户全部列表查询变体的模式，user_id 中的 glob 元字符按字面匹配"""
    return f"{USER_TASKS_PREFIX}:{_glob_escape(user_id)}:*"


def status_counts_key(user_id: str) -> str:
    """用户状态计数的缓存键"""
    return f"{STATUS_COUNTS_PREFIX}:{user_id}"
