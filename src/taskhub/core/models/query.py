"""列表查询参数与分页结果"""

import math
from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from .enums import TaskStatus

T = TypeVar("T")


class TaskFilter(BaseModel):
    """任务列表筛选条件

    status 精确匹配；due_from/due_to 对截止时间做闭区间筛选；
    search 对 title 或 description 做大小写不敏感的子串匹配。
    """

    status: TaskStatus | None = None
    due_from: datetime | None = None
    due_to: datetime | None = None
    search: str | None = None


class Pagination(BaseModel):
    """分页与排序参数"""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort: dict[str, Literal[1, -1]] = Field(default_factory=lambda: {"due_date": 1})

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class PaginationMeta(BaseModel):
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total_count: int
    total_pages: int


class PaginationResult(BaseModel, Generic[T]):
    """分页结果"""

    data: list[T]
    pagination: PaginationMeta

    @classmethod
    def build(cls, data: list[T], page: int, limit: int, total_count: int):
        return cls(
            data=data,
            pagination=PaginationMeta(
                page=page,
                limit=limit,
                total_count=total_count,
                total_pages=math.ceil(total_count / limit) if limit > 0 else 0,
            ),
        )
