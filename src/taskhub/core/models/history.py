"""TaskHistory Domain Model

历史表 append-only，写入后不可修改；
仅在 Task 删除后由清理任务整体移除。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import HistoryAction


class TaskHistory(BaseModel):
    """TaskHistory 数据模型"""

    history_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID")
    user_id: str = Field(description="操作者 user_id")
    action: HistoryAction = Field(description="动作类型")
    previous_value: str | None = Field(default=None, description="变更前的值")
    new_value: str | None = Field(default=None, description="变更后的值")
    timestamp: datetime = Field(description="记录时间")
    metadata: dict[str, Any] | None = Field(default=None, description="附加信息")
