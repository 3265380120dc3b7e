"""Assignment Domain Model -- user <-> task 多对多关联

(user_id, task_id) 组合唯一，由数据库唯一索引兜底。
两端实体都不持有反向引用，所有遍历都经由 user_id / task_id 索引。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Assignment(BaseModel):
    """Assignment 数据模型"""

    user_id: str = Field(description="负责人 user_id")
    task_id: str = Field(description="关联的 Task ID")
    assigned_at: datetime = Field(description="分配时间")
    assigned_by: str = Field(description="执行分配的 user_id")
