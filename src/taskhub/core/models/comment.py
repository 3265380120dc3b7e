"""TaskComment Domain Model"""

from datetime import datetime

from pydantic import BaseModel, Field


class TaskComment(BaseModel):
    """TaskComment 数据模型"""

    comment_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID")
    user_id: str = Field(description="评论作者 user_id")
    text: str = Field(min_length=1, description="评论内容")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
