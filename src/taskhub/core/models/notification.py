"""Notification Domain Model

related_to 使用带标签的联合类型（TaskRef | CommentRef），
按 kind 字段区分，而不是松散的 (model 名, id) 二元组。
通知只由队列 processor 创建，请求路径内从不同步写入。
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from .enums import NotificationType


class TaskRef(BaseModel):
    """指向 Task 的引用"""

    kind: Literal["Task"] = "Task"
    id: str


class CommentRef(BaseModel):
    """指向 TaskComment 的引用"""

    kind: Literal["TaskComment"] = "TaskComment"
    id: str


RelatedRef = Annotated[TaskRef | CommentRef, Field(discriminator="kind")]


class Notification(BaseModel):
    """Notification 数据模型"""

    notification_id: str = Field(description="唯一标识，ULID 格式")
    user_id: str = Field(description="接收者 user_id")
    type: NotificationType = Field(description="通知类型")
    content: str = Field(description="通知文本")
    related_to: RelatedRef = Field(description="关联对象引用")
    is_read: bool = Field(default=False, description="是否已读")
    created_at: datetime = Field(description="创建时间")
