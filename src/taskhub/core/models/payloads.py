"""领域事件与后台任务的 payload 定义

线上格式统一使用 camelCase（alias），Python 侧使用 snake_case 字段名。
序列化请使用 to_wire()，保证结果可直接 JSON 编码。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import NotificationType, TaskStatus
from .notification import RelatedRef


class WireModel(BaseModel):
    """camelCase 线上格式基类"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---- 消息总线事件 ----


class TaskCreatedPayload(WireModel):
    """task.created 事件 payload"""

    task_id: str
    title: str
    description: str
    due_date: str = Field(description="ISO-8601")
    created_by: str
    assignees: list[str]
    timestamp: str = Field(description="ISO-8601")


class TaskUpdatedPayload(WireModel):
    """task.updated 事件 payload

    携带足够字段，订阅方无需回查存储。
    """

    task_id: str
    title: str
    description: str
    status: TaskStatus
    previous_status: TaskStatus | None = None
    due_date: str
    updated_by: str
    updated_fields: list[str] = Field(description="本次更新的字段名（camelCase）")
    assignees: list[str]
    timestamp: str


class TaskStatusChangedPayload(WireModel):
    """task.status.changed 事件 payload"""

    task_id: str
    title: str
    previous_status: TaskStatus
    new_status: TaskStatus
    updated_by: str
    timestamp: str


# ---- 队列任务 ----


class CreateNotificationJob(WireModel):
    """create_notification 队列任务"""

    user_id: str
    type: NotificationType
    content: str
    related_to: RelatedRef


class CreateNotificationsJob(WireModel):
    """create_notifications 队列任务（多接收者）"""

    user_ids: list[str]
    type: NotificationType
    content: str
    related_to: RelatedRef


class TaskCleanupJob(WireModel):
    """cleanup_task_resources 队列任务"""

    task_id: str


class DueDateReminderJob(WireModel):
    """send_due_date_reminder 队列任务"""

    task_id: str
