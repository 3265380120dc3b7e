"""Task Domain Model

Task 不直接保存负责人列表，负责人只通过 Assignment 关联表存在，
避免多对多关系下的数组并发修改问题。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskPriority, TaskStatus


class Task(BaseModel):
    """Task 数据模型"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="当前状态")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    due_date: datetime = Field(description="截止时间")
    created_by: str = Field(description="创建者 user_id")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


class TaskWithAssignees(Task):
    """Task 组合视图 -- 附带当前负责人 user_id 列表"""

    assignees: list[str] = Field(default_factory=list, description="负责人 user_id 列表")


class TaskDraft(BaseModel):
    """创建任务的输入数据

    assignees 不会写入 tasks 表，而是在任务落盘后逐个建立 Assignment。
    """

    title: str = Field(min_length=1)
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime
    assignees: list[str] | None = None


class TaskPatch(BaseModel):
    """更新任务的输入数据

    只有显式赋值的字段（model_fields_set）才视为"本次更新的字段"。
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    assignees: list[str] | None = None

    def changes(self) -> dict:
        """返回除 assignees 之外显式赋值且非 None 的字段（按字段声明顺序）"""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name != "assignees"
            and name in self.model_fields_set
            and getattr(self, name) is not None
        }

    def has_assignees(self) -> bool:
        return "assignees" in self.model_fields_set and self.assignees is not None
