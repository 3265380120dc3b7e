"""TaskHub 异常体系

"不存在"在查询类操作里是正常结果（返回 None/False），
只有在必须依赖目标存在的变更操作里才抛出 NotFoundError。
"""


class TaskHubError(Exception):
    """TaskHub 基础异常"""


class NotFoundError(TaskHubError):
    """引用的资源不存在，边界层映射为 404"""

    def __init__(self, resource: str, resource_id: str) -> None:
        """
        Args:
            resource: 资源类型名称
            resource_id: 资源 ID
        """
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = resource_id


class TaskNotFoundError(NotFoundError):
    """Task 不存在"""

    def __init__(self, task_id: str) -> None:
        super().__init__("Task", task_id)
        self.task_id = task_id


class JobPayloadError(TaskHubError):
    """队列任务 payload 格式错误

    由 processor 抛出，交给队列记录失败。
    """

    def __init__(self, queue_name: str, detail: str) -> None:
        super().__init__(f"Invalid payload for job '{queue_name}': {detail}")
        self.queue_name = queue_name
