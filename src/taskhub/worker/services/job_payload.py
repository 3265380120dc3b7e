"""队列任务 payload 解析"""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from taskhub.core.exceptions import JobPayloadError

M = TypeVar("M", bound=BaseModel)


def parse_job_payload(model: type[M], queue_name: str, payload: dict[str, Any]) -> M:
    """按 camelCase 线上格式校验 payload

    Raises:
        JobPayloadError: payload 缺字段或类型不符
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise JobPayloadError(queue_name, f"{e.error_count()} validation error(s)") from e
