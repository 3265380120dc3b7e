"""配置模块 -- 可通过环境变量覆盖

路径类配置通过函数读取；运行参数统一收敛到 Settings，
由 load_settings() 从环境变量加载。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKHUB_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKHUB_DB_PATH",
        str(_get_base_dir() / "sqlite" / "taskhub.db"),
    )


# 列表/聚合类缓存默认 TTL（秒）
DEFAULT_CACHE_TTL_S: int = 300


class Settings(BaseModel):
    """运行参数

    环境变量:
        TASKHUB_DB_PATH: SQLite 数据库路径
        TASKHUB_CACHE_TTL_S: 列表/计数缓存 TTL（秒，默认 300）
        TASKHUB_JOB_ATTEMPTS: 队列任务最大尝试次数（默认 3）
        TASKHUB_JOB_BACKOFF_S: 指数退避基数（秒，默认 1.0）
        TASKHUB_QUEUE_CONCURRENCY: 队列 worker 并发数（默认 4）
        TASKHUB_BUS_MAX_DELIVERIES: 消息处理失败时的最大投递次数（默认 3）
        TASKHUB_REMINDER_LEAD_H: 截止提醒提前量（小时，默认 24）
        TASKHUB_REMINDER_DEDUPE: 是否按 task_id 替换未触发的提醒（默认 false）
    """

    db_path: str = Field(default_factory=get_db_path)
    cache_ttl_s: int = Field(default=DEFAULT_CACHE_TTL_S, ge=1)
    job_attempts: int = Field(default=3, ge=1)
    job_backoff_s: float = Field(default=1.0, ge=0)
    queue_concurrency: int = Field(default=4, ge=1)
    bus_max_deliveries: int = Field(default=3, ge=1)
    reminder_lead_h: int = Field(default=24, ge=0)
    reminder_dedupe: bool = False


_INT_ENV = {
    "TASKHUB_CACHE_TTL_S": "cache_ttl_s",
    "TASKHUB_JOB_ATTEMPTS": "job_attempts",
    "TASKHUB_QUEUE_CONCURRENCY": "queue_concurrency",
    "TASKHUB_BUS_MAX_DELIVERIES": "bus_max_deliveries",
    "TASKHUB_REMINDER_LEAD_H": "reminder_lead_h",
}


def load_settings() -> Settings:
    """从环境变量加载 Settings

    数值格式错误时记录告警并使用默认值，不阻塞启动。
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKHUB_DB_PATH"):
        kwargs["db_path"] = val

    for env_var, field_name in _INT_ENV.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[field_name] = int(val)
            except ValueError:
                log.warning(
                    "invalid_config_value",
                    env_var=env_var,
                    value=val,
                    fallback=Settings.model_fields[field_name].default,
                )

    if val := os.environ.get("TASKHUB_JOB_BACKOFF_S"):
        try:
            kwargs["job_backoff_s"] = float(val)
        except ValueError:
            log.warning(
                "invalid_config_value",
                env_var="TASKHUB_JOB_BACKOFF_S",
                value=val,
                fallback=1.0,
            )

    if val := os.environ.get("TASKHUB_REMINDER_DEDUPE"):
        kwargs["reminder_dedupe"] = val.lower() in ("1", "true", "yes")

    return Settings(**kwargs)
