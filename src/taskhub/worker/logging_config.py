"""structlog 配置模块

dev 模式：彩色控制台输出
json 模式：每行一个 JSON 对象，异常堆栈展开为字段
"""

import logging
import os

import structlog

# 第三方库只保留告警以上
_QUIET_LOGGERS = ("aiosqlite", "asyncio")


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog，并接管标准库 logging 的输出

    Args:
        log_format: "json" 或 "dev"；None 时读取 TASKHUB_LOG_FORMAT（默认 dev）
        log_level: 日志级别名；None 时读取 TASKHUB_LOG_LEVEL（默认 INFO），
            无法识别时按 INFO 处理
    """
    log_format = log_format or os.environ.get("TASKHUB_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("TASKHUB_LOG_LEVEL", "INFO")
    as_json = log_format == "json"

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if as_json:
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if as_json
        else structlog.dev.ConsoleRenderer()
    )
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
