"""setup_logging 测试 -- 渲染模式与日志级别"""

import json
import logging

import pytest
import structlog
from taskhub.worker.logging_config import setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_json_mode(self, monkeypatch, restore_logging, capsys):
        monkeypatch.setenv("TASKHUB_LOG_FORMAT", "json")
        monkeypatch.setenv("TASKHUB_LOG_LEVEL", "debug")

        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

        structlog.get_logger("taskhub.test").info("task_created", task_id="t1")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "task_created"
        assert record["task_id"] == "t1"
        assert record["level"] == "info"

    def test_unknown_level_defaults_to_info(self, monkeypatch, restore_logging):
        monkeypatch.setenv("TASKHUB_LOG_FORMAT", "dev")
        monkeypatch.setenv("TASKHUB_LOG_LEVEL", "chatty")

        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_explicit_arguments_override_env(self, monkeypatch, restore_logging):
        monkeypatch.setenv("TASKHUB_LOG_LEVEL", "debug")

        setup_logging(log_format="dev", log_level="warning")
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING
