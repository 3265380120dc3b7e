"""worker 层测试 fixtures -- 真实 SQLite + 记录型队列/总线"""

import pytest
from fakes import RecordingBus, RecordingJobQueue
from taskhub.worker.services.task_service import TaskService


@pytest.fixture
def job_queue() -> RecordingJobQueue:
    return RecordingJobQueue()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def service(store_group, memory_cache, job_queue, bus) -> TaskService:
    return TaskService(store_group, memory_cache, job_queue, bus)
