"""端到端：真实组件装配下的任务生命周期

create_components() 装配 SQLite + 进程内队列/总线，
验证通知落库、截止提醒，以及删除后的异步级联清理（含瞬时失败重试）。
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest_asyncio
from taskhub.core.config import Settings
from taskhub.core.models import NotificationType, TaskDraft, TaskPatch
from taskhub.worker.main import Components, create_components, shutdown


@pytest_asyncio.fixture
async def components(tmp_path: Path):
    settings = Settings(
        db_path=str(tmp_path / "sqlite" / "lifecycle.db"),
        job_backoff_s=0.0,
    )
    comps = await create_components(settings)
    yield comps
    await shutdown(comps)


async def settle(components: Components) -> None:
    """等待事件处理与其投递的任务全部完成"""
    await components.bus.drain()
    await components.job_queue.drain(timeout=5)


def due_soon_draft(assignees: list[str]) -> TaskDraft:
    # 截止时间不足一天：提醒立即触发
    return TaskDraft(
        title="上线检查",
        due_date=datetime.now(UTC) + timedelta(hours=2),
        assignees=assignees,
    )


class TestNotificationFlow:
    async def test_assignment_reminder_and_comment_notifications(self, components):
        service = components.task_service
        task = await service.create_task(due_soon_draft(["u1", "u2"]), "owner")
        await settle(components)

        await service.add_comment(task.task_id, "u1", "我已经检查完了")
        await settle(components)

        inbox_u1 = await components.notification_service.get_user_notifications("u1")
        inbox_u2 = await components.notification_service.get_user_notifications("u2")

        assert sorted(n.type for n in inbox_u1.data) == sorted(
            [NotificationType.TASK_ASSIGNED, NotificationType.DEADLINE_REMINDER]
        )
        assert sorted(n.type for n in inbox_u2.data) == sorted(
            [
                NotificationType.TASK_ASSIGNED,
                NotificationType.DEADLINE_REMINDER,
                NotificationType.COMMENT_ADDED,
            ]
        )
        assert components.job_queue.failed_jobs == []

    async def test_due_date_change_schedules_another_reminder(self, components):
        service = components.task_service
        task = await service.create_task(due_soon_draft(["u1"]), "owner")
        await settle(components)

        await service.update_task(
            task.task_id,
            TaskPatch(due_date=datetime.now(UTC) + timedelta(hours=1)),
            "owner",
        )
        await settle(components)

        inbox = await components.notification_service.get_user_notifications("u1")
        reminders = [n for n in inbox.data if n.type == NotificationType.DEADLINE_REMINDER]
        assert len(reminders) == 2


class TestDeletionCascade:
    async def test_cleanup_retried_until_all_rows_removed(self, components, monkeypatch):
        service = components.task_service
        stores = components.store_group

        task = await service.create_task(due_soon_draft(["u1", "u2"]), "owner")
        await service.update_task(task.task_id, TaskPatch(title="上线检查 v2"), "owner")
        await service.add_comment(task.task_id, "u1", "ok")
        await settle(components)

        assert len(await stores.assignment_store.find_users_by_task_id(task.task_id)) == 2
        assert len(await service.get_task_history(task.task_id)) >= 3

        real_delete = stores.comment_store.delete_for_task
        calls = 0

        async def flaky_delete(task_id: str) -> int:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ConnectionError("transient")
            return await real_delete(task_id)

        monkeypatch.setattr(stores.comment_store, "delete_for_task", flaky_delete)

        assert await service.delete_task(task.task_id) is True
        await settle(components)

        assert calls == 2
        assert components.job_queue.failed_jobs == []
        assert await stores.assignment_store.find_users_by_task_id(task.task_id) == []
        assert await stores.history_store.find_task_history(task.task_id) == []
        comments = await stores.comment_store.find_task_comments(task.task_id, 1, 10)
        assert comments.pagination.total_count == 0

    async def test_reminder_for_deleted_task_is_noop(self, components):
        service = components.task_service
        task = await service.create_task(
            TaskDraft(
                title="很快删除",
                due_date=datetime.now(UTC) + timedelta(days=10),
                assignees=["u1"],
            ),
            "owner",
        )
        await service.delete_task(task.task_id)
        await components.bus.drain()

        await components.event_handler.send_due_date_reminder({"taskId": task.task_id})

        inbox = await components.notification_service.get_user_notifications("u1")
        assert all(n.type != NotificationType.DEADLINE_REMINDER for n in inbox.data)
