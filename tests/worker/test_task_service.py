"""TaskService 编排测试

覆盖：
1. 创建/更新/删除的副作用顺序与次数
2. 负责人差集调整
3. 缓存失效（含失效失败被忽略）
4. 主写入成功后下游失败原样抛出
"""

from datetime import UTC, datetime, timedelta

import pytest
from fakes import FailingCache
from pydantic import ValidationError
from taskhub.core.exceptions import TaskNotFoundError
from taskhub.core.models import (
    HistoryAction,
    JobName,
    Pagination,
    TaskDraft,
    TaskFilter,
    TaskPatch,
    TaskStatus,
)
from taskhub.worker.services.task_service import TaskService


def draft(title: str = "写周报", assignees: list[str] | None = None) -> TaskDraft:
    return TaskDraft(
        title=title,
        description="每周五提交",
        due_date=datetime.now(UTC) + timedelta(days=10),
        assignees=assignees,
    )


def actions(history) -> list[HistoryAction]:
    return [h.action for h in history]


class TestCreateTask:
    async def test_assignees_round_trip(self, service, store_group):
        task = await service.create_task(draft(assignees=["u1", "u2"]), "owner")

        loaded = await service.get_task_by_id(task.task_id)
        assert loaded is not None
        assert set(loaded.assignees) == {"u1", "u2"}
        assert loaded.title == "写周报"

    async def test_side_effects(self, service, job_queue, bus):
        task = await service.create_task(draft(assignees=["u1", "u2"]), "owner")

        history = await service.get_task_history(task.task_id)
        assert sorted(actions(history)) == sorted(
            [HistoryAction.CREATED, HistoryAction.ASSIGNED, HistoryAction.ASSIGNED]
        )

        jobs = job_queue.jobs_for(JobName.CREATE_NOTIFICATION)
        assert {j.payload["userId"] for j in jobs} == {"u1", "u2"}
        assert all(j.payload["type"] == "task_assigned" for j in jobs)
        assert jobs[0].payload["content"] == 'You have been assigned to task "写周报"'

        [event] = bus.messages_for("task.created")
        assert event["taskId"] == task.task_id
        assert event["createdBy"] == "owner"
        assert event["assignees"] == ["u1", "u2"]
        assert event["dueDate"] == task.due_date.isoformat()
        assert "timestamp" in event

    async def test_duplicate_assignees_collapsed(self, service, store_group):
        task = await service.create_task(draft(assignees=["u1", "u1"]), "owner")
        assert await store_group.assignment_store.find_users_by_task_id(task.task_id) == ["u1"]

    async def test_persist_failure_has_no_side_effects(
        self, service, store_group, job_queue, bus, monkeypatch
    ):
        async def broken_create(task):
            raise RuntimeError("disk full")

        monkeypatch.setattr(store_group.task_store, "create_task", broken_create)

        with pytest.raises(RuntimeError):
            await service.create_task(draft(assignees=["u1"]), "owner")

        assert job_queue.jobs == []
        assert bus.published == []

    async def test_get_missing_returns_none(self, service):
        assert await service.get_task_by_id("missing") is None


class TestUpdateTask:
    async def test_missing_task_raises(self, service):
        with pytest.raises(TaskNotFoundError):
            await service.update_task("missing", TaskPatch(title="x"), "u1")

    async def test_status_change_writes_single_history_and_both_events(
        self, service, bus
    ):
        task = await service.create_task(draft(assignees=["u1"]), "owner")
        before = len(await service.get_task_history(task.task_id))

        updated = await service.update_task(
            task.task_id, TaskPatch(status=TaskStatus.IN_PROGRESS), "u1"
        )
        assert updated is not None
        assert updated.status == TaskStatus.IN_PROGRESS

        history = await service.get_task_history(task.task_id)
        assert len(history) == before + 1
        newest = history[0]
        assert newest.action == HistoryAction.STATUS_CHANGED
        assert newest.previous_value == "todo"
        assert newest.new_value == "in_progress"

        [event] = bus.messages_for("task.updated")
        assert event["status"] == "in_progress"
        assert event["previousStatus"] == "todo"
        assert event["updatedBy"] == "u1"
        assert event["assignees"] == ["u1"]

        [changed] = bus.messages_for("task.status.changed")
        assert changed["previousStatus"] == "todo"
        assert changed["newStatus"] == "in_progress"

    async def test_field_update_records_changed_fields(self, service, bus):
        task = await service.create_task(draft(), "owner")
        new_due = task.due_date + timedelta(days=3)

        await service.update_task(
            task.task_id, TaskPatch(title="改标题", due_date=new_due), "owner"
        )

        history = await service.get_task_history(task.task_id)
        newest = history[0]
        assert newest.action == HistoryAction.UPDATED
        assert newest.metadata == {"updatedFields": ["title", "dueDate"]}

        [event] = bus.messages_for("task.updated")
        assert event["updatedFields"] == ["title", "dueDate"]
        assert "previousStatus" not in event
        assert bus.messages_for("task.status.changed") == []

    async def test_same_status_is_not_a_status_change(self, service, bus):
        task = await service.create_task(draft(), "owner")
        await service.update_task(task.task_id, TaskPatch(status=TaskStatus.TODO), "owner")

        history = await service.get_task_history(task.task_id)
        assert history[0].action == HistoryAction.UPDATED
        assert bus.messages_for("task.status.changed") == []

    async def test_assignee_diff(self, service, store_group):
        task = await service.create_task(draft(assignees=["a", "b", "c"]), "owner")
        before = await service.get_task_history(task.task_id)

        await service.update_task(task.task_id, TaskPatch(assignees=["b", "c", "d"]), "owner")

        users = await store_group.assignment_store.find_users_by_task_id(task.task_id)
        assert sorted(users) == ["b", "c", "d"]

        after = await service.get_task_history(task.task_id)
        new_rows = after[: len(after) - len(before)]
        assigned = [h.new_value for h in new_rows if h.action == HistoryAction.ASSIGNED]
        unassigned = [
            h.previous_value for h in new_rows if h.action == HistoryAction.UNASSIGNED
        ]
        assert assigned == ["d"]
        assert unassigned == ["a"]

    async def test_assignment_count_after_update_and_removal(self, service, store_group):
        task = await service.create_task(draft(), "owner")

        await service.update_task(task.task_id, TaskPatch(assignees=["a", "b"]), "owner")
        assert len(await store_group.assignment_store.find_users_by_task_id(task.task_id)) == 2

        assert await service.remove_task_from_user(task.task_id, "a") is True
        loaded = await service.get_task_by_id(task.task_id)
        assert loaded.assignees == ["b"]

    async def test_update_without_assignees_keeps_membership(self, service, store_group):
        task = await service.create_task(draft(assignees=["a"]), "owner")
        await service.update_task(task.task_id, TaskPatch(title="新"), "owner")
        assert await store_group.assignment_store.find_users_by_task_id(task.task_id) == ["a"]

    async def test_notifies_every_assignee(self, service, job_queue):
        task = await service.create_task(draft(assignees=["a", "b"]), "owner")
        job_queue.jobs.clear()

        await service.update_task(task.task_id, TaskPatch(title="新标题"), "a")

        jobs = job_queue.jobs_for(JobName.CREATE_NOTIFICATION)
        assert {j.payload["userId"] for j in jobs} == {"a", "b"}
        assert all(j.payload["type"] == "task_updated" for j in jobs)
        assert jobs[0].payload["content"] == 'Task "新标题" has been updated'
        assert jobs[0].payload["relatedTo"] == {"kind": "Task", "id": task.task_id}

    async def test_downstream_failure_propagates_after_write(
        self, service, store_group, bus
    ):
        task = await service.create_task(draft(), "owner")
        bus.fail_topics.add("task.updated")

        with pytest.raises(ConnectionError):
            await service.update_task(task.task_id, TaskPatch(title="已写入"), "owner")

        stored = await store_group.task_store.get_task(task.task_id)
        assert stored.title == "已写入"

    async def test_vanished_task_returns_none(self, service, store_group, monkeypatch):
        task = await service.create_task(draft(), "owner")

        async def vanished(task_id, changes, updated_at):
            return None

        monkeypatch.setattr(store_group.task_store, "update_task", vanished)
        assert await service.update_task(task.task_id, TaskPatch(title="x"), "owner") is None


class TestCacheInvalidation:
    async def test_status_change_invalidates_cached_list(self, service):
        task = await service.create_task(draft(assignees=["u1"]), "owner")

        first = await service.get_user_tasks("u1")
        assert first.data[0].status == TaskStatus.TODO

        await service.update_task(task.task_id, TaskPatch(status=TaskStatus.DONE), "u1")

        second = await service.get_user_tasks("u1")
        assert second.data[0].status == TaskStatus.DONE

    async def test_user_id_with_glob_metacharacters(self, service, memory_cache):
        task = await service.create_task(draft(assignees=["team[a]"]), "owner")
        assert (await service.get_user_tasks("team[a]")).data[0].status == TaskStatus.TODO

        await service.update_task(task.task_id, TaskPatch(status=TaskStatus.DONE), "owner")

        assert memory_cache.keys() == []
        assert (await service.get_user_tasks("team[a]")).data[0].status == TaskStatus.DONE

    async def test_every_list_variant_and_counts_invalidated(self, service, memory_cache):
        task = await service.create_task(draft(assignees=["u1"]), "owner")
        await service.get_user_tasks("u1")
        await service.get_user_tasks("u1", TaskFilter(search="周报"), Pagination(limit=5))
        await service.get_task_status_counts("u1")
        assert len(memory_cache.keys()) == 3

        await service.update_task(task.task_id, TaskPatch(status=TaskStatus.REVIEW), "u1")
        assert memory_cache.keys() == []

    async def test_assignment_invalidates_counts(self, service):
        task = await service.create_task(draft(), "owner")
        assert (await service.get_task_status_counts("u9"))["todo"] == 0

        await service.assign_task_to_user(task.task_id, "u9", "owner")
        assert (await service.get_task_status_counts("u9"))["todo"] == 1

    async def test_invalidation_failure_does_not_fail_mutation(
        self, store_group, job_queue, bus
    ):
        cache = FailingCache()
        service = TaskService(store_group, cache, job_queue, bus)

        task = await service.create_task(draft(assignees=["u1"]), "owner")
        updated = await service.update_task(
            task.task_id, TaskPatch(status=TaskStatus.DONE), "u1"
        )

        assert updated.status == TaskStatus.DONE
        assert cache.delete_attempts > 0
        assert await service.delete_task(task.task_id) is True

    async def test_cache_read_failure_falls_back_to_store(self, store_group, job_queue, bus):
        service = TaskService(store_group, FailingCache(fail_reads=True), job_queue, bus)
        await service.create_task(draft(assignees=["u1"]), "owner")

        result = await service.get_user_tasks("u1")
        assert result.pagination.total_count == 1
        assert (await service.get_task_status_counts("u1"))["todo"] == 1


class TestDeleteTask:
    async def test_enqueues_cleanup_and_invalidates(self, service, job_queue, memory_cache):
        task = await service.create_task(draft(assignees=["u1", "u2"]), "owner")
        await service.get_user_tasks("u1")
        await service.get_task_status_counts("u2")

        assert await service.delete_task(task.task_id) is True

        [cleanup] = job_queue.jobs_for(JobName.CLEANUP_TASK_RESOURCES)
        assert cleanup.payload == {"taskId": task.task_id}
        assert memory_cache.keys() == []
        assert await service.get_task_by_id(task.task_id) is None

    async def test_missing_returns_false(self, service, job_queue):
        assert await service.delete_task("missing") is False
        assert job_queue.jobs == []


class TestAssignment:
    async def test_assign_twice_single_row(self, service, store_group):
        task = await service.create_task(draft(), "owner")

        assert await service.assign_task_to_user(task.task_id, "u1", "owner") is True
        assert await service.assign_task_to_user(task.task_id, "u1", "owner") is True

        assert await store_group.assignment_store.find_users_by_task_id(task.task_id) == ["u1"]

    async def test_assign_missing_task_raises(self, service):
        with pytest.raises(TaskNotFoundError):
            await service.assign_task_to_user("missing", "u1", "owner")

    async def test_remove_absent_returns_false(self, service):
        task = await service.create_task(draft(), "owner")
        assert await service.remove_task_from_user(task.task_id, "nobody") is False

    async def test_remove_with_actor_records_history(self, service):
        task = await service.create_task(draft(assignees=["u1"]), "owner")
        await service.remove_task_from_user(task.task_id, "u1", removed_by="owner")

        newest = (await service.get_task_history(task.task_id))[0]
        assert newest.action == HistoryAction.UNASSIGNED
        assert newest.previous_value == "u1"


class TestComments:
    async def test_fan_out_excludes_author(self, service, job_queue):
        task = await service.create_task(draft(assignees=["u1", "u2", "u3"]), "owner")
        job_queue.jobs.clear()

        comment = await service.add_comment(task.task_id, "u2", "我来看看")

        jobs = job_queue.jobs_for(JobName.CREATE_NOTIFICATION)
        assert len(jobs) == 2
        assert {j.payload["userId"] for j in jobs} == {"u1", "u3"}
        for job in jobs:
            assert job.payload["type"] == "comment_added"
            assert job.payload["relatedTo"] == {
                "kind": "TaskComment",
                "id": comment.comment_id,
            }

    async def test_missing_task_raises(self, service):
        with pytest.raises(TaskNotFoundError):
            await service.add_comment("missing", "u1", "hi")

    async def test_comments_listed(self, service):
        task = await service.create_task(draft(), "owner")
        await service.add_comment(task.task_id, "u1", "第一条")

        page = await service.get_task_comments(task.task_id)
        assert [c.text for c in page.data] == ["第一条"]
        assert page.pagination.total_count == 1

    async def test_comment_paging_rejects_out_of_range(self, service):
        task = await service.create_task(draft(), "owner")
        for page, limit in ((1, 0), (0, 10), (-1, 10)):
            with pytest.raises(ValidationError):
                await service.get_task_comments(task.task_id, page=page, limit=limit)
