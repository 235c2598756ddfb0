# tests/test_task_store.py

from __future__ import annotations

from datetime import timedelta

import pytest

from demo_data import DEMO_USER_ID
from domain import TaskFilters, TaskListParams, TaskStats, TaskStatus
from errors import NotFound
from storage import MemoryStorage
from task_store import TaskStore

from .fakes import NOW, FakeClock


def _ids(items) -> list[str]:
    return [t.id for t in items]


def _list(store: TaskStore, **kwargs):
    filters = TaskFilters(
        status=kwargs.pop("status", None),
        is_urgent=kwargs.pop("is_urgent", None),
        search=kwargs.pop("search", None),
    )
    params = TaskListParams(filters=filters, **{"page": 1, "limit": 50, **kwargs})
    return store.list_tasks(DEMO_USER_ID, params)


# ---- demo scenario ----


def test_filter_by_status_done(task_store: TaskStore) -> None:
    page = _list(task_store, status=TaskStatus.DONE)
    assert page.total == 2
    assert set(_ids(page.items)) == {"task-3", "task-7"}


def test_filter_by_urgent(task_store: TaskStore) -> None:
    page = _list(task_store, is_urgent=True)
    assert page.total == 3
    assert set(_ids(page.items)) == {"task-1", "task-4", "task-7"}


def test_filter_not_urgent(task_store: TaskStore) -> None:
    page = _list(task_store, is_urgent=False)
    assert set(_ids(page.items)) == {"task-2", "task-3", "task-5", "task-6", "task-8"}


def test_stats_for_demo_user(task_store: TaskStore) -> None:
    assert task_store.task_stats(DEMO_USER_ID) == TaskStats(
        total=8, todo=4, in_progress=2, done=2, urgent=3
    )


def test_stats_for_unknown_owner_are_zero(task_store: TaskStore) -> None:
    assert task_store.task_stats("nobody") == TaskStats()


# ---- filtering ----


def test_search_is_case_insensitive_over_title_and_description(task_store: TaskStore) -> None:
    assert set(_ids(_list(task_store, search="COMPREHENSIVE").items)) == {"task-1", "task-2", "task-6"}
    assert _ids(_list(task_store, search="database").items) == ["task-7"]


def test_blank_search_is_ignored(task_store: TaskStore) -> None:
    assert _list(task_store, search="   ").total == 8


def test_filters_combine_with_and(task_store: TaskStore) -> None:
    page = _list(task_store, status=TaskStatus.TODO, search="comprehensive")
    assert set(_ids(page.items)) == {"task-2", "task-6"}

    page = _list(task_store, status=TaskStatus.DONE, is_urgent=True)
    assert _ids(page.items) == ["task-7"]


def test_filtered_items_satisfy_every_predicate(task_store: TaskStore) -> None:
    for status in (None, *TaskStatus):
        for urgent in (None, True, False):
            page = _list(task_store, status=status, is_urgent=urgent, search="e")
            for task in page.items:
                assert status is None or task.status == status
                assert urgent is None or task.is_urgent == urgent
                assert "e" in task.title.lower() or "e" in task.description.lower()
            assert page.total == len(page.items)


def test_other_users_tasks_are_never_visible(task_store: TaskStore) -> None:
    task_store.create("someone-else", title="Private", due_date=NOW + timedelta(days=1))

    assert "Private" not in [t.title for t in _list(task_store).items]
    assert task_store.list_tasks("someone-else", TaskListParams()).total == 1


# ---- sorting ----


def test_default_sort_is_due_date_ascending(task_store: TaskStore) -> None:
    assert _ids(_list(task_store).items) == [
        "task-7", "task-3", "task-1", "task-5", "task-4", "task-2", "task-6", "task-8",
    ]


def test_sort_by_title(task_store: TaskStore) -> None:
    assert _ids(_list(task_store, sort_by="title").items) == [
        "task-2", "task-8", "task-7", "task-1", "task-5", "task-4", "task-6", "task-3",
    ]


def test_sort_by_created_at_descending(task_store: TaskStore) -> None:
    assert _ids(_list(task_store, sort_by="createdAt", sort_order="desc").items) == [
        "task-8", "task-4", "task-6", "task-2", "task-1", "task-5", "task-3", "task-7",
    ]


def test_sort_by_days_remaining(task_store: TaskStore) -> None:
    items = _list(task_store, sort_by="daysRemaining").items
    assert [t.days_remaining for t in items] == [-5, -2, 2, 3, 5, 7, 10, 14]


def test_unknown_sort_key_falls_back_to_due_date(task_store: TaskStore) -> None:
    assert _ids(_list(task_store, sort_by="priority").items) == _ids(_list(task_store).items)


def test_equal_keys_keep_insertion_order_in_both_directions(clock: FakeClock) -> None:
    store = TaskStore(MemoryStorage(), clock=clock)
    due = NOW + timedelta(days=4)
    created = [store.create("u1", title=f"Same {i}", due_date=due).id for i in range(4)]

    asc = store.list_tasks("u1", TaskListParams(sort_by="dueDate", sort_order="asc"))
    desc = store.list_tasks("u1", TaskListParams(sort_by="dueDate", sort_order="desc"))
    assert _ids(asc.items) == created
    assert _ids(desc.items) == created


# ---- pagination ----


def test_pages_cover_the_sorted_list_exactly_once(task_store: TaskStore) -> None:
    full = _ids(_list(task_store).items)

    collected: list[str] = []
    for page_no in (1, 2, 3):
        page = _list(task_store, page=page_no, limit=3)
        assert page.total == 8
        assert page.total_pages == 3
        assert page.page == page_no
        collected.extend(_ids(page.items))

    assert collected == full


def test_page_past_the_end_is_empty(task_store: TaskStore) -> None:
    page = _list(task_store, page=9, limit=3)
    assert page.items == []
    assert page.total == 8
    assert page.total_pages == 3


def test_empty_result_has_zero_pages(task_store: TaskStore) -> None:
    page = _list(task_store, search="no such words anywhere")
    assert (page.items, page.total, page.total_pages) == ([], 0, 0)


@pytest.mark.parametrize(("page", "limit"), [(0, 5), (1, 0), (-1, 5)])
def test_non_positive_page_or_limit_is_rejected(task_store: TaskStore, page: int, limit: int) -> None:
    with pytest.raises(ValueError):
        task_store.list_tasks(DEMO_USER_ID, TaskListParams(page=page, limit=limit))


# ---- days remaining on reads ----


def test_days_remaining_is_recomputed_on_every_read(task_store: TaskStore, clock: FakeClock) -> None:
    first = {t.id: t.days_remaining for t in task_store.get_all(DEMO_USER_ID)}
    assert first["task-1"] == 2

    clock.advance(days=3)
    second = {t.id: t.days_remaining for t in task_store.get_all(DEMO_USER_ID)}
    assert second["task-1"] == -1
    assert task_store.task_stats(DEMO_USER_ID).total == 8


def test_days_remaining_is_not_stored(task_store: TaskStore, seeded_storage: MemoryStorage) -> None:
    assert "daysRemaining" not in seeded_storage.blobs["tasks"]


# ---- CRUD ----


def test_create_then_get_all_round_trip(clock: FakeClock) -> None:
    store = TaskStore(MemoryStorage(), clock=clock)
    due = NOW + timedelta(days=2, hours=6)

    created = store.create(
        "u1",
        title="Write report",
        description="Quarterly numbers",
        status=TaskStatus.IN_PROGRESS,
        is_urgent=True,
        due_date=due,
    )

    (task,) = store.get_all("u1")
    assert task.id == created.id
    assert task.title == "Write report"
    assert task.description == "Quarterly numbers"
    assert task.status == TaskStatus.IN_PROGRESS
    assert task.is_urgent is True
    assert task.due_date == due
    assert task.user_id == "u1"
    assert task.created_at == NOW
    assert task.days_remaining == 3


def test_create_accepts_iso_strings_and_plain_status(clock: FakeClock) -> None:
    store = TaskStore(MemoryStorage(), clock=clock)
    task = store.create("u1", title="t", status="DONE", due_date="2025-03-02T12:00:00.000Z")
    assert task.status == TaskStatus.DONE
    assert task.days_remaining == 1


def test_created_ids_are_unique(clock: FakeClock) -> None:
    store = TaskStore(MemoryStorage(), clock=clock)
    ids = {store.create("u1", title=str(i), due_date=NOW).id for i in range(20)}
    assert len(ids) == 20


def test_update_merges_only_given_fields(task_store: TaskStore) -> None:
    before = task_store.get("task-2")
    assert before is not None

    after = task_store.update("task-2", status=TaskStatus.DONE, is_urgent=True)

    assert after.status == TaskStatus.DONE
    assert after.is_urgent is True
    assert after.title == before.title
    assert after.description == before.description
    assert after.due_date == before.due_date
    assert after.created_at == before.created_at
    assert after.user_id == before.user_id
    assert task_store.get("task-2") == after


def test_update_due_date_changes_days_remaining(task_store: TaskStore) -> None:
    updated = task_store.update("task-8", due_date=NOW - timedelta(days=1))
    assert updated.days_remaining == -1


def test_update_with_null_description_clears_it(
    task_store: TaskStore, seeded_storage: MemoryStorage, clock: FakeClock
) -> None:
    updated = task_store.update("task-2", description=None)
    assert updated.description == ""

    reloaded = TaskStore(seeded_storage, clock=clock)
    assert reloaded.get("task-2").description == ""
    assert reloaded.task_stats(DEMO_USER_ID).total == 8


def test_update_rejects_non_string_title(task_store: TaskStore) -> None:
    with pytest.raises(ValueError):
        task_store.update("task-2", title=None)
    assert task_store.get("task-2").title == "API Documentation"


def test_update_missing_task_raises_not_found(task_store: TaskStore) -> None:
    with pytest.raises(NotFound):
        task_store.update("nope", title="x")


@pytest.mark.parametrize("field", ["user_id", "created_at", "id", "days_remaining", "colour"])
def test_update_refuses_protected_or_unknown_fields(task_store: TaskStore, field: str) -> None:
    with pytest.raises(ValueError):
        task_store.update("task-1", **{field: "x"})
    assert task_store.get("task-1").user_id == DEMO_USER_ID


def test_delete_is_idempotent(task_store: TaskStore, seeded_storage: MemoryStorage) -> None:
    task_store.delete("task-5")
    after_once = dict(seeded_storage.blobs)

    task_store.delete("task-5")
    assert seeded_storage.blobs == after_once
    assert task_store.get("task-5") is None
    assert task_store.task_stats(DEMO_USER_ID).total == 7


def test_delete_unknown_id_is_a_no_op(task_store: TaskStore) -> None:
    task_store.delete("never-existed")
    assert task_store.task_stats(DEMO_USER_ID).total == 8
