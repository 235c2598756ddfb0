from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from domain import (
    Task,
    TaskListParams,
    TaskPage,
    TaskStats,
    TaskStatus,
    TaskView,
    parse_instant,
    utcnow,
)
from errors import NotFound
from storage import Storage

logger = logging.getLogger(__name__)

_ONE_DAY_US = 86_400_000_000
_ONE_US = timedelta(microseconds=1)

EDITABLE_FIELDS = frozenset({"title", "description", "status", "is_urgent", "due_date"})

DEFAULT_SORT = "dueDate"

# Accept both the wire names and their snake_case spellings.
_SORT_KEYS: dict[str, Callable[[TaskView], Any]] = {
    "title": lambda t: t.title,
    "dueDate": lambda t: t.due_date,
    "due_date": lambda t: t.due_date,
    "createdAt": lambda t: t.created_at,
    "created_at": lambda t: t.created_at,
    "daysRemaining": lambda t: t.days_remaining,
    "days_remaining": lambda t: t.days_remaining,
}


def days_remaining(due_date: datetime, now: datetime) -> int:
    """
    Whole days until `due_date`, rounded up: ceil((due_date - now) / 1 day).

    Negative means overdue by that many days, 0 means due today.
    Computed in integer microseconds so there is no float rounding.
    """
    diff_us = (parse_instant(due_date) - parse_instant(now)) // _ONE_US
    return -(-diff_us // _ONE_DAY_US)


def _matches(task: TaskView, params: TaskListParams) -> bool:
    f = params.filters
    if f.status is not None and task.status != f.status:
        return False
    if f.is_urgent is not None and task.is_urgent != f.is_urgent:
        return False
    if f.search and f.search.strip():
        term = f.search.lower()
        if term not in task.title.lower() and term not in task.description.lower():
            return False
    return True


class TaskStore:
    """
    Task CRUD plus the query engine and stats over a Storage backend.

    `clock` supplies "now" for every read; days_remaining is recomputed from
    it each time and is never written back.
    """

    def __init__(self, storage: Storage, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._storage = storage
        self._clock = clock

    def _view(self, task: Task, now: datetime) -> TaskView:
        return TaskView.from_task(task, days_remaining=days_remaining(task.due_date, now))

    def _owned(self, owner_id: str) -> list[Task]:
        return [t for t in self._storage.load_tasks() if t.user_id == owner_id]

    # ---- CRUD ----

    def create(
        self,
        owner_id: str,
        *,
        title: str,
        due_date: datetime | str,
        description: str = "",
        status: TaskStatus | str = TaskStatus.TODO,
        is_urgent: bool = False,
    ) -> TaskView:
        """
        Store a new task owned by `owner_id`.

        Fields are stored as given. Rejecting an empty title is the caller's
        job (TaskForm does it for the web app).
        """
        now = self._clock()
        task = Task(
            id=uuid.uuid4().hex,
            title=title,
            description=description or "",
            status=TaskStatus(status),
            is_urgent=bool(is_urgent),
            created_at=now,
            due_date=parse_instant(due_date),
            user_id=owner_id,
        )
        tasks = self._storage.load_tasks()
        tasks.append(task)
        self._storage.save_tasks(tasks)
        logger.info("Task created id=%s owner=%s status=%s", task.id, owner_id, task.status.value)
        return self._view(task, now)

    def get(self, task_id: str) -> TaskView | None:
        for task in self._storage.load_tasks():
            if task.id == task_id:
                return self._view(task, self._clock())
        return None

    def update(self, task_id: str, **changes: Any) -> TaskView:
        """Merge the given fields into an existing task. Owner and created_at never change."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        if "title" in changes and not isinstance(changes["title"], str):
            raise ValueError("Task title must be a string")
        if "description" in changes:
            changes["description"] = changes["description"] or ""
        if "status" in changes:
            changes["status"] = TaskStatus(changes["status"])
        if "due_date" in changes:
            changes["due_date"] = parse_instant(changes["due_date"])
        if "is_urgent" in changes:
            changes["is_urgent"] = bool(changes["is_urgent"])

        tasks = self._storage.load_tasks()
        for i, task in enumerate(tasks):
            if task.id == task_id:
                tasks[i] = replace(task, **changes)
                self._storage.save_tasks(tasks)
                logger.info("Task updated id=%s fields=%s", task_id, ",".join(sorted(changes)))
                return self._view(tasks[i], self._clock())
        raise NotFound(task_id)

    def delete(self, task_id: str) -> None:
        """Remove a task. Deleting an unknown id does nothing."""
        tasks = self._storage.load_tasks()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            logger.debug("Delete of unknown task id=%s ignored", task_id)
            return
        self._storage.save_tasks(remaining)
        logger.info("Task deleted id=%s", task_id)

    def get_all(self, owner_id: str) -> list[TaskView]:
        now = self._clock()
        return [self._view(t, now) for t in self._owned(owner_id)]

    # ---- queries ----

    def list_tasks(self, owner_id: str, params: TaskListParams) -> TaskPage:
        """
        Filter, sort and paginate the owner's tasks.

        Filters combine with AND. Unknown sort keys fall back to dueDate.
        The sort is stable in both directions, so tasks with equal keys keep
        their stored order. A page past the end is simply empty.
        """
        if params.page < 1 or params.limit < 1:
            raise ValueError("page and limit must be positive integers")

        tasks = [t for t in self.get_all(owner_id) if _matches(t, params)]

        key = _SORT_KEYS.get(params.sort_by)
        if key is None:
            logger.debug("Unknown sort_by=%r, using %s", params.sort_by, DEFAULT_SORT)
            key = _SORT_KEYS[DEFAULT_SORT]
        tasks.sort(key=key, reverse=params.sort_order == "desc")

        total = len(tasks)
        start = (params.page - 1) * params.limit
        items = tasks[start : start + params.limit]

        logger.debug(
            "list_tasks owner=%s total=%s page=%s limit=%s", owner_id, total, params.page, params.limit
        )
        return TaskPage(
            items=items,
            total=total,
            page=params.page,
            total_pages=math.ceil(total / params.limit),
        )

    def task_stats(self, owner_id: str) -> TaskStats:
        stats = TaskStats()
        for task in self._owned(owner_id):
            stats.total += 1
            if task.status == TaskStatus.TODO:
                stats.todo += 1
            elif task.status == TaskStatus.IN_PROGRESS:
                stats.in_progress += 1
            elif task.status == TaskStatus.DONE:
                stats.done += 1
            if task.is_urgent:
                stats.urgent += 1
        return stats
