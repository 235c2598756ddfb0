"""
Plain domain types shared by the stores, the storage backends and the web layer.

Nothing in here touches Flask or the database. Every type knows how to turn
itself into the durable record layout (camelCase keys, ISO-8601 timestamps)
and back again. Parsing a record that does not fit raises
MalformedStoredData so storage backends can drop just that record.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from errors import MalformedStoredData


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value: str | datetime) -> datetime:
    """
    Parse an ISO-8601 string (or pass through a datetime) as an aware UTC instant.

    Naive values are taken to be UTC already.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_instant(dt: datetime) -> str:
    """Format like JavaScript's toISOString(): 2024-01-31T09:15:00.000Z."""
    dt = parse_instant(dt)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _field(raw: Mapping[str, Any], key: str, kind: type) -> Any:
    if key not in raw:
        raise MalformedStoredData(f"missing field {key!r}")
    value = raw[key]
    if not isinstance(value, kind):
        raise MalformedStoredData(f"field {key!r} has type {type(value).__name__}")
    return value


def _instant_field(raw: Mapping[str, Any], key: str) -> datetime:
    text = _field(raw, key, str)
    try:
        return parse_instant(text)
    except ValueError as exc:
        raise MalformedStoredData(f"field {key!r} is not an ISO-8601 instant") from exc


class TaskStatus(StrEnum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


# -----------------------------
# Users and the active session
# -----------------------------


@dataclass(frozen=True, slots=True)
class SessionUser:
    """Public projection of a user. Never carries the password."""

    id: str
    username: str
    email: str
    created_at: datetime

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "createdAt": format_instant(self.created_at),
        }

    @classmethod
    def from_record(cls, raw: Any) -> SessionUser:
        if not isinstance(raw, Mapping):
            raise MalformedStoredData("session record is not an object")
        return cls(
            id=_field(raw, "id", str),
            username=_field(raw, "username", str),
            email=_field(raw, "email", str),
            created_at=_instant_field(raw, "createdAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": format_instant(self.created_at),
        }


@dataclass(slots=True)
class User:
    id: str
    username: str
    email: str
    password: str  # plaintext, see DESIGN.md
    created_at: datetime

    def public(self) -> SessionUser:
        return SessionUser(
            id=self.id,
            username=self.username,
            email=self.email,
            created_at=self.created_at,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "password": self.password,
            "createdAt": format_instant(self.created_at),
        }

    @classmethod
    def from_record(cls, raw: Any) -> User:
        if not isinstance(raw, Mapping):
            raise MalformedStoredData("user record is not an object")
        return cls(
            id=_field(raw, "id", str),
            username=_field(raw, "username", str),
            email=_field(raw, "email", str),
            password=_field(raw, "password", str),
            created_at=_instant_field(raw, "createdAt"),
        )


# -----------------------------
# Tasks
# -----------------------------


@dataclass(slots=True)
class Task:
    """
    A stored task.

    days_remaining is not stored; it is derived on every read and
    lives only on TaskView.
    """

    id: str
    title: str
    description: str
    status: TaskStatus
    is_urgent: bool
    created_at: datetime
    due_date: datetime
    user_id: str

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "isUrgent": self.is_urgent,
            "createdAt": format_instant(self.created_at),
            "dueDate": format_instant(self.due_date),
            "userId": self.user_id,
        }

    @classmethod
    def from_record(cls, raw: Any) -> Task:
        if not isinstance(raw, Mapping):
            raise MalformedStoredData("task record is not an object")
        try:
            status = TaskStatus(_field(raw, "status", str))
        except ValueError as exc:
            raise MalformedStoredData(f"unknown task status {raw['status']!r}") from exc
        return cls(
            id=_field(raw, "id", str),
            title=_field(raw, "title", str),
            description=_field(raw, "description", str),
            status=status,
            is_urgent=_field(raw, "isUrgent", bool),
            created_at=_instant_field(raw, "createdAt"),
            due_date=_instant_field(raw, "dueDate"),
            user_id=_field(raw, "userId", str),
        )


@dataclass(frozen=True, slots=True)
class TaskView:
    """A task as returned to callers, with days_remaining computed at read time."""

    id: str
    title: str
    description: str
    status: TaskStatus
    is_urgent: bool
    created_at: datetime
    due_date: datetime
    user_id: str
    days_remaining: int

    @classmethod
    def from_task(cls, task: Task, *, days_remaining: int) -> TaskView:
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            is_urgent=task.is_urgent,
            created_at=task.created_at,
            due_date=task.due_date,
            user_id=task.user_id,
            days_remaining=days_remaining,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "is_urgent": self.is_urgent,
            "created_at": format_instant(self.created_at),
            "due_date": format_instant(self.due_date),
            "user_id": self.user_id,
            "days_remaining": self.days_remaining,
        }


# -----------------------------
# Query parameters and results
# -----------------------------


@dataclass(slots=True)
class TaskFilters:
    status: TaskStatus | None = None
    is_urgent: bool | None = None
    search: str | None = None


@dataclass(slots=True)
class TaskListParams:
    page: int = 1
    limit: int = 8
    filters: TaskFilters = field(default_factory=TaskFilters)
    sort_by: str = "dueDate"
    sort_order: str = "asc"


@dataclass(slots=True)
class TaskPage:
    items: list[TaskView]
    total: int
    page: int
    total_pages: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [t.to_dict() for t in self.items],
            "total": self.total,
            "page": self.page,
            "total_pages": self.total_pages,
        }


@dataclass(slots=True)
class TaskStats:
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    done: int = 0
    urgent: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "todo": self.todo,
            "in_progress": self.in_progress,
            "done": self.done,
            "urgent": self.urgent,
        }
