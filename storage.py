"""
Storage backends for the three durable collections: users, the active session, tasks.

The stores in task_store.py and auth_store.py depend only on the Storage
protocol. Two implementations are provided:

- MemoryStorage keeps each collection as a JSON text blob in a dict, exactly
  like browser local storage. Used by tests and handy for scripts.
- SqlStorage maps the collections onto Flask-SQLAlchemy tables. Used by the
  web app. Needs an application context.

Every save replaces the whole collection (read-modify-write, no locking).
Records that fail to parse are logged and dropped; they never abort a load.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar

from domain import SessionUser, Task, User
from errors import MalformedStoredData
from models import ActiveSessionModel, TaskModel, UserModel, db

logger = logging.getLogger(__name__)

T = TypeVar("T")

USERS_KEY = "users"
SESSION_KEY = "user"
TASKS_KEY = "tasks"


class Storage(Protocol):
    def load_users(self) -> list[User]: ...
    def save_users(self, users: list[User]) -> None: ...

    # Raises MalformedStoredData if the stored session cannot be read.
    def load_session(self) -> SessionUser | None: ...
    def save_session(self, user: SessionUser | None) -> None: ...

    def load_tasks(self) -> list[Task]: ...
    def save_tasks(self, tasks: list[Task]) -> None: ...


def _parse_records(raw_records: Iterable[Any], parser: Callable[[Any], T], kind: str) -> list[T]:
    out: list[T] = []
    for raw in raw_records:
        try:
            out.append(parser(raw))
        except MalformedStoredData as exc:
            logger.warning("Dropping malformed %s record: %s", kind, exc)
    return out


def _parse_session(payload: str) -> SessionUser:
    try:
        raw = json.loads(payload)
    except ValueError as exc:
        raise MalformedStoredData("session record is not valid JSON") from exc
    return SessionUser.from_record(raw)


class MemoryStorage:
    """
    In-memory storage holding JSON text per key ("users", "user", "tasks").

    Tests write raw text into `blobs` to simulate corrupt local data.
    """

    def __init__(self) -> None:
        self.blobs: dict[str, str] = {}

    def _read_list(self, key: str) -> list[Any]:
        text = self.blobs.get(key)
        if text is None:
            return []
        try:
            data = json.loads(text)
        except ValueError:
            logger.warning("Discarding unreadable %r collection", key)
            return []
        if not isinstance(data, list):
            logger.warning("Discarding %r collection: expected a list", key)
            return []
        return data

    def _write(self, key: str, data: Any) -> None:
        self.blobs[key] = json.dumps(data, ensure_ascii=False)

    # ---- users ----

    def load_users(self) -> list[User]:
        return _parse_records(self._read_list(USERS_KEY), User.from_record, "user")

    def save_users(self, users: list[User]) -> None:
        self._write(USERS_KEY, [u.to_record() for u in users])

    # ---- session ----

    def load_session(self) -> SessionUser | None:
        text = self.blobs.get(SESSION_KEY)
        if text is None:
            return None
        return _parse_session(text)

    def save_session(self, user: SessionUser | None) -> None:
        if user is None:
            self.blobs.pop(SESSION_KEY, None)
            return
        self._write(SESSION_KEY, user.to_record())

    # ---- tasks ----

    def load_tasks(self) -> list[Task]:
        return _parse_records(self._read_list(TASKS_KEY), Task.from_record, "task")

    def save_tasks(self, tasks: list[Task]) -> None:
        self._write(TASKS_KEY, [t.to_record() for t in tasks])


class SqlStorage:
    """
    Flask-SQLAlchemy storage.

    Rows are converted through the same record layout as MemoryStorage, so
    validation and malformed-record handling are shared. Collection order is
    kept in each table's `seq` column.
    """

    # ---- users ----

    def load_users(self) -> list[User]:
        rows = UserModel.query.order_by(UserModel.seq).all()
        return _parse_records((r.to_record() for r in rows), User.from_record, "user")

    def save_users(self, users: list[User]) -> None:
        existing = {row.id: row for row in UserModel.query.all()}
        for seq, user in enumerate(users):
            row = existing.pop(user.id, None)
            if row is None:
                row = UserModel(id=user.id)
                db.session.add(row)
            row.fill_from(user, seq)
        for row in existing.values():
            db.session.delete(row)
        db.session.commit()

    # ---- session ----

    def load_session(self) -> SessionUser | None:
        row = db.session.get(ActiveSessionModel, ActiveSessionModel.SINGLETON_ID)
        if row is None:
            return None
        return _parse_session(row.payload)

    def save_session(self, user: SessionUser | None) -> None:
        row = db.session.get(ActiveSessionModel, ActiveSessionModel.SINGLETON_ID)
        if user is None:
            if row is not None:
                db.session.delete(row)
                db.session.commit()
            return

        payload = json.dumps(user.to_record(), ensure_ascii=False)
        if row is None:
            row = ActiveSessionModel(id=ActiveSessionModel.SINGLETON_ID, payload=payload)
            db.session.add(row)
        else:
            row.payload = payload
        db.session.commit()

    # ---- tasks ----

    def load_tasks(self) -> list[Task]:
        rows = TaskModel.query.order_by(TaskModel.seq).all()
        return _parse_records((r.to_record() for r in rows), Task.from_record, "task")

    def save_tasks(self, tasks: list[Task]) -> None:
        existing = {row.id: row for row in TaskModel.query.all()}
        for seq, task in enumerate(tasks):
            row = existing.pop(task.id, None)
            if row is None:
                row = TaskModel(id=task.id)
                db.session.add(row)
            row.fill_from(task, seq)
        for row in existing.values():
            db.session.delete(row)
        db.session.commit()
