from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from domain import SessionUser, User, utcnow
from errors import InvalidCredentials, MalformedStoredData, NotAuthenticated, UsernameTaken
from storage import Storage

logger = logging.getLogger(__name__)


class AuthStore:
    """
    Users and the single active session.

    An AuthStore is the session object: the web layer builds one per request
    and passes it where needed, instead of keeping the session in a global.
    The session itself is persisted through the storage backend, so a new
    AuthStore over the same storage picks it up again.

    Passwords are compared as plain strings. There is no hashing here.
    """

    def __init__(self, storage: Storage, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._storage = storage
        self._clock = clock
        self.current_user: SessionUser | None = self._restore()

    def _restore(self) -> SessionUser | None:
        try:
            return self._storage.load_session()
        except MalformedStoredData as exc:
            logger.warning("Discarding unreadable stored session: %s", exc)
            self._storage.save_session(None)
            return None

    def _start_session(self, user: User) -> SessionUser:
        session_user = user.public()
        self._storage.save_session(session_user)
        self.current_user = session_user
        return session_user

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def require_user(self) -> SessionUser:
        if self.current_user is None:
            raise NotAuthenticated()
        return self.current_user

    def register(self, username: str, email: str, password: str) -> SessionUser:
        users = self._storage.load_users()
        if any(u.username == username for u in users):
            logger.info("Registration rejected, username taken: %s", username)
            raise UsernameTaken(username)

        user = User(
            id=uuid.uuid4().hex,
            username=username,
            email=email,
            password=password,
            created_at=self._clock(),
        )
        users.append(user)
        self._storage.save_users(users)
        logger.info("User registered id=%s username=%s", user.id, username)
        return self._start_session(user)

    def login(self, username: str, password: str) -> SessionUser:
        for user in self._storage.load_users():
            if user.username == username and user.password == password:
                logger.info("User logged in id=%s", user.id)
                return self._start_session(user)
        logger.info("Failed login for username=%s", username)
        raise InvalidCredentials()

    def logout(self) -> None:
        if self.current_user is not None:
            logger.info("User logged out id=%s", self.current_user.id)
        self._storage.save_session(None)
        self.current_user = None
