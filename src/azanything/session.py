"""Session state and the session manager.

A :class:`Session` binds the current actor to their directory record. The
manager writes the record to the session storage key on login,
registration and profile updates, clears it on logout, and restores it at
startup.
"""

from __future__ import annotations

import hmac
import json
import logging
import threading
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from azanything._constants import DEMO_SHARED_SECRET, SESSION_KEY
from azanything.directory import DirectoryStore
from azanything.exceptions import (
    AuthenticationFailedError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
)
from azanything.models._base import UtcDatetime, utcnow
from azanything.models.user import Driver, Registration, User, UserRole, parse_directory_record
from azanything.storage import KeyValueStorage

_logger = logging.getLogger(__name__)


class CredentialChecker(Protocol):
    """Verifies a password for a directory record."""

    def verify(self, user: User, password: str) -> bool: ...


class SharedSecretCredentialChecker:
    """Accepts one fixed password for every account (demo deployments)."""

    def __init__(self, secret: str = DEMO_SHARED_SECRET) -> None:
        if not secret:
            raise ValueError("shared secret must be non-empty")
        self._secret = secret.encode("utf-8")

    def verify(self, user: User, password: str) -> bool:
        return hmac.compare_digest(self._secret, password.encode("utf-8"))


class Session(BaseModel):
    """Authenticated actor.

    Parameters
    ----------
    user : User
        Directory record of the actor (a :class:`Driver` for providers).
    started_at : datetime
        When the session was created or restored.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
    )

    user: Driver | User
    started_at: UtcDatetime = Field(default_factory=utcnow)

    @property
    def actor_id(self) -> str:
        return self.user.id

    @property
    def role(self) -> UserRole:
        return self.user.role

    def age(self, now: datetime | None = None) -> float:
        """Seconds since the session was created."""
        return ((now or utcnow()) - self.started_at).total_seconds()


class SessionManager:
    """Tracks the single current session of this process."""

    def __init__(
        self,
        directory: DirectoryStore,
        storage: KeyValueStorage | None = None,
        *,
        key: str = SESSION_KEY,
        credentials: CredentialChecker | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._directory = directory
        self._storage = storage
        self._key = key
        self._credentials = credentials or SharedSecretCredentialChecker()
        self._clock = clock
        self._lock = threading.RLock()
        self._session: Session | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self, user: User | None) -> None:
        if self._storage is None:
            return
        if user is None:
            self._storage.delete(self._key)
        else:
            self._storage.set(self._key, json.dumps(user.to_storage(), ensure_ascii=False))

    def restore(self) -> Session | None:
        """Reload the persisted session, if any.

        A session whose payload is unreadable or whose user is no longer in
        the directory is discarded.
        """
        if self._storage is None:
            return None
        raw = self._storage.get(self._key)
        if raw is None:
            return None
        try:
            stored = parse_directory_record(json.loads(raw))
        except (ValueError, TypeError, ValidationError) as exc:
            _logger.warning("Discarding unreadable persisted session: %s", exc)
            self._storage.delete(self._key)
            return None

        try:
            current = self._directory.get(stored.id)
        except NotFoundError:
            _logger.warning("Discarding persisted session of unknown user %s", stored.id)
            self._storage.delete(self._key)
            return None

        with self._lock:
            self._session = Session(user=current, started_at=self._clock())
        _logger.debug("Restored session of %s", current.id)
        return self._session

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, role: UserRole | str) -> Session:
        """Authenticate against the directory.

        Raises :class:`AuthenticationFailedError` for unknown accounts,
        inactive accounts and rejected credentials alike.
        """
        try:
            role = UserRole(role)
            user = self._directory.find(email, role)
        except (ValueError, NotFoundError) as exc:
            _logger.info("Login rejected: no matching account")
            raise AuthenticationFailedError("invalid credentials") from exc

        if not user.is_active:
            _logger.info("Login rejected for inactive user %s", user.id)
            raise AuthenticationFailedError("account is inactive")
        if not self._credentials.verify(user, password):
            _logger.info("Login rejected for %s: bad credentials", user.id)
            raise AuthenticationFailedError("invalid credentials")

        return self._start(user)

    def register(self, registration: Registration | Mapping[str, Any], password: str) -> Session:
        """Create a directory record and an authenticated session for it."""
        if not password:
            raise InvalidRequestError("password must be non-empty")
        user = self._directory.register(registration)
        return self._start(user)

    def _start(self, user: User) -> Session:
        with self._lock:
            self._persist(user)
            self._session = Session(user=user, started_at=self._clock())
        _logger.info("Session started for %s %s", user.role.value, user.id)
        return self._session

    def logout(self) -> None:
        with self._lock:
            previous = self._session
            self._session = None
            self._persist(None)
        if previous is not None:
            _logger.info("Session ended for %s", previous.actor_id)

    def current_session(self) -> Session:
        with self._lock:
            if self._session is None:
                raise UnauthenticatedError("no active session")
            return self._session

    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._session is not None

    def update_user(self, user: User) -> Session:
        """Rebind the current session to an edited copy of its own record."""
        with self._lock:
            session = self.current_session()
            if user.id != session.actor_id:
                raise InvalidRequestError("session user cannot be replaced by another user")
            self._persist(user)
            self._session = session.model_copy(update={"user": user})
            return self._session

    def refresh(self) -> Session:
        """Reload the session user from the directory."""
        with self._lock:
            session = self.current_session()
            try:
                user = self._directory.get(session.actor_id)
            except NotFoundError:
                self.logout()
                raise UnauthenticatedError("session user no longer exists") from None
            return self.update_user(user)
