from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from azanything._constants import SESSION_KEY
from azanything._seed import demo_users
from azanything.directory import DirectoryStore
from azanything.exceptions import (
    AuthenticationFailedError,
    InvalidRequestError,
    UnauthenticatedError,
)
from azanything.models import Driver, UserRole
from azanything.session import SessionManager, SharedSecretCredentialChecker
from azanything.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _directory(storage: KeyValueStorage | None = None) -> DirectoryStore:
    directory = DirectoryStore(storage, clock=lambda: _NOW)
    directory.seed(demo_users(_NOW))
    return directory


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def sessions(storage: MemoryStorage) -> SessionManager:
    return SessionManager(_directory(), storage, clock=lambda: _NOW)


class TestLogin:
    def test_demo_login(self, sessions: SessionManager, storage: MemoryStorage) -> None:
        session = sessions.login("user@demo.com", "demo123", "requester")
        assert session.actor_id == "1"
        assert session.role is UserRole.REQUESTER
        assert session.started_at == _NOW
        assert sessions.is_authenticated
        stored = json.loads(storage.get(SESSION_KEY) or "{}")
        assert stored["id"] == "1"
        assert stored["email"] == "user@demo.com"

    def test_legacy_role_name(self, sessions: SessionManager) -> None:
        session = sessions.login("driver@demo.com", "demo123", "driver")
        assert isinstance(session.user, Driver)
        assert session.role is UserRole.PROVIDER

    @pytest.mark.parametrize(
        ("email", "password", "role"),
        [
            ("user@demo.com", "wrong", "requester"),
            ("user@demo.com", "demo123", "provider"),
            ("nobody@demo.com", "demo123", "requester"),
            ("user@demo.com", "demo123", "pilot"),
            ("mike@example.com", "demo123", "requester"),
        ],
    )
    def test_rejected(self, sessions: SessionManager, email: str, password: str, role: str) -> None:
        with pytest.raises(AuthenticationFailedError):
            sessions.login(email, password, role)
        assert not sessions.is_authenticated

    def test_custom_secret(self, storage: MemoryStorage) -> None:
        sessions = SessionManager(_directory(), storage, credentials=SharedSecretCredentialChecker("s3cret"))
        with pytest.raises(AuthenticationFailedError):
            sessions.login("admin@demo.com", "demo123", "administrator")
        assert sessions.login("admin@demo.com", "s3cret", "administrator").actor_id == "3"

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            SharedSecretCredentialChecker("")


class TestSessionLifecycle:
    def test_no_session(self, sessions: SessionManager) -> None:
        with pytest.raises(UnauthenticatedError):
            sessions.current_session()

    def test_logout_clears_storage(self, sessions: SessionManager, storage: MemoryStorage) -> None:
        sessions.login("user@demo.com", "demo123", "requester")
        sessions.logout()
        assert storage.get(SESSION_KEY) is None
        assert not sessions.is_authenticated
        # Logging out twice is harmless.
        sessions.logout()

    def test_register_starts_session(self, sessions: SessionManager) -> None:
        session = sessions.register(
            {"name": "Asha", "email": "asha@example.com", "phone": "9000000000", "role": "provider"},
            "pw",
        )
        assert session.role is UserRole.PROVIDER
        assert isinstance(session.user, Driver)
        assert not session.user.is_approved

    def test_register_needs_password(self, sessions: SessionManager) -> None:
        with pytest.raises(InvalidRequestError):
            sessions.register({"name": "Asha", "email": "asha@example.com"}, "")

    def test_update_user_must_be_same_user(self, sessions: SessionManager) -> None:
        sessions.login("user@demo.com", "demo123", "requester")
        other = sessions.login("admin@demo.com", "demo123", "administrator").user
        sessions.login("user@demo.com", "demo123", "requester")
        with pytest.raises(InvalidRequestError):
            sessions.update_user(other)

    def test_refresh_after_removal(self) -> None:
        directory = _directory()
        sessions = SessionManager(directory, MemoryStorage())
        sessions.login("jane@example.com", "demo123", "requester")
        directory.remove("6")
        with pytest.raises(UnauthenticatedError):
            sessions.refresh()
        assert not sessions.is_authenticated


class TestRestore:
    def test_restore_across_restart(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)
        first = SessionManager(_directory(storage), storage)
        first.login("driver@demo.com", "demo123", "provider")

        directory = DirectoryStore(storage)
        directory.load()
        second = SessionManager(directory, JsonFileStorage(tmp_path), clock=lambda: _NOW)
        session = second.restore()
        assert session is not None
        assert session.actor_id == "2"
        assert isinstance(session.user, Driver)
        assert second.current_session() == session

    def test_restore_nothing(self, sessions: SessionManager) -> None:
        assert sessions.restore() is None

    def test_restore_unknown_user(self, storage: MemoryStorage) -> None:
        storage.set(SESSION_KEY, json.dumps({"id": "99", "name": "Gone", "email": "g@x.com", "role": "user"}))
        sessions = SessionManager(_directory(), storage)
        assert sessions.restore() is None
        assert storage.get(SESSION_KEY) is None

    def test_restore_garbage(self, storage: MemoryStorage) -> None:
        storage.set(SESSION_KEY, "not json")
        sessions = SessionManager(_directory(), storage)
        assert sessions.restore() is None
        assert storage.get(SESSION_KEY) is None

    def test_restore_uses_directory_record(self, storage: MemoryStorage) -> None:
        storage.set(SESSION_KEY, json.dumps({"id": "1", "name": "Stale Name", "email": "user@demo.com", "role": "user"}))
        sessions = SessionManager(_directory(), storage)
        session = sessions.restore()
        assert session is not None
        assert session.user.name == "John Doe"
