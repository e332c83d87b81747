"""Directory store for users and drivers.

Holds every account record, keyed by id, with a secondary index on
``(role, normalized email)``. The store never cascades: removing a
requester leaves their service requests in place, the access façade
orchestrates the cascade.
"""

from __future__ import annotations

import json
import logging
import secrets
import threading
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from azanything._constants import DIRECTORY_KEY
from azanything._redact import redact_for_log
from azanything.exceptions import (
    AzError,
    AzStorageError,
    DuplicateIdentityError,
    InvalidRequestError,
    NotFoundError,
)
from azanything.models._base import AzEnum, utcnow
from azanything.models.user import (
    ApprovalStatus,
    DirectoryStats,
    Driver,
    ProfileUpdate,
    Registration,
    User,
    UserRole,
    UserStatus,
    normalize_email,
    parse_directory_record,
)
from azanything.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

_E = TypeVar("_E", bound=AzEnum)


def _new_id() -> str:
    return secrets.token_hex(8)


def _coerce(enum_type: type[_E], value: Any, what: str) -> _E:
    try:
        return enum_type(value)
    except ValueError:
        raise InvalidRequestError(f"unknown {what} {value!r}") from None


def _validation_failed(what: str, exc: ValidationError) -> InvalidRequestError:
    return InvalidRequestError(
        f"invalid {what}: {exc.error_count()} validation error(s)",
        errors=[{"loc": err["loc"], "msg": err["msg"]} for err in exc.errors()],
    )


class DirectoryStore:
    """Keyed store of :class:`User` and :class:`Driver` records."""

    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        *,
        key: str = DIRECTORY_KEY,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._storage = storage
        self._key = key
        self._id_factory = id_factory
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, User] = {}
        self._by_email: dict[tuple[UserRole, str], str] = {}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Replace in-memory state with the persisted directory.

        Returns the number of records loaded. Missing key means an empty
        directory.
        """
        if self._storage is None:
            return 0
        raw = self._storage.get(self._key)
        if raw is None:
            return 0
        try:
            items = json.loads(raw)
            if not isinstance(items, list):
                raise ValueError("directory must be a JSON array")
            records = [parse_directory_record(item) for item in items]
        except (ValueError, TypeError, ValidationError) as exc:
            raise AzStorageError(f"corrupt directory data: {exc}", key=self._key) from exc

        with self._lock:
            self._records.clear()
            self._by_email.clear()
            for record in records:
                self._index(record)
        _logger.debug("Loaded %d directory records", len(records))
        return len(records)

    def _persist(self) -> None:
        if self._storage is None:
            return
        payload = [record.to_storage() for record in self._records.values()]
        self._storage.set(self._key, json.dumps(payload, ensure_ascii=False))

    def _index(self, record: User) -> None:
        email_key = (record.role, record.email_key)
        if email_key in self._by_email and self._by_email[email_key] != record.id:
            raise DuplicateIdentityError(
                f"email already registered for role {record.role}",
                email=record.email,
                role=record.role.value,
            )
        previous = self._records.get(record.id)
        if previous is not None:
            self._by_email.pop((previous.role, previous.email_key), None)
        self._records[record.id] = record
        self._by_email[email_key] = record.id

    def _drop(self, user_id: str) -> None:
        record = self._records.pop(user_id, None)
        if record is not None:
            self._by_email.pop((record.role, record.email_key), None)

    def _commit(self, changes: Mapping[str, User | None]) -> None:
        """Apply record replacements/removals and persist, rolling back on failure."""
        records_before = dict(self._records)
        emails_before = dict(self._by_email)
        try:
            for user_id, record in changes.items():
                if record is None:
                    self._drop(user_id)
                else:
                    self._index(record)
            self._persist()
        except AzError:
            self._records = records_before
            self._by_email = emails_before
            raise

    def _fresh_id(self) -> str:
        while True:
            candidate = self._id_factory()
            if candidate not in self._records:
                return candidate

    # ------------------------------------------------------------------
    # Contract operations
    # ------------------------------------------------------------------

    def register(self, registration: Registration | Mapping[str, Any]) -> User:
        """Insert a new account with a fresh id.

        Raises :class:`DuplicateIdentityError` when the email is already
        used within the role. Providers become :class:`Driver` records
        awaiting approval.
        """
        if not isinstance(registration, Registration):
            try:
                registration = Registration.model_validate(registration)
            except ValidationError as exc:
                raise _validation_failed("registration", exc) from exc

        with self._lock:
            email_key = (registration.role, normalize_email(registration.email))
            if email_key in self._by_email:
                raise DuplicateIdentityError(
                    f"email already registered for role {registration.role}",
                    email=registration.email,
                    role=registration.role.value,
                )
            fields: dict[str, Any] = {
                "id": self._fresh_id(),
                "name": registration.name,
                "email": registration.email,
                "phone": registration.phone,
                "role": registration.role,
                "address": registration.address,
                "created_at": self._clock(),
            }
            record: User
            if registration.role == UserRole.PROVIDER:
                record = Driver(
                    **fields,
                    vehicle_type=registration.vehicle_type,
                    license_number=registration.license_number,
                    approval=ApprovalStatus.PENDING,
                )
            else:
                record = User(**fields)
            self._commit({record.id: record})

        _logger.info("Registered %s %s", record.role.value, record.id)
        _logger.debug("Registration payload: %s", redact_for_log(record))
        return record

    def find(self, email: str, role: UserRole | str) -> User:
        role = _coerce(UserRole, role, "role")
        with self._lock:
            user_id = self._by_email.get((role, normalize_email(email)))
            if user_id is None:
                raise NotFoundError(f"no {role} registered with that email", kind="user")
            return self._records[user_id]

    def get(self, user_id: str) -> User:
        with self._lock:
            record = self._records.get(user_id)
        if record is None:
            raise NotFoundError(f"user {user_id} not found", record_id=user_id, kind="user")
        return record

    def get_driver(self, driver_id: str) -> Driver:
        record = self.get(driver_id)
        if not isinstance(record, Driver):
            raise NotFoundError(f"driver {driver_id} not found", record_id=driver_id, kind="driver")
        return record

    def remove(self, user_id: str) -> User | None:
        """Delete a record. Idempotent: returns ``None`` when absent."""
        with self._lock:
            record = self._records.get(user_id)
            if record is None:
                return None
            self._commit({user_id: None})
        _logger.info("Removed %s %s", record.role.value, user_id)
        return record

    def set_approval(self, driver_id: str, status: ApprovalStatus | str) -> Driver:
        status = _coerce(ApprovalStatus, status, "approval status")
        with self._lock:
            driver = self.get_driver(driver_id)
            updated = driver.model_copy(update={"approval": status})
            self._commit({driver_id: updated})
        _logger.info("Driver %s approval set to %s", driver_id, status.value)
        return updated

    # ------------------------------------------------------------------
    # Profile and status management
    # ------------------------------------------------------------------

    def update_profile(self, user_id: str, update: ProfileUpdate | Mapping[str, Any]) -> User:
        if not isinstance(update, ProfileUpdate):
            try:
                update = ProfileUpdate.model_validate(update)
            except ValidationError as exc:
                raise _validation_failed("profile update", exc) from exc

        with self._lock:
            record = self.get(user_id)
            updated = record.model_copy(update=update.changes())
            self._commit({user_id: updated})
        _logger.info("Updated profile of %s", user_id)
        return updated

    def set_availability(self, driver_id: str, available: bool) -> Driver:
        with self._lock:
            driver = self.get_driver(driver_id)
            updated = driver.model_copy(update={"is_available": bool(available)})
            self._commit({driver_id: updated})
        return updated

    def set_status(self, user_id: str, status: UserStatus | str) -> User:
        status = _coerce(UserStatus, status, "user status")
        with self._lock:
            record = self.get(user_id)
            updated = record.model_copy(update={"status": status})
            self._commit({user_id: updated})
        _logger.info("User %s status set to %s", user_id, status.value)
        return updated

    def seed(self, records: Iterable[User]) -> int:
        """Insert records with their own ids (demo data, imports)."""
        changes: dict[str, User | None] = {}
        with self._lock:
            for record in records:
                if record.id in self._records or record.id in changes:
                    raise DuplicateIdentityError(f"user id {record.id} already present", email=record.email)
                changes[record.id] = record
            self._commit(changes)
        return len(changes)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def users(self, role: UserRole | str | None = None) -> list[User]:
        wanted = _coerce(UserRole, role, "role") if role is not None else None
        with self._lock:
            return [r for r in self._records.values() if wanted is None or r.role == wanted]

    def drivers(self, approval: ApprovalStatus | str | None = None) -> list[Driver]:
        wanted = _coerce(ApprovalStatus, approval, "approval status") if approval is not None else None
        with self._lock:
            return [
                r
                for r in self._records.values()
                if isinstance(r, Driver) and (wanted is None or r.approval == wanted)
            ]

    def search(self, text: str, role: UserRole | str | None = None) -> list[User]:
        """Case-insensitive substring match on name and email."""
        needle = text.strip().lower()
        return [u for u in self.users(role) if not needle or needle in u.name.lower() or needle in u.email_key]

    def stats(self) -> DirectoryStats:
        with self._lock:
            records = list(self._records.values())
        drivers = [r for r in records if isinstance(r, Driver)]
        return DirectoryStats(
            users=len(records) - len(drivers),
            requesters=sum(1 for r in records if r.role == UserRole.REQUESTER),
            administrators=sum(1 for r in records if r.role == UserRole.ADMINISTRATOR),
            drivers=len(drivers),
            approved_drivers=sum(1 for d in drivers if d.is_approved),
            pending_drivers=sum(1 for d in drivers if not d.is_approved),
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._records
