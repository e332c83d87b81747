"""Process-level wiring of the engine."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from azanything._seed import demo_requests, demo_users
from azanything.access.facade import AccessControlFacade
from azanything.config import AzConfig
from azanything.directory import DirectoryStore
from azanything.ledger.store import RequestLedger
from azanything.models._base import utcnow
from azanything.models.user import Registration, UserRole
from azanything.pricing import PriceEstimator, TablePriceEstimator
from azanything.session import CredentialChecker, Session, SessionManager, SharedSecretCredentialChecker
from azanything.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

_logger = logging.getLogger(__name__)


class AzApp:
    """Owns the stores, the session manager and the access façade.

    Usage::

        with AzApp(AzConfig.from_env()) as app:
            app.login("user@demo.com", "demo123", "requester")
            app.access.create_request({...})
    """

    def __init__(
        self,
        config: AzConfig | None = None,
        *,
        storage: KeyValueStorage | None = None,
        credentials: CredentialChecker | None = None,
        price_estimator: PriceEstimator | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config or AzConfig()
        self._clock = clock
        if storage is None:
            if self._config.storage_path:
                storage = JsonFileStorage(self._config.storage_path)
            else:
                storage = MemoryStorage()
        self._storage = storage

        self._directory = DirectoryStore(storage, key=self._config.directory_key, clock=clock)
        self._ledger = RequestLedger(
            self._directory,
            storage,
            key=self._config.requests_key,
            price_estimator=price_estimator
            or TablePriceEstimator(min_cost=self._config.min_cost, max_cost=self._config.max_cost),
            clock=clock,
        )
        self._sessions = SessionManager(
            self._directory,
            storage,
            key=self._config.session_key,
            credentials=credentials or SharedSecretCredentialChecker(self._config.shared_secret),
            clock=clock,
        )
        self._access = AccessControlFacade(self._sessions, self._ledger, self._directory)
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> AzApp:
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def start(self) -> AzApp:
        """Load persisted state once; seed demo data into an empty directory if configured."""
        if self._started:
            return self
        users = self._directory.load()
        requests = self._ledger.load()
        if self._config.seed_demo_data and users == 0:
            now = self._clock()
            users = self._directory.seed(demo_users(now))
            if requests == 0:
                requests = self._ledger.seed(demo_requests(now))
            _logger.info("Seeded demo data")
        session = self._sessions.restore()
        self._started = True
        _logger.info(
            "Started with %d user(s), %d request(s)%s",
            users,
            requests,
            f", session of {session.actor_id}" if session is not None else "",
        )
        return self

    def close(self) -> None:
        self._started = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> AzConfig:
        return self._config

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    @property
    def directory(self) -> DirectoryStore:
        return self._directory

    @property
    def ledger(self) -> RequestLedger:
        return self._ledger

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    @property
    def access(self) -> AccessControlFacade:
        return self._access

    # ------------------------------------------------------------------
    # Session shortcuts
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, role: UserRole | str) -> Session:
        return self._sessions.login(email, password, role)

    def register(self, registration: Registration | Mapping[str, Any], password: str) -> Session:
        return self._sessions.register(registration, password)

    def logout(self) -> None:
        self._sessions.logout()
