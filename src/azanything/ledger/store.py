"""Request ledger: the authoritative request collection.

Every status change is a compare-and-set on ``(id, expected status)``
performed under one lock together with the guard check and the write to
storage, so concurrent callers observe transitions as single steps.
"""

from __future__ import annotations

import logging
import secrets
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from azanything._constants import REQUESTS_KEY
from azanything._redact import redact_for_log
from azanything.directory import DirectoryStore
from azanything.exceptions import AzStorageError, IllegalTransitionError, InvalidRequestError, NotFoundError
from azanything.ledger.transitions import apply_event, coerce_target, resolve_event
from azanything.models._base import utcnow
from azanything.models.request import (
    NewServiceRequest,
    RequestStatus,
    RequestStats,
    ServiceRequest,
    dump_requests,
    load_requests,
)
from azanything.models.user import UserRole
from azanything.pricing import PriceEstimator, TablePriceEstimator
from azanything.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

RequestPredicate = Callable[[ServiceRequest], bool]


def _new_id() -> str:
    return secrets.token_hex(8)


class RequestQuery:
    """Lazy, restartable view over ledger snapshots.

    Each iteration takes a fresh snapshot of the ledger (most recently
    created first) and filters it lazily; iterating twice reflects any
    mutation made in between.
    """

    def __init__(self, source: Callable[[], list[ServiceRequest]], predicate: RequestPredicate | None = None) -> None:
        self._source = source
        self._predicate = predicate

    def __iter__(self) -> Iterator[ServiceRequest]:
        predicate = self._predicate
        for request in self._source():
            if predicate is None or predicate(request):
                yield request

    def filter(self, predicate: RequestPredicate) -> RequestQuery:
        outer = self._predicate
        if outer is None:
            return RequestQuery(self._source, predicate)
        return RequestQuery(self._source, lambda r: outer(r) and predicate(r))

    def first(self) -> ServiceRequest | None:
        return next(iter(self), None)

    def count(self) -> int:
        return sum(1 for _ in self)

    def to_list(self) -> list[ServiceRequest]:
        return list(self)


class RequestLedger:
    """Holds :class:`ServiceRequest` records and enforces the lifecycle."""

    def __init__(
        self,
        directory: DirectoryStore,
        storage: KeyValueStorage | None = None,
        *,
        key: str = REQUESTS_KEY,
        price_estimator: PriceEstimator | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._directory = directory
        self._storage = storage
        self._key = key
        self._pricing = price_estimator or TablePriceEstimator()
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        # Insertion order, oldest first.
        self._records: dict[str, ServiceRequest] = {}
        self._issued_ids: set[str] = set()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Read the persisted request array (most recent first)."""
        if self._storage is None:
            return 0
        raw = self._storage.get(self._key)
        if raw is None:
            return 0
        try:
            requests = load_requests(raw)
        except (ValueError, ValidationError) as exc:
            raise AzStorageError(f"corrupt request data: {exc}", key=self._key) from exc

        with self._lock:
            self._records.clear()
            for request in reversed(requests):
                self._records[request.id] = request
                self._issued_ids.add(request.id)
        _logger.debug("Loaded %d service requests", len(requests))
        return len(requests)

    def snapshot(self) -> list[ServiceRequest]:
        """All requests, most recently created first."""
        with self._lock:
            return list(reversed(self._records.values()))

    def dump_json(self) -> str:
        return dump_requests(self.snapshot())

    def _persist(self) -> None:
        if self._storage is None:
            return
        self._storage.set(self._key, self.dump_json())

    def _commit(self, changes: Mapping[str, ServiceRequest | None]) -> None:
        """Apply record replacements/removals and persist, rolling back on storage failure."""
        before = dict(self._records)
        for request_id, record in changes.items():
            if record is None:
                self._records.pop(request_id, None)
            else:
                self._records[request_id] = record
        try:
            self._persist()
        except AzStorageError:
            self._records = before
            raise

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def add_request(self, requester_id: str, payload: NewServiceRequest | Mapping[str, Any]) -> ServiceRequest:
        """Create a pending request for *requester_id*.

        Raises
        ------
        NotFoundError
            The requester does not exist.
        InvalidRequestError
            Payload validation failed, or the id is not a requester.
        """
        if not isinstance(payload, NewServiceRequest):
            try:
                payload = NewServiceRequest.model_validate(payload)
            except ValidationError as exc:
                raise InvalidRequestError(
                    f"invalid service request: {exc.error_count()} validation error(s)",
                    errors=[{"loc": err["loc"], "msg": err["msg"]} for err in exc.errors()],
                ) from exc

        requester = self._directory.get(requester_id)
        if requester.role != UserRole.REQUESTER:
            raise InvalidRequestError(f"user {requester_id} is not a requester")

        estimated_cost = self._pricing.estimate(payload.service_type, payload.vehicle_type)
        with self._lock:
            request_id = self._fresh_id()
            request = ServiceRequest(
                id=request_id,
                requester_id=requester_id,
                service_type=payload.service_type,
                vehicle_type=payload.vehicle_type,
                pickup_location=payload.pickup_location,
                destination=payload.destination,
                description=payload.description,
                contact_number=payload.contact_number,
                requested_at=self._clock(),
                scheduled_time=payload.scheduled_time,
                status=RequestStatus.PENDING,
                estimated_cost=estimated_cost,
            )
            self._issued_ids.add(request_id)
            self._commit({request_id: request})

        _logger.info("Created %s request %s for %s", request.service_type.value, request_id, requester_id)
        _logger.debug("Request payload: %s", redact_for_log(request))
        return request

    def _fresh_id(self) -> str:
        while True:
            candidate = self._id_factory()
            if candidate not in self._issued_ids:
                return candidate

    def seed(self, requests: Iterable[ServiceRequest]) -> int:
        """Insert existing records (demo data). Iterable order is oldest first."""
        count = 0
        with self._lock:
            changes: dict[str, ServiceRequest | None] = {}
            for request in requests:
                if request.id in self._issued_ids or request.id in changes:
                    raise InvalidRequestError(f"request id {request.id} already issued")
                changes[request.id] = request
                count += 1
            self._commit(changes)
            self._issued_ids.update(changes)
        return count

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get(self, request_id: str) -> ServiceRequest:
        with self._lock:
            request = self._records.get(request_id)
        if request is None:
            raise NotFoundError(f"request {request_id} not found", record_id=request_id, kind="request")
        return request

    def compare_and_set(self, request_id: str, expected: RequestStatus | str, record: ServiceRequest) -> ServiceRequest:
        """Store *record* only if the request is still in status *expected*.

        Raises :class:`IllegalTransitionError` when another caller moved the
        request first.
        """
        try:
            expected = RequestStatus(expected)
        except ValueError:
            raise InvalidRequestError(f"unknown expected status {expected!r}") from None
        if record.id != request_id:
            raise InvalidRequestError(f"record id {record.id} does not match {request_id}")
        with self._lock:
            current = self.get(request_id)
            if current.status != expected:
                raise IllegalTransitionError(
                    f"request {request_id} is {current.status}, expected {expected}",
                    request_id=request_id,
                    current=current.status.value,
                    target=record.status.value,
                )
            if record.requested_at != current.requested_at:
                raise InvalidRequestError("requestedAt is immutable")
            self._commit({request_id: record})
        return record

    def transition(
        self,
        request_id: str,
        target: RequestStatus | str,
        actor_id: str,
        *,
        actual_cost: float | None = None,
    ) -> ServiceRequest:
        """Move a request to *target* on behalf of *actor_id*.

        Raises
        ------
        NotFoundError
            Unknown request or actor.
        IllegalTransitionError
            ``(current, target)`` is not an edge (including lost races).
        UnauthorizedError
            The actor does not satisfy the edge's guard.
        InvalidRequestError
            ``actual_cost`` given for anything but completion, or negative.
        """
        target_status = coerce_target(self.get(request_id), target)
        if actual_cost is not None:
            if target_status != RequestStatus.COMPLETED:
                raise InvalidRequestError("actualCost can only be set when completing a request")
            if actual_cost < 0:
                raise InvalidRequestError("actualCost must be non-negative")

        with self._lock:
            current = self.get(request_id)
            actor = self._directory.get(actor_id)
            event = resolve_event(current, target_status, actor)
            updated = apply_event(current, event, actor_id=actor_id, at=self._clock(), actual_cost=actual_cost)
            self.compare_and_set(request_id, current.status, updated)

        _logger.info(
            "Request %s: %s -> %s (%s by %s)",
            request_id,
            current.status.value,
            updated.status.value,
            event.value,
            actor_id,
        )
        return updated

    # ------------------------------------------------------------------
    # Queries and removal
    # ------------------------------------------------------------------

    def query(self, predicate: RequestPredicate | None = None) -> RequestQuery:
        return RequestQuery(self.snapshot, predicate)

    def delete_request(self, request_id: str) -> ServiceRequest | None:
        """Remove a request. Idempotent: returns ``None`` when absent."""
        with self._lock:
            request = self._records.get(request_id)
            if request is None:
                return None
            self._commit({request_id: None})
        _logger.info("Deleted request %s", request_id)
        return request

    def cascade_delete_by_requester(self, requester_id: str) -> int:
        """Remove every request owned by *requester_id*; returns how many."""
        with self._lock:
            doomed = [rid for rid, r in self._records.items() if r.requester_id == requester_id]
            if doomed:
                self._commit(dict.fromkeys(doomed))
        if doomed:
            _logger.info("Deleted %d request(s) of requester %s", len(doomed), requester_id)
        return len(doomed)

    def stats(self) -> RequestStats:
        return RequestStats.from_requests(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
