"""Custom exception hierarchy for azanything."""

from __future__ import annotations


class AzError(Exception):
    """Base exception for all azanything errors."""


class AzConfigError(AzError):
    """Invalid or missing configuration."""


class AzStorageError(AzError):
    """Persisted state could not be read or written."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class InvalidRequestError(AzError):
    """Malformed creation or update payload."""

    def __init__(self, message: str, *, errors: list[dict[str, object]] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class NotFoundError(AzError):
    """A referenced record does not exist."""

    def __init__(self, message: str, *, record_id: str = "", kind: str = "") -> None:
        self.record_id = record_id
        self.kind = kind
        super().__init__(message)


class IllegalTransitionError(AzError):
    """Requested status change is not an edge of the lifecycle graph.

    Also raised to the loser of a race: once another caller has moved the
    request out of the expected status, the compare-and-set fails here.
    """

    def __init__(self, message: str, *, request_id: str = "", current: str = "", target: str = "") -> None:
        self.request_id = request_id
        self.current = current
        self.target = target
        super().__init__(message)


class AccessDeniedError(AzError):
    """Base for actor/role mismatches."""

    def __init__(self, message: str, *, actor_id: str = "", operation: str = "") -> None:
        self.actor_id = actor_id
        self.operation = operation
        super().__init__(message)


class UnauthorizedError(AccessDeniedError):
    """The actor is not the one the transition requires (e.g. not the assigned provider)."""


class ForbiddenError(AccessDeniedError):
    """The actor's role may not use this operation at all."""

    def __init__(self, message: str, *, actor_id: str = "", operation: str = "", role: str = "") -> None:
        self.role = role
        super().__init__(message, actor_id=actor_id, operation=operation)


class AuthenticationError(AzError):
    """Base for session-level failures."""


class AuthenticationFailedError(AuthenticationError):
    """Login rejected: unknown identity, inactive account or bad credentials."""


class UnauthenticatedError(AuthenticationError):
    """No active session."""


class DuplicateIdentityError(AzError):
    """Email already registered within the same role."""

    def __init__(self, message: str, *, email: str = "", role: str = "") -> None:
        self.email = email
        self.role = role
        super().__init__(message)
