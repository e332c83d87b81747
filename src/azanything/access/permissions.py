"""Role → permitted operations.

A pure mapping consumed by the access façade. Presentation code can use
:func:`permitted_operations` to decide which actions to offer.
"""

from __future__ import annotations

from enum import StrEnum

from azanything.exceptions import ForbiddenError
from azanything.models.user import UserRole


class Operation(StrEnum):
    # requester
    CREATE_REQUEST = "create_request"
    CANCEL_REQUEST = "cancel_request"
    VIEW_OWN_REQUESTS = "view_own_requests"
    # provider
    VIEW_AVAILABLE_REQUESTS = "view_available_requests"
    VIEW_ASSIGNMENTS = "view_assignments"
    ACCEPT_REQUEST = "accept_request"
    DECLINE_REQUEST = "decline_request"
    START_SERVICE = "start_service"
    COMPLETE_SERVICE = "complete_service"
    ABANDON_SERVICE = "abandon_service"
    SET_AVAILABILITY = "set_availability"
    # administrator
    VIEW_ALL_REQUESTS = "view_all_requests"
    DELETE_REQUEST = "delete_request"
    SET_APPROVAL = "set_approval"
    REMOVE_USER = "remove_user"
    LIST_USERS = "list_users"
    SET_USER_STATUS = "set_user_status"
    VIEW_STATS = "view_stats"
    # everyone
    UPDATE_PROFILE = "update_profile"


ROLE_PERMISSIONS: dict[UserRole, frozenset[Operation]] = {
    UserRole.REQUESTER: frozenset(
        {
            Operation.CREATE_REQUEST,
            Operation.CANCEL_REQUEST,
            Operation.VIEW_OWN_REQUESTS,
            Operation.UPDATE_PROFILE,
        }
    ),
    UserRole.PROVIDER: frozenset(
        {
            Operation.VIEW_AVAILABLE_REQUESTS,
            Operation.VIEW_ASSIGNMENTS,
            Operation.ACCEPT_REQUEST,
            Operation.DECLINE_REQUEST,
            Operation.START_SERVICE,
            Operation.COMPLETE_SERVICE,
            Operation.ABANDON_SERVICE,
            Operation.SET_AVAILABILITY,
            Operation.UPDATE_PROFILE,
        }
    ),
    UserRole.ADMINISTRATOR: frozenset(
        {
            Operation.VIEW_ALL_REQUESTS,
            Operation.DELETE_REQUEST,
            Operation.SET_APPROVAL,
            Operation.REMOVE_USER,
            Operation.LIST_USERS,
            Operation.SET_USER_STATUS,
            Operation.VIEW_STATS,
            Operation.UPDATE_PROFILE,
        }
    ),
}


def permitted_operations(role: UserRole | str) -> frozenset[Operation]:
    return ROLE_PERMISSIONS.get(UserRole(role), frozenset())


def is_permitted(role: UserRole | str, operation: Operation) -> bool:
    return operation in permitted_operations(role)


def require_permission(role: UserRole | str, operation: Operation, *, actor_id: str = "") -> None:
    """Raise :class:`ForbiddenError` unless *role* may perform *operation*."""
    if not is_permitted(role, operation):
        role_value = UserRole(role).value
        raise ForbiddenError(
            f"{role_value} may not {operation.value.replace('_', ' ')}",
            actor_id=actor_id,
            operation=operation.value,
            role=role_value,
        )
