"""
Permission checks for the HTTP layer.

The engine never evaluates permissions; routes call these before invoking the
request store. A token may carry an explicit ``permissions`` claim, otherwise
the role's default set applies.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status

from purchasing.middleware.auth import get_current_user
from purchasing.models.enums import AdministrativeAction, RequestStatus

ALL_PERMISSIONS = frozenset(
    {
        "requests:read",
        "requests:create",
        "requests:edit:pending",
        "requests:edit:approved",
        "requests:status:approve",
        "requests:status:ordered",
        "requests:status:received",
        "requests:status:received-in-warehouse",
        "requests:status:cancel",
        "requests:status:revert-to-approved",
        "requests:status:cancellation-request",
        "requests:status:unapproval-request",
        "requests:status:unapproval-request:approve",
        "requests:reopen",
        "admin:settings",
    }
)

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": ALL_PERMISSIONS,
    "approver": frozenset(
        {
            "requests:read",
            "requests:edit:approved",
            "requests:status:approve",
            "requests:status:cancel",
            "requests:status:revert-to-approved",
            "requests:status:unapproval-request:approve",
            "requests:reopen",
        }
    ),
    "purchaser": frozenset(
        {
            "requests:read",
            "requests:create",
            "requests:edit:pending",
            "requests:status:ordered",
            "requests:status:received",
            "requests:status:cancellation-request",
            "requests:status:unapproval-request",
        }
    ),
    "warehouse": frozenset(
        {
            "requests:read",
            "requests:status:received",
            "requests:status:received-in-warehouse",
        }
    ),
    "viewer": frozenset({"requests:read"}),
}

STATUS_PERMISSIONS = {
    RequestStatus.APPROVED: "requests:status:approve",
    RequestStatus.ORDERED: "requests:status:ordered",
    RequestStatus.RECEIVED: "requests:status:received",
    RequestStatus.RECEIVED_IN_WAREHOUSE: "requests:status:received-in-warehouse",
    RequestStatus.CANCELED: "requests:status:cancel",
}

ACTION_OPEN_PERMISSIONS = {
    AdministrativeAction.CANCELLATION_REQUEST: "requests:status:cancellation-request",
    AdministrativeAction.UNAPPROVAL_REQUEST: "requests:status:unapproval-request",
}

ACTION_RESOLVE_PERMISSIONS = {
    AdministrativeAction.CANCELLATION_REQUEST: "requests:status:cancel",
    AdministrativeAction.UNAPPROVAL_REQUEST: "requests:status:unapproval-request:approve",
}


def permissions_for(current_user: dict) -> frozenset[str]:
    explicit = current_user.get("permissions")
    if explicit is not None:
        return frozenset(explicit)
    return ROLE_PERMISSIONS.get(current_user.get("role", ""), frozenset())


def _forbidden(message: str, code: str = "INSUFFICIENT_PERMISSIONS") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": {"code": code, "message": message}},
    )


def check_permission(current_user: dict, permission: str) -> None:
    if permission not in permissions_for(current_user):
        raise _forbidden(
            f"Role '{current_user.get('role')}' lacks permission '{permission}'"
        )


def require_permission(*permissions: str):
    """
    FastAPI dependency factory: the caller must hold at least one of ``permissions``.

    Usage:
        @router.post("/{request_id}/reopen")
        async def reopen_request(
            current_user: dict = Depends(get_current_user),
            _auth: None = Depends(require_permission("requests:reopen")),
        ):
    """
    async def check(current_user: dict = Depends(get_current_user)):
        granted = permissions_for(current_user)
        if not any(p in granted for p in permissions):
            raise _forbidden(
                f"Role '{current_user.get('role')}' cannot perform this action. "
                f"Required: {permissions}"
            )
        return None

    return check


def status_permission(current_status: str, target: RequestStatus) -> str:
    """ordered -> approved is a revert and needs its own permission."""
    if current_status == RequestStatus.ORDERED.value and target == RequestStatus.APPROVED:
        return "requests:status:revert-to-approved"
    return STATUS_PERMISSIONS.get(target, "requests:status:approve")


def edit_permission(current_status: str) -> str:
    if current_status == RequestStatus.PENDING.value:
        return "requests:edit:pending"
    return "requests:edit:approved"


def check_self_resolution(current_user: dict, requested_by: Optional[str]):
    """Dual control: whoever opened an administrative action cannot resolve it."""
    if requested_by and requested_by == current_user.get("name"):
        raise _forbidden(
            "You cannot resolve an administrative action you requested",
            code="ACTION_SELF_RESOLVE",
        )
