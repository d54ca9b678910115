"""
Typed failures raised by the purchase request engine.

Every failure carries a machine-readable ``code``, the HTTP status the API
layer answers with, and a ``details`` dict with enough context (request id,
current status, requested status) for a caller to render a message.

    PurchasingError
    +-- ValidationError      VALIDATION_ERROR   422
    +-- InvalidTransition    INVALID_TRANSITION 409
    +-- NoPendingAction      NO_PENDING_ACTION  409
    +-- AlreadyPending       ALREADY_PENDING    409
    +-- NotFound             NOT_FOUND          404

None of these are retried by the engine.
"""

from typing import Any, Optional


class PurchasingError(Exception):
    code: str = "PURCHASING_ERROR"
    status_code: int = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = {k: v for k, v in details.items() if v is not None}

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PurchasingError):
    """Missing or out-of-range input."""

    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, **details: Any):
        self.field = field
        super().__init__(message, field=field, **details)


class InvalidTransition(PurchasingError):
    """Status edge not permitted from the current state with the current flags."""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(
        self,
        request_id: Optional[int],
        current_status: str,
        requested_status: str,
        reason: Optional[str] = None,
    ):
        self.request_id = request_id
        self.current_status = current_status
        self.requested_status = requested_status
        message = reason or (
            f"Cannot move request from '{current_status}' to '{requested_status}'"
        )
        super().__init__(
            message,
            request_id=request_id,
            current_status=current_status,
            requested_status=requested_status,
        )


class NoPendingAction(PurchasingError):
    code = "NO_PENDING_ACTION"
    status_code = 409

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(
            f"Request {request_id} has no pending administrative action",
            request_id=request_id,
        )


class AlreadyPending(PurchasingError):
    code = "ALREADY_PENDING"
    status_code = 409

    def __init__(self, request_id: int, pending_action: str):
        self.request_id = request_id
        self.pending_action = pending_action
        super().__init__(
            f"Request {request_id} already has a pending '{pending_action}'",
            request_id=request_id,
            pending_action=pending_action,
        )


class NotFound(PurchasingError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, request_id: Any):
        self.request_id = request_id
        super().__init__(
            f"Purchase request {request_id} not found", request_id=request_id
        )
