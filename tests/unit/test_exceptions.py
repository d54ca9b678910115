from purchasing.exceptions import (
    AlreadyPending,
    InvalidTransition,
    NoPendingAction,
    NotFound,
    PurchasingError,
    ValidationError,
)
from purchasing.services.numbering_service import format_consecutive


def test_invalid_transition_carries_both_statuses():
    exc = InvalidTransition(3, "received", "pending")

    assert exc.status_code == 409
    assert exc.to_dict() == {
        "code": "INVALID_TRANSITION",
        "message": "Cannot move request from 'received' to 'pending'",
        "details": {
            "request_id": 3,
            "current_status": "received",
            "requested_status": "pending",
        },
    }


def test_validation_error_drops_empty_details():
    exc = ValidationError("quantity is required", field="quantity")

    assert exc.status_code == 422
    assert exc.details == {"field": "quantity"}


def test_all_engine_errors_share_a_base():
    for exc in (
        ValidationError("x"),
        InvalidTransition(1, "pending", "received"),
        NoPendingAction(1),
        AlreadyPending(1, "cancellation-request"),
        NotFound(1),
    ):
        assert isinstance(exc, PurchasingError)
        assert exc.code.isupper()


def test_not_found_is_404():
    assert NotFound(99).status_code == 404


def test_format_consecutive_pads_to_five_digits():
    assert format_consecutive("SC-", 1) == "SC-00001"
    assert format_consecutive("SC-", 12345) == "SC-12345"
    assert format_consecutive("PO", 123456) == "PO123456"
