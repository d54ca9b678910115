"""
Lifecycle state machine for purchase requests.

Legal edges (received-in-warehouse only exists when warehouse reception is on):

    pending                -> approved | canceled
    approved               -> ordered | canceled
    ordered                -> received | approved | canceled
    received               -> received-in-warehouse
    received-in-warehouse  -> (terminal)
    canceled               -> (terminal)

Two further moves back to ``pending`` exist outside this table, each with its
own entry point: ``reopen`` (from the effective terminal state or canceled)
and ``revert_approval`` (approved -> pending, reached only through an approved
un-approval request). This module is the only place that assigns ``status``.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from purchasing.exceptions import InvalidTransition, ValidationError
from purchasing.models.enums import RequestPriority, RequestStatus
from purchasing.models.purchase_request import PurchaseRequest
from purchasing.schemas.settings import RequestSettings
from purchasing.services.clock import Clock, system_clock
from purchasing.services.history_service import append_history, require_actor

logger = structlog.get_logger()

REOPEN_NOTE = "Request reopened."
UNAPPROVAL_NOTE = "Approval withdrawn."


@dataclass(frozen=True)
class DisplayConfig:
    label: str
    color: str


STATUS_DISPLAY: dict[RequestStatus, DisplayConfig] = {
    RequestStatus.PENDING: DisplayConfig("Pending", "bg-yellow-500"),
    RequestStatus.APPROVED: DisplayConfig("Approved", "bg-green-500"),
    RequestStatus.ORDERED: DisplayConfig("Ordered", "bg-blue-500"),
    RequestStatus.RECEIVED: DisplayConfig("Received", "bg-teal-500"),
    RequestStatus.RECEIVED_IN_WAREHOUSE: DisplayConfig("In Warehouse", "bg-gray-700"),
    RequestStatus.CANCELED: DisplayConfig("Canceled", "bg-red-700"),
}

PRIORITY_DISPLAY: dict[RequestPriority, DisplayConfig] = {
    RequestPriority.LOW: DisplayConfig("Low", "text-gray-500"),
    RequestPriority.MEDIUM: DisplayConfig("Medium", "text-blue-500"),
    RequestPriority.HIGH: DisplayConfig("High", "text-yellow-600"),
    RequestPriority.URGENT: DisplayConfig("Urgent", "text-red-600"),
}

_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.APPROVED, RequestStatus.CANCELED}),
    RequestStatus.APPROVED: frozenset({RequestStatus.ORDERED, RequestStatus.CANCELED}),
    RequestStatus.ORDERED: frozenset(
        {RequestStatus.RECEIVED, RequestStatus.APPROVED, RequestStatus.CANCELED}
    ),
    RequestStatus.RECEIVED: frozenset({RequestStatus.RECEIVED_IN_WAREHOUSE}),
    RequestStatus.RECEIVED_IN_WAREHOUSE: frozenset(),
    RequestStatus.CANCELED: frozenset(),
}


def effective_terminal_state(settings: RequestSettings) -> RequestStatus:
    if settings.use_warehouse_reception:
        return RequestStatus.RECEIVED_IN_WAREHOUSE
    return RequestStatus.RECEIVED


def is_archived(status: str, settings: RequestSettings) -> bool:
    """Finished requests: the effective terminal state or canceled."""
    return status in (
        effective_terminal_state(settings).value,
        RequestStatus.CANCELED.value,
    )


def allowed_transitions(
    current: RequestStatus, settings: RequestSettings
) -> frozenset[RequestStatus]:
    targets = _TRANSITIONS[current]
    if not settings.use_warehouse_reception:
        targets = targets - {RequestStatus.RECEIVED_IN_WAREHOUSE}
    return targets


def can_transition(
    current: RequestStatus, target: RequestStatus, settings: RequestSettings
) -> bool:
    return target in allowed_transitions(current, settings)


def check_transition(
    request: PurchaseRequest, target: RequestStatus, settings: RequestSettings
) -> None:
    current = RequestStatus(request.status)
    if not can_transition(current, target, settings):
        raise InvalidTransition(request.id, current.value, target.value)


def _record_status(
    request: PurchaseRequest,
    new_status: RequestStatus,
    actor: str,
    notes: Optional[str],
) -> None:
    request.status = new_status.value
    request.last_status_update_by = actor
    request.last_status_update_notes = notes


async def apply_status(
    session: AsyncSession,
    request: PurchaseRequest,
    new_status: RequestStatus,
    actor: str,
    notes: Optional[str],
    settings: RequestSettings,
    delivered_quantity: Optional[Decimal] = None,
    arrival_date: Optional[date] = None,
    manual_supplier: Optional[str] = None,
    erp_order_number: Optional[str] = None,
    clock: Clock = system_clock,
) -> PurchaseRequest:
    """
    Validate and apply one edge of the state machine, then append its ledger row.

    Everything is checked before the aggregate is touched, so a rejected call
    leaves both the request and its history unchanged.
    """
    require_actor(actor)
    new_status = RequestStatus(new_status)
    check_transition(request, new_status, settings)

    if new_status == RequestStatus.RECEIVED:
        if delivered_quantity is None:
            raise ValidationError(
                "delivered_quantity is required when receiving a request",
                field="delivered_quantity",
            )
        if delivered_quantity < 0:
            raise ValidationError(
                "delivered_quantity cannot be negative",
                field="delivered_quantity",
                value=str(delivered_quantity),
            )

    old_status = request.status
    now = clock.now()

    if new_status == RequestStatus.APPROVED and not request.approved_by:
        request.approved_by = actor
    if new_status == RequestStatus.ORDERED and arrival_date is not None:
        request.arrival_date = arrival_date
    if new_status == RequestStatus.RECEIVED:
        request.delivered_quantity = delivered_quantity
        request.received_date = now
    if new_status == RequestStatus.RECEIVED_IN_WAREHOUSE:
        request.received_in_warehouse_by = actor
    if manual_supplier is not None:
        request.manual_supplier = manual_supplier
    if erp_order_number is not None:
        request.erp_order_number = erp_order_number

    request.clear_pending_action()
    if new_status == RequestStatus.CANCELED:
        # Restore point for un-cancel tooling
        request.previous_status = old_status

    _record_status(request, new_status, actor, notes)
    await append_history(session, request.id, new_status.value, actor, notes, clock=clock)

    logger.info(
        "request_status_updated",
        request_id=request.id,
        consecutive=request.consecutive,
        from_status=old_status,
        to_status=new_status.value,
        by=actor,
    )
    return request


async def reopen(
    session: AsyncSession,
    request: PurchaseRequest,
    actor: str,
    settings: RequestSettings,
    clock: Clock = system_clock,
) -> PurchaseRequest:
    """
    Force a finished or canceled request back to pending and mark it reopened.

    Calling it again on a request it already reopened is a no-op.
    """
    require_actor(actor)
    if request.reopened and request.status == RequestStatus.PENDING.value:
        logger.info("request_reopen_noop", request_id=request.id)
        return request

    if not is_archived(request.status, settings):
        raise InvalidTransition(
            request.id,
            request.status,
            RequestStatus.PENDING.value,
            reason=(
                f"Only requests in '{effective_terminal_state(settings).value}' "
                f"or 'canceled' can be reopened (current: '{request.status}')"
            ),
        )

    old_status = request.status
    request.reopened = True
    request.clear_pending_action()
    _record_status(request, RequestStatus.PENDING, actor, REOPEN_NOTE)
    await append_history(
        session, request.id, RequestStatus.PENDING.value, actor, REOPEN_NOTE, clock=clock
    )

    logger.info(
        "request_reopened",
        request_id=request.id,
        consecutive=request.consecutive,
        from_status=old_status,
        by=actor,
    )
    return request


async def revert_approval(
    session: AsyncSession,
    request: PurchaseRequest,
    actor: str,
    notes: Optional[str],
    clock: Clock = system_clock,
) -> PurchaseRequest:
    """approved -> pending. Only reached by approving an un-approval request."""
    require_actor(actor)
    if request.status != RequestStatus.APPROVED.value:
        raise InvalidTransition(
            request.id,
            request.status,
            RequestStatus.PENDING.value,
            reason="Only approved requests can have their approval withdrawn",
        )

    note = notes or UNAPPROVAL_NOTE
    request.clear_pending_action()
    _record_status(request, RequestStatus.PENDING, actor, note)
    await append_history(
        session, request.id, RequestStatus.PENDING.value, actor, note, clock=clock
    )

    logger.info("request_approval_reverted", request_id=request.id, by=actor)
    return request
