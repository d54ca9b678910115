"""
Administrative action workflow: dual control for destructive changes.

One actor opens a cancellation or un-approval request; the status does not
move. A second decision resolves it: approving applies the effect through the
state machine, rejecting clears the proposal and leaves the status as it was.

Reverting ``ordered`` to ``approved`` is a plain status update and is not
offered here; un-approval is only accepted while the request is approved.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from purchasing.exceptions import (
    AlreadyPending,
    InvalidTransition,
    NoPendingAction,
    ValidationError,
)
from purchasing.models.enums import AdministrativeAction, RequestStatus
from purchasing.models.purchase_request import PurchaseRequest
from purchasing.schemas.settings import RequestSettings
from purchasing.services import lifecycle
from purchasing.services.clock import Clock, system_clock
from purchasing.services.history_service import append_history, require_actor

logger = structlog.get_logger()

ACTION_LABELS = {
    AdministrativeAction.CANCELLATION_REQUEST: "Cancellation",
    AdministrativeAction.UNAPPROVAL_REQUEST: "Un-approval",
}

_ACTION_TARGETS = {
    AdministrativeAction.CANCELLATION_REQUEST: RequestStatus.CANCELED,
    AdministrativeAction.UNAPPROVAL_REQUEST: RequestStatus.PENDING,
}


def _with_notes(prefix: str, notes: Optional[str]) -> str:
    return f"{prefix}: {notes}" if notes else f"{prefix}."


def _check_eligible(
    request: PurchaseRequest, action: AdministrativeAction, settings: RequestSettings
) -> None:
    target = _ACTION_TARGETS[action]
    if action == AdministrativeAction.CANCELLATION_REQUEST:
        eligible = lifecycle.can_transition(
            RequestStatus(request.status), RequestStatus.CANCELED, settings
        )
    else:
        eligible = request.status == RequestStatus.APPROVED.value
    if not eligible:
        raise InvalidTransition(
            request.id,
            request.status,
            target.value,
            reason=(
                f"A {ACTION_LABELS[action].lower()} request cannot be opened "
                f"while the request is '{request.status}'"
            ),
        )


async def request_action(
    session: AsyncSession,
    request: PurchaseRequest,
    action: AdministrativeAction,
    actor: str,
    notes: Optional[str],
    settings: RequestSettings,
    clock: Clock = system_clock,
) -> PurchaseRequest:
    """Open a proposal. Snapshots the current status; the status itself is unchanged."""
    require_actor(actor)
    action = AdministrativeAction(action)
    if action == AdministrativeAction.NONE:
        raise ValidationError(
            "action must be a cancellation or un-approval request", field="action"
        )
    if request.pending is not None:
        raise AlreadyPending(request.id, request.pending_action)
    _check_eligible(request, action, settings)

    request.open_pending_action(action, actor)
    await append_history(
        session,
        request.id,
        request.status,
        actor,
        _with_notes(f"{ACTION_LABELS[action]} requested", notes),
        clock=clock,
    )

    logger.info(
        "administrative_action_opened",
        request_id=request.id,
        action=action.value,
        snapshot_status=request.previous_status,
        by=actor,
    )
    return request


async def resolve_action(
    session: AsyncSession,
    request: PurchaseRequest,
    approve: bool,
    actor: str,
    notes: Optional[str],
    settings: RequestSettings,
    clock: Clock = system_clock,
) -> PurchaseRequest:
    """Approve (apply the effect) or reject (restore the proposal-free state) an open action."""
    require_actor(actor)
    pending = request.pending
    if pending is None:
        raise NoPendingAction(request.id)

    label = ACTION_LABELS[pending.kind]
    if approve:
        if pending.kind == AdministrativeAction.CANCELLATION_REQUEST:
            await lifecycle.apply_status(
                session,
                request,
                RequestStatus.CANCELED,
                actor,
                _with_notes(f"{label} approved", notes),
                settings,
                clock=clock,
            )
        else:
            await lifecycle.revert_approval(
                session,
                request,
                actor,
                _with_notes(f"{label} approved", notes),
                clock=clock,
            )
    else:
        request.clear_pending_action()
        await append_history(
            session,
            request.id,
            request.status,
            actor,
            _with_notes(f"{label} request rejected", notes),
            clock=clock,
        )

    logger.info(
        "administrative_action_resolved",
        request_id=request.id,
        action=pending.kind.value,
        approved=approve,
        status=request.status,
        by=actor,
    )
    return request
