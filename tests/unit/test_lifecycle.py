"""
Unit tests for purchasing/services/lifecycle.py

Tests: edge table with and without warehouse reception, effective terminal
state, archived classification, apply_status side effects, reopen and
revert_approval guards. The session is mocked; no database is involved.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from hypothesis import given, settings as hyp_settings
from hypothesis import strategies as st

from purchasing.exceptions import InvalidTransition, ValidationError
from purchasing.models.enums import AdministrativeAction, RequestStatus
from purchasing.models.purchase_request import PurchaseRequest
from purchasing.schemas.settings import RequestSettings
from purchasing.services import lifecycle
from purchasing.services.clock import FixedClock

S = RequestStatus

LEGAL_EDGES = {
    (S.PENDING, S.APPROVED),
    (S.PENDING, S.CANCELED),
    (S.APPROVED, S.ORDERED),
    (S.APPROVED, S.CANCELED),
    (S.ORDERED, S.RECEIVED),
    (S.ORDERED, S.APPROVED),
    (S.ORDERED, S.CANCELED),
    (S.RECEIVED, S.RECEIVED_IN_WAREHOUSE),
}

FLAG_OFF = RequestSettings(use_warehouse_reception=False)
FLAG_ON = RequestSettings(use_warehouse_reception=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _mock_session() -> AsyncMock:
    session = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session


def _make_request(status: RequestStatus = S.PENDING, **overrides) -> PurchaseRequest:
    fields = dict(
        id=1,
        consecutive="SC-00001",
        request_date=datetime(2025, 1, 6, 9, 0),
        required_date=date(2025, 1, 10),
        client_id="C-1001",
        client_name="Ferreteria El Tornillo",
        item_id="ITM-0042",
        item_description="Galvanized steel screws",
        quantity=Decimal("10"),
        priority="medium",
        purchase_type="single-supplier",
        status=status.value,
        pending_action=AdministrativeAction.NONE.value,
        reopened=False,
        has_been_modified=False,
        requested_by="Paula Purchaser",
    )
    fields.update(overrides)
    return PurchaseRequest(**fields)


def _expected_legal(current: RequestStatus, target: RequestStatus, flags: RequestSettings) -> bool:
    if target == S.RECEIVED_IN_WAREHOUSE and not flags.use_warehouse_reception:
        return False
    return (current, target) in LEGAL_EDGES


# ---------------------------------------------------------------------------
# Edge table
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("flags", [FLAG_OFF, FLAG_ON], ids=["flag_off", "flag_on"])
def test_edge_table_matches_documented_edges(flags):
    for current in RequestStatus:
        for target in RequestStatus:
            assert lifecycle.can_transition(current, target, flags) == _expected_legal(
                current, target, flags
            ), (current, target)


def test_received_is_dead_end_without_warehouse_reception():
    assert lifecycle.allowed_transitions(S.RECEIVED, FLAG_OFF) == frozenset()
    assert lifecycle.allowed_transitions(S.RECEIVED, FLAG_ON) == {S.RECEIVED_IN_WAREHOUSE}


def test_received_cannot_be_canceled():
    assert not lifecycle.can_transition(S.RECEIVED, S.CANCELED, FLAG_ON)
    assert not lifecycle.can_transition(S.RECEIVED, S.CANCELED, FLAG_OFF)


def test_nothing_moves_back_to_pending_through_the_table():
    for current in RequestStatus:
        assert not lifecycle.can_transition(current, S.PENDING, FLAG_ON)


def test_effective_terminal_state_follows_flag():
    assert lifecycle.effective_terminal_state(FLAG_OFF) == S.RECEIVED
    assert lifecycle.effective_terminal_state(FLAG_ON) == S.RECEIVED_IN_WAREHOUSE


@pytest.mark.parametrize(
    "status, flags, archived",
    [
        ("received", FLAG_OFF, True),
        ("received", FLAG_ON, False),
        ("received-in-warehouse", FLAG_ON, True),
        ("canceled", FLAG_OFF, True),
        ("canceled", FLAG_ON, True),
        ("ordered", FLAG_OFF, False),
        ("pending", FLAG_ON, False),
    ],
)
def test_is_archived(status, flags, archived):
    assert lifecycle.is_archived(status, flags) is archived


def test_every_status_has_display_config():
    assert set(lifecycle.STATUS_DISPLAY) == set(RequestStatus)
    assert all(cfg.label and cfg.color for cfg in lifecycle.STATUS_DISPLAY.values())


# ---------------------------------------------------------------------------
# Property: random attempts never leave the edge set
# ---------------------------------------------------------------------------


@hyp_settings(max_examples=200, deadline=None)
@given(
    use_warehouse=st.booleans(),
    attempts=st.lists(st.sampled_from(list(RequestStatus)), min_size=1, max_size=25),
)
def test_random_status_attempts_only_follow_legal_edges(use_warehouse, attempts):
    flags = RequestSettings(use_warehouse_reception=use_warehouse)

    async def run():
        session = _mock_session()
        request = _make_request(S.PENDING)
        history_rows = 0
        for target in attempts:
            before = RequestStatus(request.status)
            legal = _expected_legal(before, target, flags)
            try:
                await lifecycle.apply_status(
                    session,
                    request,
                    target,
                    "Andres Approver",
                    None,
                    flags,
                    delivered_quantity=Decimal("8"),
                )
            except InvalidTransition as exc:
                assert not legal, (before, target)
                assert exc.current_status == before.value
                assert exc.requested_status == target.value
                assert request.status == before.value
            else:
                assert legal, (before, target)
                assert request.status == target.value
                history_rows += 1
            assert session.add.call_count == history_rows

    asyncio.run(run())


# ---------------------------------------------------------------------------
# apply_status side effects
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_approve_records_approver_once():
    session = _mock_session()
    request = _make_request(S.PENDING)

    await lifecycle.apply_status(session, request, S.APPROVED, "Andres Approver", None, FLAG_OFF)
    await lifecycle.apply_status(session, request, S.ORDERED, "Paula Purchaser", None, FLAG_OFF)
    await lifecycle.apply_status(session, request, S.APPROVED, "Other Approver", "revert", FLAG_OFF)

    assert request.approved_by == "Andres Approver"
    assert request.last_status_update_by == "Other Approver"
    assert request.last_status_update_notes == "revert"


@pytest.mark.asyncio
async def test_receive_requires_delivered_quantity():
    session = _mock_session()
    request = _make_request(S.ORDERED)

    with pytest.raises(ValidationError) as exc_info:
        await lifecycle.apply_status(session, request, S.RECEIVED, "Wendy Warehouse", None, FLAG_OFF)

    assert exc_info.value.field == "delivered_quantity"
    assert request.status == S.ORDERED.value
    session.add.assert_not_called()


@pytest.mark.asyncio
async def test_receive_sets_received_date_and_quantity():
    clock = FixedClock(datetime(2025, 2, 1, 14, 30))
    session = _mock_session()
    request = _make_request(S.ORDERED)

    await lifecycle.apply_status(
        session, request, S.RECEIVED, "Wendy Warehouse", None, FLAG_OFF,
        delivered_quantity=Decimal("8"), clock=clock,
    )

    assert request.received_date == datetime(2025, 2, 1, 14, 30)
    assert request.delivered_quantity == Decimal("8")
    entry = session.add.call_args[0][0]
    assert entry.status == "received"
    assert entry.timestamp == datetime(2025, 2, 1, 14, 30)


@pytest.mark.asyncio
async def test_cancel_keeps_previous_status_snapshot():
    session = _mock_session()
    request = _make_request(S.ORDERED)

    await lifecycle.apply_status(session, request, S.CANCELED, "Andres Approver", None, FLAG_OFF)

    assert request.status == "canceled"
    assert request.previous_status == "ordered"
    assert request.pending_action == "none"


@pytest.mark.asyncio
async def test_missing_actor_rejected_before_any_change():
    session = _mock_session()
    request = _make_request(S.PENDING)

    with pytest.raises(ValidationError):
        await lifecycle.apply_status(session, request, S.APPROVED, "  ", None, FLAG_OFF)

    assert request.status == "pending"
    session.add.assert_not_called()


# ---------------------------------------------------------------------------
# reopen / revert_approval
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_reopen_from_non_archived_status_fails():
    session = _mock_session()
    request = _make_request(S.RECEIVED)

    with pytest.raises(InvalidTransition):
        await lifecycle.reopen(session, request, "Andres Approver", FLAG_ON)

    assert request.reopened is False


@pytest.mark.asyncio
async def test_reopen_twice_is_a_noop_the_second_time():
    session = _mock_session()
    request = _make_request(S.CANCELED)

    await lifecycle.reopen(session, request, "Andres Approver", FLAG_OFF)
    await lifecycle.reopen(session, request, "Andres Approver", FLAG_OFF)

    assert request.reopened is True
    assert request.status == "pending"
    assert session.add.call_count == 1
    assert session.add.call_args[0][0].notes == lifecycle.REOPEN_NOTE


@pytest.mark.asyncio
async def test_revert_approval_requires_approved():
    session = _mock_session()
    request = _make_request(S.ORDERED)

    with pytest.raises(InvalidTransition):
        await lifecycle.revert_approval(session, request, "Andres Approver", None)

    assert request.status == "ordered"
