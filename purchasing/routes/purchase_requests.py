from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from purchasing.database import get_db
from purchasing.exceptions import NoPendingAction
from purchasing.middleware.auth import get_current_user
from purchasing.middleware.authorization import (
    ACTION_OPEN_PERMISSIONS,
    ACTION_RESOLVE_PERMISSIONS,
    check_permission,
    check_self_resolution,
    edit_permission,
    require_permission,
    status_permission,
)
from purchasing.middleware.store import get_request_store
from purchasing.models.enums import RequestStatus
from purchasing.models.purchase_request import PurchaseRequest
from purchasing.schemas.purchase_request import (
    AdministrativeActionCreate,
    AdministrativeActionResolve,
    HistoryEntryResponse,
    PurchaseRequestCreate,
    PurchaseRequestResponse,
    PurchaseRequestUpdate,
    PriorityDisplayResponse,
    StatusDisplayResponse,
    StatusUpdateRequest,
)
from purchasing.schemas.settings import RequestSettings
from purchasing.services.lifecycle import PRIORITY_DISPLAY, STATUS_DISPLAY, is_archived
from purchasing.services.request_store import RequestStore

logger = structlog.get_logger()
router = APIRouter()


def _to_response(pr: PurchaseRequest, request_settings: RequestSettings) -> PurchaseRequestResponse:
    response = PurchaseRequestResponse.model_validate(pr)
    response.archived = is_archived(pr.status, request_settings)
    return response


async def _respond(
    db: AsyncSession, store: RequestStore, pr: PurchaseRequest
) -> PurchaseRequestResponse:
    request_settings = await store.get_settings(db)
    return _to_response(pr, request_settings)


# ---------- REFERENCE ----------


@router.get("/statuses", response_model=list[StatusDisplayResponse])
async def list_statuses(
    current_user: dict = Depends(get_current_user),
):
    return [
        StatusDisplayResponse(status=s.value, label=cfg.label, color=cfg.color)
        for s, cfg in STATUS_DISPLAY.items()
    ]


@router.get("/priorities", response_model=list[PriorityDisplayResponse])
async def list_priorities(
    current_user: dict = Depends(get_current_user),
):
    return [
        PriorityDisplayResponse(priority=p.value, label=cfg.label, color=cfg.color)
        for p, cfg in PRIORITY_DISPLAY.items()
    ]


# ---------- GET ----------


@router.get("/{request_id}", response_model=PurchaseRequestResponse)
async def get_purchase_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_permission("requests:read")),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    pr = await store.get_request(db, request_id)
    return await _respond(db, store, pr)


@router.get("/{request_id}/history", response_model=list[HistoryEntryResponse])
async def get_purchase_request_history(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_permission("requests:read")),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    entries = await store.get_history(db, request_id)
    return [HistoryEntryResponse.model_validate(e) for e in entries]


# ---------- CREATE / UPDATE ----------


@router.post("", response_model=PurchaseRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_request(
    body: PurchaseRequestCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_permission("requests:create")),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    pr = await store.create_request(db, body, current_user["name"])
    return await _respond(db, store, pr)


@router.put("/{request_id}", response_model=PurchaseRequestResponse)
async def update_purchase_request(
    request_id: int,
    body: PurchaseRequestUpdate,
    current_user: dict = Depends(get_current_user),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    current = await store.get_request(db, request_id)
    check_permission(current_user, edit_permission(current.status))

    pr = await store.update_request(
        db, request_id, body.model_dump(exclude_unset=True), current_user["name"]
    )
    return await _respond(db, store, pr)


# ---------- STATUS ----------


@router.post("/{request_id}/status", response_model=PurchaseRequestResponse)
async def update_purchase_request_status(
    request_id: int,
    body: StatusUpdateRequest,
    current_user: dict = Depends(get_current_user),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    current = await store.get_request(db, request_id)
    check_permission(current_user, status_permission(current.status, RequestStatus(body.status)))

    pr = await store.update_status(
        db,
        request_id,
        body.status,
        current_user["name"],
        notes=body.notes,
        delivered_quantity=body.delivered_quantity,
        arrival_date=body.arrival_date,
        manual_supplier=body.manual_supplier,
        erp_order_number=body.erp_order_number,
    )
    return await _respond(db, store, pr)


@router.post("/{request_id}/reopen", response_model=PurchaseRequestResponse)
async def reopen_purchase_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_permission("requests:reopen")),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    pr = await store.reopen(db, request_id, current_user["name"])
    return await _respond(db, store, pr)


# ---------- ADMINISTRATIVE ACTIONS ----------


@router.post("/{request_id}/actions", response_model=PurchaseRequestResponse)
async def request_administrative_action(
    request_id: int,
    body: AdministrativeActionCreate,
    current_user: dict = Depends(get_current_user),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    permission = ACTION_OPEN_PERMISSIONS.get(body.action)
    if permission is not None:
        check_permission(current_user, permission)

    pr = await store.request_administrative_action(
        db, request_id, body.action, current_user["name"], body.notes
    )
    return await _respond(db, store, pr)


@router.post("/{request_id}/actions/resolve", response_model=PurchaseRequestResponse)
async def resolve_administrative_action(
    request_id: int,
    body: AdministrativeActionResolve,
    current_user: dict = Depends(get_current_user),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    current = await store.get_request(db, request_id)
    pending = current.pending
    if pending is None:
        raise NoPendingAction(request_id)
    check_permission(current_user, ACTION_RESOLVE_PERMISSIONS[pending.kind])
    check_self_resolution(current_user, pending.requested_by)

    pr = await store.resolve_administrative_action(
        db, request_id, body.approve, current_user["name"], body.notes
    )
    return await _respond(db, store, pr)
