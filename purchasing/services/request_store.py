"""
Request store: the operations the API layer calls.

All methods use the caller's session (no commit). ``get_db()`` commits once the
route returns and rolls back on any exception, which makes each operation one
atomic unit: the aggregate write and its history row land together or not at
all. Mutating operations re-read the request ``FOR UPDATE`` and validate
against that fresh row, so a writer holding a stale status is re-checked
against whatever committed first.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from purchasing.exceptions import NotFound, ValidationError
from purchasing.models.enums import (
    AdministrativeAction,
    PurchaseType,
    RequestPriority,
    RequestStatus,
)
from purchasing.models.purchase_request import PurchaseRequest, PurchaseRequestHistory
from purchasing.schemas.purchase_request import PurchaseRequestCreate
from purchasing.schemas.settings import RequestSettings
from purchasing.services import admin_action_service, lifecycle
from purchasing.services.clock import Clock, system_clock
from purchasing.services.history_service import append_history, list_history, require_actor
from purchasing.services.numbering_service import allocate_consecutive
from purchasing.services.settings_service import RequestSettingsProvider

logger = structlog.get_logger()

CREATED_NOTE = "Request created."
EDITED_NOTE = "Request edited."
EDITED_AFTER_APPROVAL_NOTE = "Edited after approval."

EDITABLE_FIELDS = frozenset(
    {
        "quantity",
        "required_date",
        "arrival_date",
        "notes",
        "manual_supplier",
        "route",
        "shipping_method",
        "priority",
        "purchase_type",
        "purchase_order",
        "unit_sale_price",
    }
)

_EDITABLE_STATUSES = frozenset(
    {RequestStatus.PENDING.value, RequestStatus.APPROVED.value, RequestStatus.ORDERED.value}
)
_POST_APPROVAL_STATUSES = frozenset(
    {RequestStatus.APPROVED.value, RequestStatus.ORDERED.value}
)


def _check_quantity(quantity: Optional[Decimal]) -> None:
    if quantity is None:
        raise ValidationError("quantity is required", field="quantity")
    if quantity <= 0:
        raise ValidationError(
            "quantity must be greater than zero", field="quantity", value=str(quantity)
        )


def _check_vocabulary(field: str, value: Optional[str], allowed: list[str]) -> None:
    if value and allowed and value not in allowed:
        raise ValidationError(
            f"Unknown {field.replace('_', ' ')} '{value}'", field=field, allowed=allowed
        )


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


class RequestStore:
    def __init__(
        self,
        settings_provider: Optional[RequestSettingsProvider] = None,
        clock: Clock = system_clock,
    ):
        self.settings_provider = settings_provider or RequestSettingsProvider()
        self.clock = clock

    # ---------- reads ----------

    async def get_request(
        self, session: AsyncSession, request_id: int, for_update: bool = False
    ) -> PurchaseRequest:
        stmt = (
            select(PurchaseRequest)
            .where(PurchaseRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFound(request_id)
        return request

    async def get_history(
        self, session: AsyncSession, request_id: int
    ) -> list[PurchaseRequestHistory]:
        await self.get_request(session, request_id)
        return await list_history(session, request_id)

    async def get_settings(self, session: AsyncSession) -> RequestSettings:
        return await self.settings_provider.load(session)

    async def save_settings(
        self, session: AsyncSession, new_settings: RequestSettings
    ) -> RequestSettings:
        return await self.settings_provider.save(session, new_settings)

    # ---------- create / edit ----------

    async def create_request(
        self, session: AsyncSession, body: PurchaseRequestCreate, requested_by: str
    ) -> PurchaseRequest:
        require_actor(requested_by, field="requested_by")
        _check_quantity(body.quantity)
        if body.required_date is None:
            raise ValidationError("required_date is required", field="required_date")
        if body.inventory is not None and body.inventory < 0:
            raise ValidationError("inventory cannot be negative", field="inventory")

        request_settings = await self.settings_provider.load(session)
        _check_vocabulary("route", body.route, request_settings.routes)
        _check_vocabulary(
            "shipping_method", body.shipping_method, request_settings.shipping_methods
        )

        consecutive = await allocate_consecutive(session, self.settings_provider)

        request = PurchaseRequest(
            consecutive=consecutive,
            request_date=self.clock.now(),
            required_date=body.required_date,
            arrival_date=body.arrival_date,
            purchase_order=body.purchase_order,
            client_id=body.client_id,
            client_name=body.client_name,
            client_tax_id=body.client_tax_id,
            item_id=body.item_id,
            item_description=body.item_description,
            quantity=body.quantity,
            inventory=body.inventory,
            unit_sale_price=body.unit_sale_price,
            priority=body.priority.value,
            purchase_type=body.purchase_type.value,
            erp_order_number=body.erp_order_number,
            erp_order_line=body.erp_order_line,
            manual_supplier=body.manual_supplier,
            route=body.route,
            shipping_method=body.shipping_method,
            notes=body.notes,
            status=RequestStatus.PENDING.value,
            pending_action=AdministrativeAction.NONE.value,
            reopened=False,
            has_been_modified=False,
            requested_by=requested_by,
        )
        session.add(request)
        await session.flush()

        await append_history(
            session,
            request.id,
            RequestStatus.PENDING.value,
            requested_by,
            CREATED_NOTE,
            clock=self.clock,
        )

        logger.info(
            "request_created",
            request_id=request.id,
            consecutive=consecutive,
            item=body.item_description,
            quantity=str(body.quantity),
            by=requested_by,
        )
        return request

    async def update_request(
        self, session: AsyncSession, request_id: int, fields: Mapping[str, Any], updated_by: str
    ) -> PurchaseRequest:
        """
        Apply whitelisted content edits. Status, consecutive and history are
        never editable here. Edits while approved or ordered flag the request
        as modified (sticky) and are called out in the ledger.
        """
        require_actor(updated_by)
        unknown = sorted(set(fields) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Fields not editable: {', '.join(unknown)}", field=unknown[0]
            )
        if not fields:
            raise ValidationError("No fields to update")

        request = await self.get_request(session, request_id, for_update=True)
        if request.status not in _EDITABLE_STATUSES:
            raise ValidationError(
                f"A request in '{request.status}' can no longer be edited",
                request_id=request.id,
                current_status=request.status,
            )

        changes = {key: _enum_value(value) for key, value in fields.items()}
        if "quantity" in changes:
            _check_quantity(changes["quantity"])
        if "required_date" in changes and changes["required_date"] is None:
            raise ValidationError("required_date is required", field="required_date")
        for field, enum_cls in (("priority", RequestPriority), ("purchase_type", PurchaseType)):
            if field not in changes:
                continue
            try:
                changes[field] = enum_cls(changes[field]).value
            except ValueError:
                raise ValidationError(
                    f"Invalid {field}: {changes[field]!r}", field=field
                ) from None

        request_settings = await self.settings_provider.load(session)
        _check_vocabulary("route", changes.get("route"), request_settings.routes)
        _check_vocabulary(
            "shipping_method",
            changes.get("shipping_method"),
            request_settings.shipping_methods,
        )

        for key, value in changes.items():
            setattr(request, key, value)

        after_approval = request.status in _POST_APPROVAL_STATUSES
        if after_approval:
            request.has_been_modified = True
        request.last_modified_by = updated_by
        request.last_modified_at = self.clock.now()

        await append_history(
            session,
            request.id,
            request.status,
            updated_by,
            EDITED_AFTER_APPROVAL_NOTE if after_approval else EDITED_NOTE,
            clock=self.clock,
        )

        logger.info(
            "request_edited",
            request_id=request.id,
            fields=sorted(changes),
            after_approval=after_approval,
            by=updated_by,
        )
        return request

    # ---------- lifecycle ----------

    async def update_status(
        self,
        session: AsyncSession,
        request_id: int,
        new_status: RequestStatus,
        updated_by: str,
        notes: Optional[str] = None,
        delivered_quantity: Optional[Decimal] = None,
        arrival_date: Optional[date] = None,
        manual_supplier: Optional[str] = None,
        erp_order_number: Optional[str] = None,
    ) -> PurchaseRequest:
        request = await self.get_request(session, request_id, for_update=True)
        request_settings = await self.settings_provider.load(session)
        return await lifecycle.apply_status(
            session,
            request,
            RequestStatus(new_status),
            updated_by,
            notes,
            request_settings,
            delivered_quantity=delivered_quantity,
            arrival_date=arrival_date,
            manual_supplier=manual_supplier,
            erp_order_number=erp_order_number,
            clock=self.clock,
        )

    async def reopen(
        self, session: AsyncSession, request_id: int, updated_by: str
    ) -> PurchaseRequest:
        request = await self.get_request(session, request_id, for_update=True)
        request_settings = await self.settings_provider.load(session)
        return await lifecycle.reopen(
            session, request, updated_by, request_settings, clock=self.clock
        )

    async def request_administrative_action(
        self,
        session: AsyncSession,
        request_id: int,
        action: AdministrativeAction,
        updated_by: str,
        notes: Optional[str] = None,
    ) -> PurchaseRequest:
        request = await self.get_request(session, request_id, for_update=True)
        request_settings = await self.settings_provider.load(session)
        return await admin_action_service.request_action(
            session, request, action, updated_by, notes, request_settings, clock=self.clock
        )

    async def resolve_administrative_action(
        self,
        session: AsyncSession,
        request_id: int,
        approve: bool,
        updated_by: str,
        notes: Optional[str] = None,
    ) -> PurchaseRequest:
        request = await self.get_request(session, request_id, for_update=True)
        request_settings = await self.settings_provider.load(session)
        return await admin_action_service.resolve_action(
            session, request, approve, updated_by, notes, request_settings, clock=self.clock
        )
