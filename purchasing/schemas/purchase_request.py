from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from purchasing.models.enums import (
    AdministrativeAction,
    PurchaseType,
    RequestPriority,
    RequestStatus,
)


class PurchaseRequestCreate(BaseModel):
    client_id: str = Field(..., min_length=1, max_length=50)
    client_name: str = Field(..., min_length=1, max_length=255)
    client_tax_id: Optional[str] = Field(None, max_length=50)
    item_id: str = Field(..., min_length=1, max_length=50)
    item_description: str = Field(..., min_length=1)
    # quantity and required_date are checked by the engine so that a
    # missing value surfaces as the engine's own VALIDATION_ERROR
    quantity: Optional[Decimal] = None
    required_date: Optional[date] = None
    arrival_date: Optional[date] = None
    unit_sale_price: Optional[Decimal] = Field(None, ge=0)
    inventory: Optional[Decimal] = None
    priority: RequestPriority = RequestPriority.MEDIUM
    purchase_type: PurchaseType = PurchaseType.SINGLE_SUPPLIER
    purchase_order: Optional[str] = Field(None, max_length=100)
    erp_order_number: Optional[str] = Field(None, max_length=50)
    erp_order_line: Optional[int] = None
    manual_supplier: Optional[str] = Field(None, max_length=255)
    route: Optional[str] = Field(None, max_length=100)
    shipping_method: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PurchaseRequestUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    quantity: Optional[Decimal] = None
    required_date: Optional[date] = None
    arrival_date: Optional[date] = None
    notes: Optional[str] = None
    manual_supplier: Optional[str] = Field(None, max_length=255)
    route: Optional[str] = Field(None, max_length=100)
    shipping_method: Optional[str] = Field(None, max_length=100)
    priority: Optional[RequestPriority] = None
    purchase_type: Optional[PurchaseType] = None
    purchase_order: Optional[str] = Field(None, max_length=100)
    unit_sale_price: Optional[Decimal] = Field(None, ge=0)


class StatusUpdateRequest(BaseModel):
    status: RequestStatus
    notes: Optional[str] = Field(None, max_length=1000)
    delivered_quantity: Optional[Decimal] = None
    arrival_date: Optional[date] = None
    manual_supplier: Optional[str] = Field(None, max_length=255)
    erp_order_number: Optional[str] = Field(None, max_length=50)


class AdministrativeActionCreate(BaseModel):
    action: AdministrativeAction
    notes: Optional[str] = Field(None, max_length=1000)


class AdministrativeActionResolve(BaseModel):
    approve: bool
    notes: Optional[str] = Field(None, max_length=1000)


class PurchaseRequestResponse(BaseModel):
    id: int
    consecutive: str
    purchase_order: Optional[str] = None
    request_date: datetime
    required_date: date
    arrival_date: Optional[date] = None
    received_date: Optional[datetime] = None
    client_id: str
    client_name: str
    client_tax_id: Optional[str] = None
    item_id: str
    item_description: str
    quantity: Decimal
    delivered_quantity: Optional[Decimal] = None
    inventory: Optional[Decimal] = None
    unit_sale_price: Optional[Decimal] = None
    priority: str
    purchase_type: str
    erp_order_number: Optional[str] = None
    erp_order_line: Optional[int] = None
    manual_supplier: Optional[str] = None
    route: Optional[str] = None
    shipping_method: Optional[str] = None
    notes: Optional[str] = None
    status: str
    pending_action: str
    pending_action_by: Optional[str] = None
    previous_status: Optional[str] = None
    reopened: bool
    requested_by: str
    approved_by: Optional[str] = None
    received_in_warehouse_by: Optional[str] = None
    last_status_update_by: Optional[str] = None
    last_status_update_notes: Optional[str] = None
    has_been_modified: bool
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[datetime] = None
    archived: bool = False

    model_config = {"from_attributes": True}


class HistoryEntryResponse(BaseModel):
    id: int
    request_id: int
    timestamp: datetime
    status: str
    updated_by: str
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class StatusDisplayResponse(BaseModel):
    status: str
    label: str
    color: str


class PriorityDisplayResponse(BaseModel):
    priority: str
    label: str
    color: str
