from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    Numeric,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from purchasing.database import Base
from purchasing.models.enums import AdministrativeAction, RequestStatus

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in RequestStatus)
_ACTION_VALUES = ", ".join(f"'{a.value}'" for a in AdministrativeAction)


@dataclass(frozen=True)
class PendingAction:
    """An open dual-control proposal and the status it was opened against."""

    kind: AdministrativeAction
    snapshot_status: RequestStatus
    requested_by: Optional[str] = None


class PurchaseRequest(Base):
    __tablename__ = "purchase_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    consecutive: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    purchase_order: Mapped[Optional[str]] = mapped_column(String(100))

    request_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    required_date: Mapped[date] = mapped_column(Date, nullable=False)
    arrival_date: Mapped[Optional[date]] = mapped_column(Date)
    received_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    client_id: Mapped[str] = mapped_column(String(50), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_tax_id: Mapped[Optional[str]] = mapped_column(String(50))
    item_id: Mapped[str] = mapped_column(String(50), nullable=False)
    item_description: Mapped[str] = mapped_column(Text, nullable=False)

    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    delivered_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    inventory: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    unit_sale_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    priority: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
    purchase_type: Mapped[str] = mapped_column(
        String(20), default="single-supplier", nullable=False
    )

    erp_order_number: Mapped[Optional[str]] = mapped_column(String(50))
    erp_order_line: Mapped[Optional[int]] = mapped_column(Integer)
    manual_supplier: Mapped[Optional[str]] = mapped_column(String(255))
    route: Mapped[Optional[str]] = mapped_column(String(100))
    shipping_method: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(String(30), default="pending", nullable=False)
    pending_action: Mapped[str] = mapped_column(
        String(30), default="none", nullable=False
    )
    pending_action_by: Mapped[Optional[str]] = mapped_column(String(255))
    previous_status: Mapped[Optional[str]] = mapped_column(String(30))
    reopened: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    requested_by: Mapped[str] = mapped_column(String(255), nullable=False)
    approved_by: Mapped[Optional[str]] = mapped_column(String(255))
    received_in_warehouse_by: Mapped[Optional[str]] = mapped_column(String(255))
    last_status_update_by: Mapped[Optional[str]] = mapped_column(String(255))
    last_status_update_notes: Mapped[Optional[str]] = mapped_column(Text)

    has_been_modified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    last_modified_by: Mapped[Optional[str]] = mapped_column(String(255))
    last_modified_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_pr_quantity"),
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="chk_pr_status"),
        CheckConstraint(
            f"pending_action IN ({_ACTION_VALUES})", name="chk_pr_pending_action"
        ),
        CheckConstraint(
            "pending_action = 'none' OR previous_status IS NOT NULL",
            name="chk_pr_pending_snapshot",
        ),
        Index("idx_pr_status", "status"),
        Index("idx_pr_request_date", "request_date"),
    )

    # -- pending action variant -------------------------------------------

    @property
    def pending(self) -> Optional[PendingAction]:
        if self.pending_action in (None, AdministrativeAction.NONE.value):
            return None
        return PendingAction(
            kind=AdministrativeAction(self.pending_action),
            snapshot_status=RequestStatus(self.previous_status),
            requested_by=self.pending_action_by,
        )

    def open_pending_action(self, kind: AdministrativeAction, requested_by: str) -> None:
        self.pending_action = kind.value
        self.pending_action_by = requested_by
        self.previous_status = self.status

    def clear_pending_action(self) -> None:
        self.pending_action = AdministrativeAction.NONE.value
        self.pending_action_by = None
        self.previous_status = None


class PurchaseRequestHistory(Base):
    """Append-only. Rows are never updated or deleted."""

    __tablename__ = "purchase_request_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("purchase_requests.id"), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    updated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("idx_pr_history_request", "request_id", "timestamp"),
    )
