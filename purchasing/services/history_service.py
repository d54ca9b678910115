"""History ledger: append-only audit trail of purchase request changes."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from purchasing.exceptions import ValidationError
from purchasing.models.purchase_request import PurchaseRequestHistory
from purchasing.services.clock import Clock, system_clock

logger = structlog.get_logger()


def require_actor(actor: Optional[str], field: str = "updated_by") -> str:
    if not actor or not actor.strip():
        raise ValidationError("An acting user is required", field=field)
    return actor


async def append_history(
    session: AsyncSession,
    request_id: int,
    status: str,
    updated_by: str,
    notes: Optional[str] = None,
    clock: Clock = system_clock,
) -> PurchaseRequestHistory:
    """
    Insert one ledger row.

    Uses session.flush(). The caller owns the transaction, so the row commits or
    rolls back together with the state change it records.
    """
    require_actor(updated_by)

    entry = PurchaseRequestHistory(
        request_id=request_id,
        timestamp=clock.now(),
        status=status,
        updated_by=updated_by,
        notes=notes,
    )
    session.add(entry)
    await session.flush()

    logger.info(
        "history_entry_appended",
        request_id=request_id,
        status=status,
        updated_by=updated_by,
    )
    return entry


async def list_history(
    session: AsyncSession, request_id: int
) -> list[PurchaseRequestHistory]:
    """Fresh read of the ledger for one request, newest first."""
    result = await session.execute(
        select(PurchaseRequestHistory)
        .where(PurchaseRequestHistory.request_id == request_id)
        .order_by(
            PurchaseRequestHistory.timestamp.desc(),
            PurchaseRequestHistory.id.desc(),
        )
    )
    return list(result.scalars().all())
