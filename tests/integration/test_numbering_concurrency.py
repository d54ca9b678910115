import asyncio
from datetime import date
from decimal import Decimal

import pytest

from purchasing.schemas.purchase_request import PurchaseRequestCreate
from purchasing.services.numbering_service import allocate_consecutive

# Concurrent creations on separate sessions must never share a consecutive


def _body(n: int) -> PurchaseRequestCreate:
    return PurchaseRequestCreate(
        client_id=f"C-{n}",
        client_name=f"Client {n}",
        item_id=f"ITM-{n}",
        item_description=f"Item {n}",
        quantity=Decimal("1"),
        required_date=date(2025, 3, 1),
    )


@pytest.mark.asyncio
async def test_concurrent_creations_get_distinct_consecutives(db, session_factory, store):
    async def create(n: int) -> str:
        async with session_factory() as session:
            pr = await store.create_request(session, _body(n), f"Buyer {n}")
            await session.commit()
            return pr.consecutive

    consecutives = await asyncio.gather(*(create(n) for n in range(8)))

    assert len(set(consecutives)) == 8
    assert sorted(consecutives) == [f"SC-{n:05d}" for n in range(1, 9)]
    assert (await store.get_settings(db)).next_request_number == 9


@pytest.mark.asyncio
async def test_rolled_back_creation_returns_its_number(db, session_factory, store):
    async with session_factory() as session:
        await store.create_request(session, _body(1), "Buyer 1")
        await session.rollback()

    async with session_factory() as session:
        pr = await store.create_request(session, _body(2), "Buyer 2")
        await session.commit()

    assert pr.consecutive == "SC-00001"


@pytest.mark.asyncio
async def test_allocator_seeds_missing_counter_row(session_factory, provider):
    async with session_factory() as session:
        first = await allocate_consecutive(session, provider)
        second = await allocate_consecutive(session, provider)
        await session.commit()

    assert (first, second) == ("SC-00001", "SC-00002")
