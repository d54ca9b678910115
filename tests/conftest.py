from datetime import date, datetime
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from purchasing.database import Base, get_db
from purchasing.main import app
from purchasing.schemas.purchase_request import PurchaseRequestCreate
from purchasing.schemas.settings import RequestSettings
from purchasing.services.clock import FixedClock
from purchasing.services.request_store import RequestStore
from purchasing.services.settings_service import RequestSettingsProvider

import purchasing.models  # noqa: F401

PURCHASER = "Paula Purchaser"


@pytest.fixture
async def engine(tmp_path):
    # File-backed so separate sessions see each other's commits
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'purchasing.db'}",
        connect_args={"timeout": 30},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 1, 6, 9, 0, 0))


@pytest.fixture
def provider():
    return RequestSettingsProvider(
        defaults=RequestSettings(
            request_prefix="SC-",
            next_request_number=1,
            routes=["Ruta GAM", "Fuera de GAM"],
            shipping_methods=["Mensajería", "Encomienda"],
        )
    )


@pytest.fixture
def store(provider, clock):
    return RequestStore(settings_provider=provider, clock=clock)


@pytest.fixture
async def db(session_factory, provider):
    async with session_factory() as session:
        await provider.ensure_defaults(session)
        await session.commit()
        yield session


@pytest.fixture
def make_request(db, store):
    """Factory: create a pending request with sensible defaults."""

    async def _make(requested_by: str = PURCHASER, **overrides):
        data = {
            "client_id": "C-1001",
            "client_name": "Ferreteria El Tornillo",
            "item_id": "ITM-0042",
            "item_description": "Galvanized steel screws",
            "quantity": Decimal("10"),
            "required_date": date(2025, 1, 10),
        }
        data.update(overrides)
        return await store.create_request(db, PurchaseRequestCreate(**data), requested_by)

    return _make


@pytest.fixture
def set_warehouse_reception(db, store):
    async def _set(enabled: bool):
        current = await store.get_settings(db)
        await store.save_settings(
            db, current.model_copy(update={"use_warehouse_reception": enabled})
        )

    return _set


@pytest.fixture
async def client(session_factory, store, provider):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async with session_factory() as session:
        await provider.ensure_defaults(session)
        await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.state.request_store = store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    del app.state.request_store
