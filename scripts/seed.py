"""
Seed script: request settings plus a handful of demo purchase requests, one per lifecycle stage.
Run from the project root: python -m scripts.seed
"""
import asyncio
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select, func

from purchasing.database import AsyncSessionLocal, engine
from purchasing.models.enums import AdministrativeAction, RequestPriority, RequestStatus
from purchasing.models.purchase_request import PurchaseRequest
from purchasing.schemas.purchase_request import PurchaseRequestCreate
from purchasing.services.request_store import RequestStore
from purchasing.services.settings_service import RequestSettingsProvider

PURCHASER = "Paula Purchaser"
APPROVER = "Andres Approver"
WAREHOUSE = "Wendy Warehouse"

DEMO_ITEMS = [
    ("C-1001", "Ferreteria El Tornillo", "ITM-0042", "Galvanized steel screws 3/8\"", "500"),
    ("C-1002", "Constructora Andina", "ITM-0107", "Portland cement 50kg", "120"),
    ("C-1003", "Distribuidora Norte", "ITM-0219", "PVC pipe 2\" x 6m", "80"),
    ("C-1004", "Ferreteria El Tornillo", "ITM-0311", "Safety gloves (pair)", "200"),
    ("C-1005", "Constructora Andina", "ITM-0455", "Rebar 1/2\" x 12m", "60"),
]


async def seed():
    provider = RequestSettingsProvider()
    store = RequestStore(settings_provider=provider)

    async with AsyncSessionLocal() as db:
        await provider.ensure_defaults(db)

        count = await db.scalar(select(func.count(PurchaseRequest.id)))
        if count:
            print("Seed data already exists. Skipping.")
            await db.commit()
            return

        created = []
        for client_id, client_name, item_id, description, qty in DEMO_ITEMS:
            pr = await store.create_request(
                db,
                PurchaseRequestCreate(
                    client_id=client_id,
                    client_name=client_name,
                    item_id=item_id,
                    item_description=description,
                    quantity=Decimal(qty),
                    required_date=date.today() + timedelta(days=14),
                    priority=RequestPriority.MEDIUM,
                ),
                PURCHASER,
            )
            created.append(pr)

        # created[0] stays pending
        await store.update_status(db, created[1].id, RequestStatus.APPROVED, APPROVER)

        await store.update_status(db, created[2].id, RequestStatus.APPROVED, APPROVER)
        await store.update_status(
            db, created[2].id, RequestStatus.ORDERED, PURCHASER,
            arrival_date=date.today() + timedelta(days=7),
        )

        await store.update_status(db, created[3].id, RequestStatus.APPROVED, APPROVER)
        await store.update_status(db, created[3].id, RequestStatus.ORDERED, PURCHASER)
        await store.update_status(
            db, created[3].id, RequestStatus.RECEIVED, WAREHOUSE,
            delivered_quantity=Decimal("200"),
        )

        await store.request_administrative_action(
            db, created[4].id, AdministrativeAction.CANCELLATION_REQUEST, PURCHASER,
            notes="Client withdrew the order",
        )

        await db.commit()

        for pr in created:
            print(f"  {pr.consecutive}  {pr.status:<10} {pr.item_description}")
        print(f"Seeded {len(created)} purchase requests.")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
