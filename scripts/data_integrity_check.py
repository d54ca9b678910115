import asyncio

from sqlalchemy import select, func

from purchasing.database import AsyncSessionLocal, engine
from purchasing.models import PurchaseRequest, PurchaseRequestHistory
from purchasing.models.enums import AdministrativeAction, RequestStatus
from purchasing.services.lifecycle import is_archived
from purchasing.services.settings_service import RequestSettingsProvider


async def main():
    async with AsyncSessionLocal() as db:
        request_settings = await RequestSettingsProvider().load(db)
        print("Starting Database Integrity Check...")
        print("=" * 60)
        problems = 0

        # 1. Duplicate consecutives
        print("\n[1] Checking for duplicate consecutives...")
        stmt = (
            select(PurchaseRequest.consecutive, func.count(PurchaseRequest.id))
            .group_by(PurchaseRequest.consecutive)
            .having(func.count(PurchaseRequest.id) > 1)
        )
        dupes = (await db.execute(stmt)).all()
        if dupes:
            problems += len(dupes)
            print(f"❌ Found duplicate consecutives: {dupes}")
        else:
            print("✅ No duplicate consecutives found.")

        # 2. Requests without any history row
        print("\n[2] Checking that every request has a history ledger...")
        stmt = select(PurchaseRequest).where(
            ~PurchaseRequest.id.in_(select(PurchaseRequestHistory.request_id))
        )
        no_history = (await db.execute(stmt)).scalars().all()
        if no_history:
            problems += len(no_history)
            print(f"❌ Found {len(no_history)} requests with an empty history:")
            for pr in no_history:
                print(f"   - {pr.consecutive} (ID: {pr.id})")
        else:
            print("✅ Every request has at least one history entry.")

        # 3. Unknown status values and pending actions without a snapshot
        print("\n[3] Checking status and pending action values...")
        known = [s.value for s in RequestStatus]
        stmt = select(PurchaseRequest).where(
            (PurchaseRequest.status.not_in(known))
            | (
                (PurchaseRequest.pending_action != AdministrativeAction.NONE.value)
                & (PurchaseRequest.previous_status.is_(None))
            )
        )
        bad = (await db.execute(stmt)).scalars().all()
        if bad:
            problems += len(bad)
            print(f"❌ Found {len(bad)} requests with inconsistent state:")
            for pr in bad:
                print(
                    f"   - {pr.consecutive}: status={pr.status} "
                    f"pending_action={pr.pending_action} previous_status={pr.previous_status}"
                )
        else:
            print("✅ Status and pending action values are consistent.")

        # 4. Ledger head must match the current status
        print("\n[4] Checking that the latest history row matches the current status...")
        requests = (await db.execute(select(PurchaseRequest))).scalars().all()
        mismatched = []
        for pr in requests:
            stmt = (
                select(PurchaseRequestHistory.status)
                .where(PurchaseRequestHistory.request_id == pr.id)
                .order_by(PurchaseRequestHistory.timestamp.desc(), PurchaseRequestHistory.id.desc())
                .limit(1)
            )
            head = await db.scalar(stmt)
            if head is not None and head != pr.status:
                mismatched.append((pr, head))
        if mismatched:
            problems += len(mismatched)
            print(f"❌ Found {len(mismatched)} requests whose ledger head disagrees:")
            for pr, head in mismatched:
                print(f"   - {pr.consecutive}: status={pr.status} ledger={head}")
        else:
            print("✅ Ledger heads match current statuses.")

        # 5. Counter must be ahead of every allocated consecutive
        print("\n[5] Checking the consecutive counter...")
        total = len(requests)
        archived = sum(1 for pr in requests if is_archived(pr.status, request_settings))
        if request_settings.next_request_number <= total:
            problems += 1
            print(
                f"❌ next_request_number={request_settings.next_request_number} "
                f"but {total} requests exist"
            )
        else:
            print(f"✅ Counter at {request_settings.next_request_number} ({total} requests, {archived} archived).")

        print("\n" + "=" * 60)
        print(f"Integrity Check Complete. Problems found: {problems}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
