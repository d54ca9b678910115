"""
Settings provider: RequestSettings backed by the request_settings key/value table.

Values are stored JSON-encoded, one row per RequestSettings field. The provider
holds no cached state: every load reads the table inside the caller's session,
so a flag flipped by one process is seen by the next transaction of another.
"""

import json
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from purchasing.config import settings as app_settings
from purchasing.exceptions import ValidationError
from purchasing.models.request_setting import RequestSetting
from purchasing.schemas.settings import RequestSettings

logger = structlog.get_logger()

NEXT_NUMBER_KEY = "next_request_number"


def default_request_settings() -> RequestSettings:
    """Seed values taken from process configuration."""
    return RequestSettings(
        request_prefix=app_settings.DEFAULT_REQUEST_PREFIX,
        routes=app_settings.default_routes_list,
        shipping_methods=app_settings.default_shipping_methods_list,
    )


class RequestSettingsProvider:
    def __init__(self, defaults: Optional[RequestSettings] = None):
        self.defaults = defaults or default_request_settings()

    async def _rows(self, session: AsyncSession, for_update: bool = False) -> dict[str, RequestSetting]:
        stmt = select(RequestSetting).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return {row.key: row for row in result.scalars().all()}

    async def ensure_defaults(self, session: AsyncSession) -> None:
        """Insert any missing key with its default value. Existing keys are left alone."""
        existing = await self._rows(session)
        missing = [
            (key, value)
            for key, value in self.defaults.model_dump().items()
            if key not in existing
        ]
        for key, value in missing:
            session.add(RequestSetting(key=key, value=json.dumps(value)))
        if missing:
            await session.flush()
            logger.info("request_settings_seeded", keys=[k for k, _ in missing])

    async def load(self, session: AsyncSession) -> RequestSettings:
        rows = await self._rows(session)
        values = self.defaults.model_dump()
        for key, row in rows.items():
            if key not in values:
                continue
            try:
                values[key] = json.loads(row.value)
            except (TypeError, ValueError):
                logger.warning("request_setting_unreadable", key=key, value=row.value)
        return RequestSettings(**values)

    async def save(self, session: AsyncSession, new_settings: RequestSettings) -> RequestSettings:
        rows = await self._rows(session, for_update=True)

        counter = rows.get(NEXT_NUMBER_KEY)
        if counter is not None:
            current_next = int(json.loads(counter.value))
            if new_settings.next_request_number < current_next:
                raise ValidationError(
                    "next_request_number cannot be lowered; consecutives are never reused",
                    field=NEXT_NUMBER_KEY,
                    current=current_next,
                    requested=new_settings.next_request_number,
                )

        for key, value in new_settings.model_dump().items():
            encoded = json.dumps(value)
            row = rows.get(key)
            if row is None:
                session.add(RequestSetting(key=key, value=encoded))
            elif row.value != encoded:
                row.value = encoded
        await session.flush()

        logger.info(
            "request_settings_saved",
            use_warehouse_reception=new_settings.use_warehouse_reception,
            next_request_number=new_settings.next_request_number,
        )
        return new_settings
