"""
Consecutive number allocator.

The counter row is advanced with one ``UPDATE ... RETURNING`` statement in the
caller's transaction. The database serializes concurrent writers on that row,
so two allocations can never observe the same value, and a rollback of the
surrounding creation returns the number.
"""

from sqlalchemy import Integer, String, cast, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from purchasing.models.request_setting import RequestSetting
from purchasing.services.settings_service import NEXT_NUMBER_KEY, RequestSettingsProvider

logger = structlog.get_logger()

CONSECUTIVE_WIDTH = 5


def format_consecutive(prefix: str, number: int) -> str:
    return f"{prefix}{number:0{CONSECUTIVE_WIDTH}d}"


async def _advance_counter(session: AsyncSession):
    stmt = (
        update(RequestSetting)
        .where(RequestSetting.key == NEXT_NUMBER_KEY)
        .values(value=cast(cast(RequestSetting.value, Integer) + 1, String))
        .returning(RequestSetting.value)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def allocate_consecutive(
    session: AsyncSession, provider: RequestSettingsProvider
) -> str:
    """Return the next consecutive (prefix + zero-padded number) and advance the counter."""
    new_value = await _advance_counter(session)
    if new_value is None:
        await provider.ensure_defaults(session)
        new_value = await _advance_counter(session)

    number = int(new_value) - 1
    request_settings = await provider.load(session)
    consecutive = format_consecutive(request_settings.request_prefix, number)

    logger.info("consecutive_allocated", consecutive=consecutive, number=number)
    return consecutive
