"""Wall-clock source for engine timestamps. Inject FixedClock in tests."""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        # Columns are naive UTC
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock:
    """Returns a fixed instant, advanced manually with ``tick``."""

    def __init__(self, instant: datetime):
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def tick(self, **delta) -> datetime:
        self._instant = self._instant + timedelta(**delta)
        return self._instant


system_clock = SystemClock()
