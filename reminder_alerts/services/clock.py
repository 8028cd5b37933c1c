"""Wall-clock time source."""

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Current UTC time from the operating system."""

    def now(self) -> datetime:
        return datetime.now(UTC)
