"""Clock abstraction supplying "now" and the local timezone of the block grid."""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone, tzinfo


class Clock(ABC):
    """Source of the current time and the grid timezone."""

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self.tz = tz

    @abstractmethod
    def now(self) -> datetime:
        """Current aware time in the clock's timezone."""
        pass

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock(Clock):
    """Clock frozen at one moment (naive values are read in ``tz``)."""

    def __init__(self, moment: datetime, tz: tzinfo = timezone.utc) -> None:
        super().__init__(tz)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=tz)
        self.moment = moment.astimezone(tz)

    def now(self) -> datetime:
        return self.moment
