# proctor_core/utils/clock.py
# proctor_core/utils/clock.py
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

# unix seconds accepted as frame times: 2000-01-01 .. 2100-01-01 UTC;
# millisecond timestamps fall far above the upper bound
MIN_UNIX_SECONDS = 946_684_800
MAX_UNIX_SECONDS = 4_102_444_800


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def check_unix_seconds(seconds: float) -> float:
    if not MIN_UNIX_SECONDS <= seconds <= MAX_UNIX_SECONDS:
        raise ValueError(
            f"frame_time {seconds} is not a unix timestamp in seconds "
            f"between {MIN_UNIX_SECONDS} and {MAX_UNIX_SECONDS}"
        )
    return seconds


def from_unix(seconds: float) -> datetime:
    return datetime.fromtimestamp(check_unix_seconds(float(seconds)), tz=timezone.utc)


def elapsed_ms(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() * 1000.0


class ManualClock:
    """
    Clock driven by the caller instead of the wall clock.

    Used to replay a recorded tick stream or to pin timestamps in tests:

        clock = ManualClock()
        engine = SessionEngine(clock=clock)
        clock.advance(ms=9_000)
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self._now

    def advance(self, ms: float = 0, seconds: float = 0) -> datetime:
        self._now = self._now + timedelta(milliseconds=ms, seconds=seconds)
        return self._now

    def set(self, moment: datetime) -> datetime:
        self._now = moment
        return self._now
