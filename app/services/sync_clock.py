"""
Server clock for sync timestamps (epoch milliseconds).

Services never read the wall clock directly; they take a clock so a push
can capture a single "now" and tests can pin time.

The clock also coordinates pulls with pushes that are still open. A push
stamps its records with `now` when it starts but only commits later, so a
pull must never hand out a checkpoint at or past the stamp of an
uncommitted push:

- `begin_write()` hands a push its stamp and marks it in flight
- `end_write(stamp)` releases it once committed or rolled back
- `watermark()` is the pull checkpoint, kept below every in-flight stamp

Coordination is per process; run a single worker per database.
"""

import threading
import time
from collections import Counter
from typing import Callable, Optional


def wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class SyncClock:
    """
    Millisecond wall clock that never goes backwards within the process.

    If the system clock steps back (NTP adjustment), the last value handed
    out is repeated until real time catches up.
    """

    def __init__(self, source: Optional[Callable[[], int]] = None):
        self._source = source or wall_clock_ms
        self._last = 0
        self._last_watermark = 0
        self._in_flight: Counter = Counter()
        self._lock = threading.Lock()

    def _tick(self) -> int:
        self._last = max(self._source(), self._last)
        return self._last

    def __call__(self) -> int:
        with self._lock:
            return self._tick()

    def begin_write(self) -> int:
        """Stamp for a write transaction, strictly after every checkpoint handed out."""
        with self._lock:
            stamp = max(self._tick(), self._last_watermark + 1)
            self._last = stamp
            self._in_flight[stamp] += 1
            return stamp

    def end_write(self, stamp: int) -> None:
        with self._lock:
            self._in_flight[stamp] -= 1
            if self._in_flight[stamp] <= 0:
                del self._in_flight[stamp]

    def watermark(self) -> int:
        """Pull checkpoint: now, capped just below the oldest open write."""
        with self._lock:
            mark = self._tick()
            if self._in_flight:
                mark = min(mark, min(self._in_flight) - 1)
            self._last_watermark = max(self._last_watermark, mark)
            return mark

    @property
    def writes_in_flight(self) -> int:
        with self._lock:
            return sum(self._in_flight.values())


default_clock = SyncClock()


def get_clock() -> SyncClock:
    """FastAPI dependency returning the process-wide sync clock."""
    return default_clock
