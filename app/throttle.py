"""
app/throttle.py
-----------------------------------------------------------------------------
Per-process spacing between generation requests.

Free-tier providers rate-limit aggressively, so the server never starts two
generations closer together than ``REQUEST_INTERVAL`` seconds.  A request
that arrives too early simply sleeps for the remainder.  The state is
in-memory only; separate worker processes each keep their own clock.
"""

from __future__ import annotations

import os
import threading
import time
from typing import Callable

from dotenv import load_dotenv

load_dotenv()

REQUEST_INTERVAL: float = float(os.getenv("REQUEST_INTERVAL", "1.0"))


class RequestThrottle:
    """Enforce a minimum interval between successive :meth:`wait` calls."""

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last: float | None = None

    def wait(self) -> float:
        """
        Block until the interval since the previous call has elapsed.

        Returns the number of seconds slept (0.0 when no wait was needed).
        """
        with self._lock:
            slept = 0.0
            if self._last is not None:
                remaining = self.interval - (self._clock() - self._last)
                if remaining > 0:
                    self._sleep(remaining)
                    slept = remaining
            self._last = self._clock()
            return slept


generation_throttle = RequestThrottle(REQUEST_INTERVAL)
