# custody_ledger/ledger/clock.py

import threading
import time


class SystemClock:
    """Wall-clock milliseconds that never go backwards."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last = 0

    def now(self):
        with self._lock:
            self._last = max(self._last, int(time.time() * 1000))
            return self._last


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start=0):
        self._now = start

    def now(self):
        return self._now

    def advance(self, millis=1):
        if millis < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += millis
        return self._now
