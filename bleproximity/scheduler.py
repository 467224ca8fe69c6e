"""One-shot timers fired from the control loop.

Nothing runs in the background: the loop asks for ``next_deadline()``, sleeps
until then or until a radio event arrives, and calls ``run_due()``. Cancelling
removes the token, so a cancelled timer can never fire.
"""

import heapq
import itertools
import logging
import time

logger = logging.getLogger(__name__)


class Scheduler:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._heap = []
        self._callbacks = {}
        self._tokens = itertools.count(1)

    def now(self):
        return self._clock()

    def call_later(self, delay, callback):
        """Schedule ``callback()`` after ``delay`` seconds and return its token."""
        token = next(self._tokens)
        heapq.heappush(self._heap, (self._clock() + delay, token))
        self._callbacks[token] = callback
        return token

    def cancel(self, token):
        """Cancel a pending timer. Unknown, fired or ``None`` tokens are ignored."""
        if token is None:
            return False
        return self._callbacks.pop(token, None) is not None

    def is_pending(self, token):
        return token is not None and token in self._callbacks

    def next_deadline(self):
        self._discard_cancelled()
        if not self._heap:
            return None
        return self._heap[0][0]

    def run_due(self, now=None):
        """Fire every timer whose deadline has passed, earliest first."""
        if now is None:
            now = self._clock()
        fired = 0
        while True:
            self._discard_cancelled()
            if not self._heap or self._heap[0][0] > now:
                return fired
            _, token = heapq.heappop(self._heap)
            callback = self._callbacks.pop(token)
            fired += 1
            try:
                callback()
            except Exception:
                logger.exception(f"Timer callback {callback!r} failed")

    def clear(self):
        self._heap.clear()
        self._callbacks.clear()

    def __len__(self):
        return len(self._callbacks)

    def _discard_cancelled(self):
        while self._heap and self._heap[0][1] not in self._callbacks:
            heapq.heappop(self._heap)
