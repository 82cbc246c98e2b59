# Scheduler - cancellable delayed tasks for RetailStack Sales Records
# Backs search debounce, auto refresh and print-surface cleanup

import logging
import threading
from typing import Callable, Set

logger = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled call that can be cancelled until it runs"""

    def __init__(self, timer: threading.Timer, on_done: Callable[['TimerHandle'], None]):
        self._timer = timer
        self._on_done = on_done
        self.cancelled = False

    def cancel(self):
        self.cancelled = True
        self._timer.cancel()
        self._on_done(self)


class ThreadingScheduler:
    """Runs callbacks on daemon timer threads"""

    def __init__(self):
        self.lock = threading.Lock()
        self._pending: Set[TimerHandle] = set()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds"""
        handle = None

        def run():
            self._forget(handle)
            if handle.cancelled:
                return
            try:
                callback()
            except Exception as e:
                logger.error("Scheduled task %s failed: %s", getattr(callback, '__name__', callback), e)

        timer = threading.Timer(delay, run)
        timer.daemon = True
        handle = TimerHandle(timer, self._forget)
        with self.lock:
            self._pending.add(handle)
        timer.start()
        return handle

    def _forget(self, handle: TimerHandle):
        with self.lock:
            self._pending.discard(handle)

    def cancel_all(self):
        """Cancel every task that has not run yet"""
        with self.lock:
            pending = list(self._pending)
        for handle in pending:
            handle.cancel()
        if pending:
            logger.debug("Cancelled %d scheduled task(s)", len(pending))

    def pending_count(self) -> int:
        with self.lock:
            return len(self._pending)
