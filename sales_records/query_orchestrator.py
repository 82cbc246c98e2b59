# Query Orchestrator - parallel sales list + stats fetches for RetailStack Sales Records
# Each fetch succeeds or fails on its own; only a total failure is blocking

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .errors import QueryFailedError
from .events import EventBus, SaleRecorded, SaleVoided, Subscription
from .models import AggregateStats, DateRange, TransactionSummary
from .notifications import Notifier

logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 1000
DEFAULT_REFRESH_INTERVAL = 300.0  # 5 minutes

LIST_SLOT = 'transactions'
STATS_SLOT = 'stats'


@dataclass
class QueryOutcome:
    """Which slots a refresh replaced and which fetches failed"""
    applied: Tuple[str, ...] = ()
    errors: Dict[str, Exception] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.applied) and bool(self.errors)


class QueryOrchestrator:
    """Owns the sales list and stats for the current filters"""

    def __init__(self, backend, scheduler, notifier: Optional[Notifier] = None,
                 event_bus: Optional[EventBus] = None, fetch_limit: int = DEFAULT_FETCH_LIMIT,
                 refresh_interval: float = DEFAULT_REFRESH_INTERVAL):
        self.backend = backend
        self.scheduler = scheduler
        self.notifier = notifier or Notifier()
        self.fetch_limit = fetch_limit
        self.refresh_interval = refresh_interval
        self.lock = threading.Lock()

        self.date_range = DateRange()
        self.payment_method: Optional[str] = None
        self._transactions: Optional[Tuple[TransactionSummary, ...]] = None
        self._stats: Optional[AggregateStats] = None

        self._listeners: List[Callable[['QueryOrchestrator'], None]] = []
        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix='sales-query')
        self._timer = None
        self._auto_refresh = False
        self._subscriptions: List[Subscription] = []
        if event_bus is not None:
            self._subscriptions = [
                event_bus.subscribe(SaleRecorded, self._on_sales_changed),
                event_bus.subscribe(SaleVoided, self._on_sales_changed),
            ]

    @property
    def transactions(self) -> Optional[Tuple[TransactionSummary, ...]]:
        with self.lock:
            return self._transactions

    @property
    def stats(self) -> Optional[AggregateStats]:
        with self.lock:
            return self._stats

    def snapshot(self) -> Tuple[Optional[Tuple[TransactionSummary, ...]], Optional[AggregateStats]]:
        """List and stats read together"""
        with self.lock:
            return self._transactions, self._stats

    def add_listener(self, listener: Callable[['QueryOrchestrator'], None]):
        self._listeners.append(listener)

    def set_filters(self, date_range: DateRange, payment_method: Optional[str] = None) -> QueryOutcome:
        """Change the query filters and re-fetch"""
        if payment_method == 'all':
            payment_method = None
        with self.lock:
            self.date_range = date_range
            self.payment_method = payment_method
        return self.refresh()

    def refresh(self) -> QueryOutcome:
        """Fetch list and stats concurrently and apply whatever succeeded"""
        with self.lock:
            start, end = self.date_range.as_query()
            method = self.payment_method

        futures = {
            LIST_SLOT: self._pool.submit(
                self.backend.fetch_transaction_list, start, end, method, self.fetch_limit, 0),
            STATS_SLOT: self._pool.submit(self.backend.fetch_aggregate_stats, start, end),
        }
        wait(futures.values())

        results = {}
        errors: Dict[str, Exception] = {}
        for slot, future in futures.items():
            error = future.exception()
            if error is None:
                results[slot] = future.result()
            else:
                errors[slot] = error

        if not results:
            self.notifier.error("Failed to load sales records")
            raise QueryFailedError(errors)

        with self.lock:
            if LIST_SLOT in results:
                self._transactions = tuple(results[LIST_SLOT])
            if STATS_SLOT in results:
                self._stats = results[STATS_SLOT]

        for slot, error in errors.items():
            logger.warning("Sales %s fetch failed, keeping previous value: %s", slot, error)
        if errors:
            self.notifier.warning(f"Some sales data could not be refreshed ({', '.join(sorted(errors))})")

        outcome = QueryOutcome(applied=tuple(s for s in (LIST_SLOT, STATS_SLOT) if s in results),
                               errors=errors)
        for listener in list(self._listeners):
            listener(self)
        return outcome

    def _refresh_quietly(self, reason: str):
        try:
            self.refresh()
        except QueryFailedError as e:
            # Already surfaced through the notifier
            logger.debug("%s refresh failed: %s", reason, e)

    def _on_sales_changed(self, event):
        logger.info("Refreshing sales after %s", type(event).__name__)
        self._refresh_quietly(type(event).__name__)

    def start_auto_refresh(self):
        with self.lock:
            if self._auto_refresh:
                return
            self._auto_refresh = True
        self._schedule_next()
        logger.info("Auto refresh every %ss", self.refresh_interval)

    def stop_auto_refresh(self):
        with self.lock:
            self._auto_refresh = False
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _schedule_next(self):
        handle = self.scheduler.call_later(self.refresh_interval, self._on_timer)
        with self.lock:
            if self._auto_refresh:
                self._timer = handle
                return
        handle.cancel()

    def _on_timer(self):
        with self.lock:
            if not self._auto_refresh:
                return
            self._timer = None
        self._refresh_quietly('Scheduled')
        self._schedule_next()

    def close(self):
        """Release the timer, event subscriptions and worker threads"""
        self.stop_auto_refresh()
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []
        self._listeners = []
        self._pool.shutdown(wait=False)
