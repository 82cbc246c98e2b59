# Detail Fetcher - loads one sale with its line items
# Only the most recently requested sale is ever applied

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from .errors import TransientFetchError
from .models import TransactionDetail, TransactionSummary
from .notifications import Notifier

logger = logging.getLogger(__name__)


class DetailFetcher:
    """Token-guarded sale detail loader"""

    def __init__(self, backend, notifier: Optional[Notifier] = None,
                 summary_lookup: Optional[Callable[[int], Optional[TransactionSummary]]] = None):
        self.backend = backend
        self.notifier = notifier or Notifier()
        self.summary_lookup = summary_lookup
        self.lock = threading.Lock()
        self._latest_token = 0
        self.detail: Optional[TransactionDetail] = None
        self.last_error: Optional[Exception] = None

    def load_detail(self, sale_id: int) -> Optional[TransactionDetail]:
        """Fetch a sale; returns it if this request was still the latest"""
        with self.lock:
            self._latest_token += 1
            token = self._latest_token

        try:
            detail = self.backend.fetch_transaction_detail(sale_id)
        except TransientFetchError as e:
            with self.lock:
                if token != self._latest_token:
                    logger.debug("Discarding stale detail failure for sale %s", sale_id)
                    return None
                self.last_error = e
            self.notifier.warning("Failed to load sale details")
            return None

        detail = self._merge_summary(sale_id, detail)
        with self.lock:
            if token != self._latest_token:
                logger.debug("Discarding stale detail for sale %s", sale_id)
                return None
            self.detail = detail
            self.last_error = None
        logger.info("Loaded sale %s (%d items)", detail.sale.sale_number, len(detail.items))
        return detail

    def _merge_summary(self, sale_id: int, detail: TransactionDetail) -> TransactionDetail:
        # The list row carries cashier name and profit that the detail call lacks
        if self.summary_lookup is None:
            return detail
        summary = self.summary_lookup(sale_id)
        if summary is None:
            return detail
        sale = replace(
            detail.sale,
            cashier_name=detail.sale.cashier_name or summary.cashier_name,
            items_count=summary.items_count or detail.sale.items_count,
            profit=summary.profit,
        )
        return replace(detail, sale=sale)

    def clear(self):
        """Close the detail; loads still in flight are discarded"""
        with self.lock:
            self._latest_token += 1
            self.detail = None
            self.last_error = None
