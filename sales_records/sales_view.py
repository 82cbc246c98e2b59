# Sales Records View - wires query, list, detail and receipt components together
# One instance backs one open sales-history screen

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional

from .date_ranges import DateRangeResolver
from .detail_fetcher import DetailFetcher
from .errors import QueryFailedError, TransientFetchError
from .list_pipeline import ListPipeline
from .models import AggregateStats, DateRange, PageResult, SortSpec, StoreProfile, TransactionDetail
from .notifications import Notifier
from .query_orchestrator import QueryOrchestrator
from .receipt_composer import compose
from .receipt_output import PrintOutcome, ReceiptOutput
from .receipt_renderer import ReceiptRenderer

logger = logging.getLogger(__name__)


class SalesRecordsView:
    """Sales history: filters, visible page, selected sale and receipt printing"""

    def __init__(self, backend, scheduler, output: ReceiptOutput, renderer: ReceiptRenderer,
                 resolver: Optional[DateRangeResolver] = None, notifier: Optional[Notifier] = None,
                 event_bus=None, default_store: Optional[StoreProfile] = None,
                 fetch_limit: int = 1000, refresh_interval: float = 300.0,
                 debounce_delay: float = 0.3, auto_refresh: bool = True):
        self.backend = backend
        self.notifier = notifier or Notifier()
        self.resolver = resolver or DateRangeResolver()
        self.renderer = renderer
        self.output = output
        self.default_store = default_store or StoreProfile()
        self.auto_refresh = auto_refresh

        self.range_token = 'month'
        self.custom_start = ''
        self.custom_end = ''
        self.payment_method: Optional[str] = None

        self.orchestrator = QueryOrchestrator(
            backend, scheduler, notifier=self.notifier, event_bus=event_bus,
            fetch_limit=fetch_limit, refresh_interval=refresh_interval,
        )
        self.pipeline = ListPipeline(scheduler, debounce_delay=debounce_delay)
        self.details = DetailFetcher(backend, notifier=self.notifier, summary_lookup=self._find_summary)
        self.orchestrator.add_listener(self._on_data)

    def _on_data(self, orchestrator: QueryOrchestrator):
        transactions = orchestrator.transactions
        if transactions is not None:
            self.pipeline.set_records(transactions)

    def _find_summary(self, sale_id: int):
        for sale in self.orchestrator.transactions or ():
            if sale.id == sale_id:
                return sale
        return None

    @property
    def date_range(self) -> DateRange:
        return self.resolver.resolve(self.range_token, self.custom_start, self.custom_end)

    @property
    def stats(self) -> Optional[AggregateStats]:
        return self.orchestrator.stats

    def start(self) -> bool:
        """Initial load; returns False if nothing could be loaded"""
        loaded = self._reload()
        if self.auto_refresh:
            self.orchestrator.start_auto_refresh()
        return loaded

    def _reload(self) -> bool:
        self.pipeline.reset_page()
        try:
            self.orchestrator.set_filters(self.date_range, self.payment_method)
        except QueryFailedError as e:
            logger.error("Sales reload failed: %s", e)
            return False
        return True

    def set_date_range(self, token: str, start: str = '', end: str = '') -> bool:
        self.range_token = token
        self.custom_start = start
        self.custom_end = end
        return self._reload()

    def set_payment_method(self, method: Optional[str]) -> bool:
        self.payment_method = None if method in (None, '', 'all') else method
        return self._reload()

    def set_search_query(self, text: str):
        self.pipeline.set_search_query(text)

    def sort_by(self, key: str) -> SortSpec:
        return self.pipeline.sort_by(key)

    def go_to_page(self, page: int) -> int:
        return self.pipeline.go_to_page(page)

    def page(self) -> PageResult:
        return self.pipeline.page()

    def select_transaction(self, sale_id: int) -> Optional[TransactionDetail]:
        return self.details.load_detail(sale_id)

    def close_detail(self):
        self.details.clear()

    def _store_profile(self) -> StoreProfile:
        try:
            profile = self.backend.fetch_store_profile()
        except TransientFetchError as e:
            logger.warning("Store profile unavailable, using defaults: %s", e)
            return self.default_store
        if not profile.name and self.default_store.name:
            profile = replace(profile, name=self.default_store.name)
        return profile

    def print_receipt(self, amount_received: Optional[Decimal] = None,
                      change: Optional[Decimal] = None) -> Optional[PrintOutcome]:
        """Compose, render and print (or download) the selected sale's receipt"""
        detail = self.details.detail
        if detail is None or not detail.items:
            self.notifier.error("No sale data available")
            return None
        document = compose(detail, self._store_profile(), amount_received=amount_received, change=change)
        rendered = self.renderer.render(document)
        return self.output.print_or_download(rendered, f"receipt-{detail.sale.sale_number}")

    def close(self):
        self.orchestrator.close()
        self.pipeline.close()
        self.output.close()
        self.details.clear()
