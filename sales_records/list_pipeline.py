# List Pipeline - search, sort and paginate the sales list
# Search is debounced; sort is stable; page size is fixed

import logging
import math
import threading
from functools import partial
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import ASC, PageResult, SortSpec, TransactionSummary

logger = logging.getLogger(__name__)

PAGE_SIZE = 20
DEBOUNCE_DELAY = 0.3  # seconds of typing pause before the search applies
MAX_PAGE_LINKS = 5


def matches_query(record: TransactionSummary, query: str) -> bool:
    """Case-insensitive substring match on sale number, customer name or phone"""
    if not query:
        return True
    needle = query.lower()
    for value in (record.sale_number, record.customer_name, record.customer_phone):
        if value and needle in value.lower():
            return True
    return False


def _sort_value(record: TransactionSummary, key: str):
    if key == 'created_at':
        return record.created_at.timestamp()
    return getattr(record, key)


def sort_records(records: Iterable[TransactionSummary], spec: SortSpec) -> List[TransactionSummary]:
    """Stable sort; equal keys keep their incoming order in both directions"""
    return sorted(records, key=lambda r: _sort_value(r, spec.key), reverse=spec.direction != ASC)


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def page_links(current: int, pages: int, width: int = MAX_PAGE_LINKS) -> Tuple[int, ...]:
    """Numbered links to show: all pages, or a window centred on current"""
    if pages <= 0:
        return ()
    if pages <= width:
        return tuple(range(1, pages + 1))
    half = width // 2
    first = min(max(current - half, 1), pages - width + 1)
    return tuple(range(first, first + width))


class ListPipeline:
    """Turns the fetched sales list into the visible page"""

    def __init__(self, scheduler, debounce_delay: float = DEBOUNCE_DELAY, page_size: int = PAGE_SIZE):
        self.scheduler = scheduler
        self.debounce_delay = debounce_delay
        self.page_size = page_size
        self.lock = threading.Lock()

        self._records: Tuple[TransactionSummary, ...] = ()
        self._pending_query: Optional[str] = None
        self._debounce = None
        self._debounce_seq = 0
        self.query = ''
        self.sort = SortSpec()
        self.current_page = 1

    def set_records(self, records: Sequence[TransactionSummary]):
        with self.lock:
            self._records = tuple(records)
            self._clamp_page()

    def set_search_query(self, text: str):
        """Apply text as the search once typing has paused"""
        with self.lock:
            self._debounce_seq += 1
            seq = self._debounce_seq
            self._pending_query = text or ''
            previous, self._debounce = self._debounce, None
        if previous is not None:
            previous.cancel()
        handle = self.scheduler.call_later(self.debounce_delay, partial(self._apply_pending_query, seq))
        with self.lock:
            if self._debounce_seq == seq and self._pending_query is not None:
                self._debounce = handle

    def flush_search(self):
        """Apply a pending search immediately"""
        with self.lock:
            handle, self._debounce = self._debounce, None
        if handle is not None:
            handle.cancel()
        self._apply_pending_query()

    def _apply_pending_query(self, seq: Optional[int] = None):
        with self.lock:
            # A newer keystroke superseded this timer
            if seq is not None and seq != self._debounce_seq:
                return
            if self._pending_query is None:
                return
            query, self._pending_query = self._pending_query, None
            self._debounce = None
            if query != self.query:
                logger.debug("Search query applied: %r", query)
                self.query = query
                self.current_page = 1

    def sort_by(self, key: str) -> SortSpec:
        with self.lock:
            self.sort = self.sort.toggled(key)
            self.current_page = 1
            return self.sort

    def reset_page(self):
        with self.lock:
            self.current_page = 1

    def _filtered(self) -> List[TransactionSummary]:
        return sort_records((r for r in self._records if matches_query(r, self.query)), self.sort)

    def _clamp_page(self):
        count = sum(1 for r in self._records if matches_query(r, self.query))
        last = max(total_pages(count, self.page_size), 1)
        self.current_page = min(max(self.current_page, 1), last)

    def go_to_page(self, page: int) -> int:
        with self.lock:
            self.current_page = page
            self._clamp_page()
            return self.current_page

    def next_page(self) -> int:
        return self.go_to_page(self.current_page + 1)

    def previous_page(self) -> int:
        return self.go_to_page(self.current_page - 1)

    def page(self) -> PageResult:
        with self.lock:
            filtered = self._filtered()
            current = self.current_page
        pages = total_pages(len(filtered), self.page_size)
        start = (current - 1) * self.page_size
        return PageResult(
            rows=tuple(filtered[start:start + self.page_size]),
            current_page=current,
            total_pages=pages,
            filtered_count=len(filtered),
            page_links=page_links(current, pages),
        )

    def close(self):
        with self.lock:
            handle, self._debounce = self._debounce, None
            self._pending_query = None
        if handle is not None:
            handle.cancel()
