# Backend Client - RPC client for RetailStack Sales Records
# Fetches sales, stats, sale details and store config from the POS backend

import logging
import threading
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from .errors import TransientFetchError
from .models import (
    PAYMENT_METHODS, ZERO, AggregateStats, StoreProfile, TransactionDetail,
    TransactionSummary,
)

logger = logging.getLogger(__name__)


class BackendClient:
    """Calls backend commands over HTTP: POST {base_url}{commands_path}/{command}"""

    def __init__(self, base_url: str, api_key: str = None, timeout: int = 30,
                 commands_path: str = '/api/commands'):
        self.base_url = base_url.rstrip('/')
        self.commands_path = commands_path if commands_path.startswith('/') else '/' + commands_path
        self.commands_path = self.commands_path.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.session = requests.Session()

        if api_key:
            self.session.headers.update({'Authorization': f'Bearer {api_key}'})

        self.session.headers.update({
            'Content-Type': 'application/json',
            'User-Agent': 'RetailStack-Sales-Records/1.0'
        })

        # Retry settings; reads are cheap to repeat
        self.max_retries = 3
        self.retry_delay = 0.5  # seconds

    def invoke(self, command: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """Run one backend command and return its decoded JSON result"""
        endpoint = f"{self.base_url}{self.commands_path}/{command}"
        # Unset arguments are omitted so the backend treats them as unbounded
        payload = {k: v for k, v in (args or {}).items() if v is not None}
        last_error = 'no attempt made'

        for attempt in range(self.max_retries):
            try:
                response = self.session.post(endpoint, json=payload, timeout=self.timeout)

                if response.status_code == 200:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise TransientFetchError(command, f"Invalid JSON response: {e}", 200)

                if 400 <= response.status_code < 500:
                    # Rejected - retrying won't help
                    logger.error("%s rejected (%s): %s", command, response.status_code, response.text)
                    raise TransientFetchError(command, response.text or 'Request rejected',
                                              response.status_code)

                last_error = f"Server error {response.status_code}"
                logger.warning("%s: server error %s, retry %d/%d",
                               command, response.status_code, attempt + 1, self.max_retries)

            except requests.exceptions.Timeout:
                last_error = 'Timeout'
                logger.warning("%s: timeout, retry %d/%d", command, attempt + 1, self.max_retries)

            except requests.exceptions.ConnectionError:
                last_error = 'Connection error'
                logger.warning("%s: connection error, retry %d/%d", command, attempt + 1, self.max_retries)

            except requests.exceptions.RequestException as e:
                raise TransientFetchError(command, str(e)) from e

            if attempt + 1 < self.max_retries:
                time.sleep(self.retry_delay * (attempt + 1))

        raise TransientFetchError(command, f"{last_error} (max retries exceeded)")

    def fetch_transaction_list(self, start_date: Optional[str] = None, end_date: Optional[str] = None,
                               payment_method: Optional[str] = None, limit: int = 1000,
                               offset: int = 0) -> List[TransactionSummary]:
        rows = self.invoke('get_sales_with_details', {
            'startDate': start_date,
            'endDate': end_date,
            'paymentMethod': payment_method,
            'limit': limit,
            'offset': offset,
        })
        return _parse('get_sales_with_details', lambda: [TransactionSummary.from_dict(r) for r in rows])

    def fetch_aggregate_stats(self, start_date: Optional[str] = None,
                              end_date: Optional[str] = None) -> AggregateStats:
        data = self.invoke('get_sales_stats', {'startDate': start_date, 'endDate': end_date})
        return _parse('get_sales_stats', lambda: AggregateStats.from_dict(data))

    def fetch_transaction_detail(self, sale_id: int) -> TransactionDetail:
        data = self.invoke('get_sale_details', {'saleId': sale_id})

        def build():
            # Returned either as a [sale, items] pair or as {"sale":..., "items":...}
            if isinstance(data, dict):
                return TransactionDetail.from_payload(data['sale'], data.get('items') or [])
            sale, items = data
            return TransactionDetail.from_payload(sale, items or [])

        return _parse('get_sale_details', build)

    def fetch_store_profile(self) -> StoreProfile:
        data = self.invoke('get_store_config')
        return _parse('get_store_config', lambda: StoreProfile.from_dict(data or {}))

    def check_health(self) -> bool:
        """Check if backend is reachable"""
        try:
            response = self.session.get(f"{self.base_url}/api/health", timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def get_status(self) -> Dict:
        return {
            'base_url': self.base_url,
            'connected': self.check_health(),
            'max_retries': self.max_retries
        }


def _parse(command: str, build):
    """Turn malformed payloads into fetch errors instead of crashing the view"""
    try:
        return build()
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Malformed %s payload: %s", command, e)
        raise TransientFetchError(command, f"Malformed response: {e}") from e


# In-memory backend for demo mode and tests
class StubBackendClient:
    """Stub backend serving sales from memory"""

    def __init__(self, sales: Optional[List[Dict]] = None, items: Optional[Dict[int, List[Dict]]] = None,
                 store: Optional[Dict] = None):
        self.lock = threading.Lock()
        self.sales: List[Dict] = list(sales or [])
        self.items: Dict[int, List[Dict]] = dict(items or {})
        self.store = store or {}
        self.calls: List[str] = []

    def record_sale(self, sale: Dict, items: Optional[List[Dict]] = None):
        with self.lock:
            self.sales.append(sale)
            self.items[int(sale['id'])] = list(items or [])
        logger.info("[STUB] Recorded sale %s", sale.get('sale_number'))

    def _in_range(self, sale: Dict, start_date: Optional[str], end_date: Optional[str]) -> bool:
        day = str(sale['created_at'])[:10]
        if start_date and day < start_date:
            return False
        if end_date and day > end_date:
            return False
        return True

    def _select(self, start_date, end_date, payment_method=None) -> List[Dict]:
        with self.lock:
            rows = list(self.sales)
        return [
            s for s in rows
            if self._in_range(s, start_date, end_date)
            and (not payment_method or s.get('payment_method') == payment_method)
        ]

    def fetch_transaction_list(self, start_date=None, end_date=None, payment_method=None,
                               limit=1000, offset=0) -> List[TransactionSummary]:
        self.calls.append('get_sales_with_details')
        rows = self._select(start_date, end_date, payment_method)[offset:offset + limit]
        return [TransactionSummary.from_dict(r) for r in rows]

    def fetch_aggregate_stats(self, start_date=None, end_date=None) -> AggregateStats:
        self.calls.append('get_sales_stats')
        sales = [TransactionSummary.from_dict(r) for r in self._select(start_date, end_date)]
        sales = [s for s in sales if not s.is_voided]
        total = sum((s.total_amount for s in sales), ZERO)
        profit = sum((s.profit for s in sales), ZERO)
        by_method = {m: sum((s.total_amount for s in sales if s.payment_method == m), ZERO)
                     for m in PAYMENT_METHODS}
        count = len(sales)
        return AggregateStats(
            total_sales=total,
            total_transactions=count,
            average_transaction=(total / count).quantize(Decimal('0.01')) if count else ZERO,
            total_profit=profit,
            profit_margin=(profit * 100 / total).quantize(Decimal('0.01')) if total else ZERO,
            cash_sales=by_method['cash'],
            card_sales=by_method['card'],
            mobile_sales=by_method['mobile'],
            check_sales=by_method['check'],
        )

    def fetch_transaction_detail(self, sale_id: int) -> TransactionDetail:
        self.calls.append('get_sale_details')
        with self.lock:
            sale = next((s for s in self.sales if int(s['id']) == int(sale_id)), None)
            items = list(self.items.get(int(sale_id), []))
        if sale is None:
            raise TransientFetchError('get_sale_details', f"Sale {sale_id} not found", 404)
        return TransactionDetail.from_payload(sale, items)

    def fetch_store_profile(self) -> StoreProfile:
        self.calls.append('get_store_config')
        return StoreProfile.from_dict(self.store)

    def check_health(self) -> bool:
        return True
