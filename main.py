#!/usr/bin/env python3
"""
RetailStack Sales Records - JSON API over the sales history view
"""

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse
from zoneinfo import ZoneInfo

from sales_records.backend_client import BackendClient, StubBackendClient
from sales_records.config import AppConfig, load_config
from sales_records.currency import CurrencyFormatter
from sales_records.date_ranges import DateRangeResolver
from sales_records.events import EventBus, SaleRecorded
from sales_records.logging_config import setup_logging
from sales_records.models import StoreProfile
from sales_records.notifications import Notifier
from sales_records.receipt_output import ReceiptOutput, make_surface_factory
from sales_records.receipt_renderer import ReceiptRenderer
from sales_records.sales_view import SalesRecordsView
from sales_records.scheduler import ThreadingScheduler

logger = logging.getLogger(__name__)


def _demo_backend() -> StubBackendClient:
    """Stub backend with a handful of sales from the last few days"""
    now = datetime.now(timezone.utc).replace(microsecond=0)
    methods = ['cash', 'card', 'mobile', 'check']
    names = [None, 'Ada Obi', 'Musa Bello', None, 'Chioma Eze']
    sales, items = [], {}
    for n in range(1, 31):
        unit = Decimal(250 * (n % 7 + 1))
        qty = n % 3 + 1
        subtotal = unit * qty
        tax = (subtotal * Decimal('0.075')).quantize(Decimal('0.01'))
        discount = Decimal('100') if n % 5 == 0 else Decimal('0')
        sales.append({
            'id': n,
            'sale_number': f'S-{1000 + n}',
            'created_at': (now - timedelta(hours=7 * n)).isoformat(),
            'subtotal': str(subtotal),
            'tax_amount': str(tax),
            'discount_amount': str(discount),
            'total_amount': str(subtotal + tax - discount),
            'payment_method': methods[n % 4],
            'cashier_name': 'Front Desk',
            'customer_name': names[n % 5],
            'customer_phone': f'080{n:08d}' if names[n % 5] else None,
            'items_count': 1,
            'profit': str((subtotal * Decimal('0.2')).quantize(Decimal('0.01'))),
        })
        items[n] = [{'id': n, 'product_id': 100 + n % 7, 'product': {'name': f'Item {n % 7 + 1}'},
                     'quantity': qty, 'unit_price': str(unit), 'line_total': str(subtotal)}]
    return StubBackendClient(sales, items, {'name': 'RetailStack Demo Store', 'address': '123 Test Street',
                                            'phone': '(555) 123-4567'})


class SalesApp:
    def __init__(self, config: AppConfig):
        self.config = config
        self.notices = []
        self.scheduler = ThreadingScheduler()
        self.event_bus = EventBus()
        self.notifier = Notifier(self._on_notice)

        if config.server_url:
            self.backend = BackendClient(config.server_url, api_key=config.api_key,
                                         timeout=config.request_timeout, commands_path=config.commands_path)
        else:
            logger.info("No server_url configured - using demo data")
            self.backend = _demo_backend()

        self.renderer = ReceiptRenderer(config.paper_width, CurrencyFormatter(config.currency),
                                        ZoneInfo(config.timezone))
        output = ReceiptOutput(self.renderer, self.scheduler,
                               surface_factory=make_surface_factory(config.printer),
                               notifier=self.notifier, download_dir=Path(config.download_dir))
        self.view = SalesRecordsView(
            self.backend, self.scheduler, output, self.renderer,
            resolver=DateRangeResolver(week_starts_on=config.week_starts_on),
            notifier=self.notifier, event_bus=self.event_bus,
            default_store=StoreProfile(name=config.store_name),
            fetch_limit=config.fetch_limit, refresh_interval=config.refresh_interval,
            debounce_delay=config.debounce_delay, auto_refresh=config.auto_refresh,
        )

    def _on_notice(self, level: str, message: str):
        self.notices = (self.notices + [{'level': level, 'message': message}])[-20:]

    def list_sales(self, params: dict) -> dict:
        view = self.view
        token = params.get('range', view.range_token)
        start, end = params.get('start', view.custom_start), params.get('end', view.custom_end)
        if (token, start, end) != (view.range_token, view.custom_start, view.custom_end):
            view.set_date_range(token, start, end)
        if 'method' in params:
            method = params['method'] if params['method'] not in ('', 'all') else None
            if method != view.payment_method:
                view.set_payment_method(method)
        if 'q' in params:
            view.set_search_query(params['q'])
            view.pipeline.flush_search()
        if 'page' in params:
            view.go_to_page(int(params['page']))
        page = view.page()
        return {
            'date_range': asdict(view.date_range),
            'sort': asdict(view.pipeline.sort),
            'page': page,
            'stats': view.stats,
        }

    def status(self) -> dict:
        return {
            'backend': type(self.backend).__name__,
            'pending_timers': self.scheduler.pending_count(),
            'notices': self.notices,
        }


def _json_default(obj):
    if is_dataclass(obj):
        return asdict(obj)
    if isinstance(obj, (Decimal, datetime)):
        return str(obj)
    raise TypeError(f"Not JSON serializable: {type(obj).__name__}")


class Handler(BaseHTTPRequestHandler):
    app: SalesApp = None

    def _send_json(self, body, status=200):
        data = json.dumps(body, default=_json_default).encode()
        self.send_response(status)
        self.send_header('Content-type', 'application/json')
        self.send_header('Content-Length', str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _route(self):
        url = urlparse(self.path)
        params = {k: v[-1] for k, v in parse_qs(url.query, keep_blank_values=True).items()}
        parts = [p for p in url.path.split('/') if p]
        return parts, params

    def do_GET(self):
        parts, params = self._route()
        try:
            if parts == ['sales']:
                self._send_json(self.app.list_sales(params))
            elif len(parts) == 2 and parts[0] == 'sales':
                detail = self.app.view.select_transaction(int(parts[1]))
                if detail is None:
                    self._send_json({'error': 'Failed to load sale details'}, 502)
                else:
                    self._send_json(detail)
            elif parts == ['status']:
                self._send_json(self.app.status())
            else:
                self._send_json({'error': 'Not found'}, 404)
        except ValueError as e:
            self._send_json({'error': str(e)}, 400)

    def do_POST(self):
        parts, params = self._route()
        try:
            if parts == ['sales', 'sort']:
                self._send_json(self.app.view.sort_by(params.get('key', 'created_at')))
            elif len(parts) == 3 and parts[0] == 'sales' and parts[2] == 'print':
                if self.app.view.select_transaction(int(parts[1])) is None:
                    self._send_json({'error': 'Failed to load sale details'}, 502)
                    return
                outcome = self.app.view.print_receipt()
                if outcome is None:
                    self._send_json({'error': 'No sale data available'}, 409)
                elif outcome.tier == 'failed':
                    self._send_json({'error': 'Receipt could not be printed or saved'}, 500)
                else:
                    self._send_json(outcome)
            elif parts == ['events', 'sale-recorded']:
                event = SaleRecorded(int(params['id']), params.get('number', ''))
                self._send_json({'delivered': self.app.event_bus.publish(event)})
            else:
                self._send_json({'error': 'Not found'}, 404)
        except (KeyError, ValueError) as e:
            self._send_json({'error': str(e)}, 400)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


def main():
    config = load_config()
    setup_logging(Path(config.log_file) if config.log_file else None)

    app = SalesApp(config)
    app.view.start()
    Handler.app = app
    server = HTTPServer(('', config.http_port), Handler)

    print("=" * 50)
    print("  RetailStack Sales Records")
    print("=" * 50)
    print(f"API: http://localhost:{config.http_port}/sales")
    print("Logs: logs/retailstack_sales.log")
    print("=" * 50)
    print("Press Ctrl+C to stop")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        server.server_close()
        app.view.close()
        app.scheduler.cancel_all()


if __name__ == '__main__':
    main()
