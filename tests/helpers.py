# Test doubles and payload builders for RetailStack Sales Records tests

from sales_records.models import TransactionDetail, TransactionSummary


class ManualHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls advance()"""

    def __init__(self):
        self.now = 0.0
        self.tasks = []

    def call_later(self, delay, callback):
        handle = ManualHandle(self.now + delay, callback)
        self.tasks.append(handle)
        return handle

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [t for t in self.tasks if not t.cancelled and t.when <= target]
            if not due:
                break
            task = min(due, key=lambda t: t.when)
            self.tasks.remove(task)
            self.now = task.when
            task.callback()
        self.now = target

    def pending(self):
        return [t for t in self.tasks if not t.cancelled]


class RecordingNotifier:
    """Notifier stand-in that keeps every notice"""

    def __init__(self):
        self.notices = []

    def info(self, message):
        self.notices.append(('info', message))

    def warning(self, message):
        self.notices.append(('warning', message))

    def error(self, message):
        self.notices.append(('error', message))

    def levels(self):
        return [level for level, _ in self.notices]


def sale_dict(sale_id, **overrides):
    """Backend-shaped sale payload"""
    data = {
        'id': sale_id,
        'sale_number': f'S-{1000 + sale_id}',
        'created_at': f'2024-03-{(sale_id % 28) + 1:02d} 10:00:00',
        'subtotal': '100.00',
        'tax_amount': '8.00',
        'discount_amount': '0',
        'total_amount': '108.00',
        'payment_method': 'cash',
        'items_count': 1,
        'profit': '20.00',
    }
    data.update(overrides)
    return data


def make_sale(sale_id, **overrides) -> TransactionSummary:
    return TransactionSummary.from_dict(sale_dict(sale_id, **overrides))


def make_detail(sale_id=1, items=None, **overrides) -> TransactionDetail:
    if items is None:
        items = [{'id': 1, 'product_id': 7, 'product': {'name': 'Widget'}, 'quantity': 2,
                  'unit_price': '50.00', 'line_total': '100.00'}]
    return TransactionDetail.from_payload(sale_dict(sale_id, **overrides), items)


