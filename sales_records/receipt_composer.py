# Receipt Composer - builds the printable receipt for a sale
# The document is immutable; a new one is composed for every print

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from .models import ZERO, StoreProfile, TransactionDetail

DEFAULT_STORE_NAME = 'RetailStack'
THANK_YOU_LINES = (
    'Thank you for your purchase!',
    'Please keep this receipt for your records',
)


@dataclass(frozen=True)
class ReceiptRow:
    """One printed line item"""
    label: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class SummaryLine:
    label: str
    amount: Decimal


@dataclass(frozen=True)
class ReceiptDocument:
    """Everything printed on one receipt, in print order"""
    store_name: str
    header_lines: Tuple[str, ...]
    sale_number: str
    created_at: datetime
    cashier: Optional[str]
    customer_lines: Tuple[Tuple[str, str], ...]
    rows: Tuple[ReceiptRow, ...]
    summary: Tuple[SummaryLine, ...]
    payment_label: str
    tender_lines: Tuple[SummaryLine, ...]
    note: Optional[str]
    footer_lines: Tuple[str, ...]


def _present(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _header_lines(store: StoreProfile) -> Tuple[str, ...]:
    lines = []
    if _present(store.address):
        lines.append(store.address.strip())
    if _present(store.city) and _present(store.state) and _present(store.zip_code):
        lines.append(f"{store.city.strip()}, {store.state.strip()} {store.zip_code.strip()}")
    if _present(store.phone):
        lines.append(f"Tel: {store.phone.strip()}")
    if _present(store.email):
        lines.append(store.email.strip())
    if _present(store.receipt_header):
        lines.append(store.receipt_header.strip())
    return tuple(lines)


def compose(detail: TransactionDetail, store: Optional[StoreProfile] = None,
            cashier_label: Optional[str] = None, amount_received: Optional[Decimal] = None,
            change: Optional[Decimal] = None) -> ReceiptDocument:
    """Build a receipt document from a sale, its items and the store profile"""
    store = store or StoreProfile()
    sale = detail.sale

    rows = tuple(
        ReceiptRow(
            label=_present(item.product_name) or f"Product #{item.product_id}",
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
        )
        for item in detail.items
    )

    summary = [SummaryLine('Subtotal', sale.subtotal), SummaryLine('Tax', sale.tax_amount)]
    if sale.discount_amount > ZERO:
        summary.append(SummaryLine('Discount', sale.discount_amount))
    summary.append(SummaryLine('Total', sale.total_amount))

    customer_lines = []
    if _present(sale.customer_name):
        customer_lines.append(('Customer', sale.customer_name.strip()))
    if _present(sale.customer_phone):
        customer_lines.append(('Phone', sale.customer_phone.strip()))

    tender_lines = []
    if amount_received:
        tender_lines.append(SummaryLine('Received', amount_received))
    if change is not None and change > ZERO:
        tender_lines.append(SummaryLine('Change', change))

    footer = []
    if _present(store.receipt_footer):
        footer.append(store.receipt_footer.strip())
    footer.extend(THANK_YOU_LINES)

    return ReceiptDocument(
        store_name=_present(store.name) or DEFAULT_STORE_NAME,
        header_lines=_header_lines(store),
        sale_number=sale.sale_number,
        created_at=sale.created_at,
        cashier=_present(cashier_label) or _present(sale.cashier_name),
        customer_lines=tuple(customer_lines),
        rows=rows,
        summary=tuple(summary),
        payment_label=sale.payment_method.upper(),
        tender_lines=tuple(tender_lines),
        note=_present(sale.notes),
        footer_lines=tuple(footer),
    )
