# Data model for RetailStack Sales Records
# Immutable records parsed from backend payloads

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ('cash', 'card', 'mobile', 'check')

SORT_KEYS = ('created_at', 'sale_number', 'total_amount', 'profit')
ASC = 'asc'
DESC = 'desc'

ZERO = Decimal('0')


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number/string to Decimal; None and blanks become 0"""
    if value is None or value == '':
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps 0.1 as 0.1 instead of the binary float expansion
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def parse_timestamp(value: Any) -> datetime:
    """Parse a backend timestamp; values without an offset are UTC"""
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


@dataclass(frozen=True)
class TransactionSummary:
    """One row of the sales list"""
    id: int
    sale_number: str
    created_at: datetime
    subtotal: Decimal = ZERO
    tax_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    payment_method: str = 'cash'
    payment_status: str = 'completed'
    cashier_id: Optional[int] = None
    cashier_name: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    notes: Optional[str] = None
    items_count: int = 0
    profit: Decimal = ZERO
    is_voided: bool = False
    voided_by: Optional[int] = None
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    shift_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransactionSummary':
        method = str(data.get('payment_method') or 'cash').lower()
        if method not in PAYMENT_METHODS:
            logger.debug("Unknown payment method %r on sale %s", method, data.get('sale_number'))
        voided_at = data.get('voided_at')
        return cls(
            id=int(data['id']),
            sale_number=str(data['sale_number']),
            created_at=parse_timestamp(data['created_at']),
            subtotal=to_decimal(data.get('subtotal')),
            tax_amount=to_decimal(data.get('tax_amount')),
            discount_amount=to_decimal(data.get('discount_amount')),
            total_amount=to_decimal(data.get('total_amount')),
            payment_method=method,
            payment_status=str(data.get('payment_status') or 'completed'),
            cashier_id=data.get('cashier_id'),
            cashier_name=_optional_text(data.get('cashier_name')),
            customer_name=_optional_text(data.get('customer_name')),
            customer_phone=_optional_text(data.get('customer_phone')),
            customer_email=_optional_text(data.get('customer_email')),
            notes=_optional_text(data.get('notes')),
            items_count=int(data.get('items_count') or 0),
            profit=to_decimal(data.get('profit')),
            is_voided=bool(data.get('is_voided')),
            voided_by=data.get('voided_by'),
            voided_at=parse_timestamp(voided_at) if voided_at else None,
            void_reason=_optional_text(data.get('void_reason')),
            shift_id=data.get('shift_id'),
        )


@dataclass(frozen=True)
class LineItem:
    """A single product line of a sale"""
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    product_name: Optional[str] = None
    discount_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    cost_price: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineItem':
        quantity = int(data.get('quantity') or 0)
        if quantity < 1:
            raise ValueError(f"Line item {data.get('id')} has quantity {quantity}")
        # get_sale_details nests the product; older payloads flatten the name
        product = data.get('product') or {}
        name = product.get('name') if isinstance(product, dict) else None
        return cls(
            id=int(data.get('id') or 0),
            product_id=int(data['product_id']),
            quantity=quantity,
            unit_price=to_decimal(data.get('unit_price')),
            line_total=to_decimal(data.get('line_total')),
            product_name=_optional_text(name or data.get('product_name')),
            discount_amount=to_decimal(data.get('discount_amount')),
            tax_amount=to_decimal(data.get('tax_amount')),
            cost_price=to_decimal(data.get('cost_price')),
        )


@dataclass(frozen=True)
class TransactionDetail:
    """A sale together with its ordered line items"""
    sale: TransactionSummary
    items: Tuple[LineItem, ...] = ()

    @classmethod
    def from_payload(cls, sale: Dict[str, Any], items: List[Dict[str, Any]]) -> 'TransactionDetail':
        parsed_items = tuple(LineItem.from_dict(i) for i in items)
        summary = TransactionSummary.from_dict(sale)
        if not summary.items_count:
            summary = replace(summary, items_count=len(parsed_items))
        return cls(sale=summary, items=parsed_items)


@dataclass(frozen=True)
class AggregateStats:
    """Sales totals for a date range"""
    total_sales: Decimal = ZERO
    total_transactions: int = 0
    average_transaction: Decimal = ZERO
    total_profit: Decimal = ZERO
    profit_margin: Decimal = ZERO
    cash_sales: Decimal = ZERO
    card_sales: Decimal = ZERO
    mobile_sales: Decimal = ZERO
    check_sales: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AggregateStats':
        return cls(
            total_sales=to_decimal(data.get('total_sales')),
            total_transactions=int(data.get('total_transactions') or 0),
            average_transaction=to_decimal(data.get('average_transaction')),
            total_profit=to_decimal(data.get('total_profit')),
            profit_margin=to_decimal(data.get('profit_margin')),
            cash_sales=to_decimal(data.get('cash_sales')),
            card_sales=to_decimal(data.get('card_sales')),
            mobile_sales=to_decimal(data.get('mobile_sales')),
            check_sales=to_decimal(data.get('check_sales')),
        )

    def by_method(self) -> Dict[str, Decimal]:
        return {m: getattr(self, f'{m}_sales') for m in PAYMENT_METHODS}


@dataclass(frozen=True)
class StoreProfile:
    """Store details printed in the receipt header"""
    name: str = ''
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    receipt_header: Optional[str] = None
    receipt_footer: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StoreProfile':
        return cls(
            name=str(data.get('name') or ''),
            address=_optional_text(data.get('address')),
            city=_optional_text(data.get('city')),
            state=_optional_text(data.get('state')),
            zip_code=_optional_text(data.get('zip_code') or data.get('zip')),
            phone=_optional_text(data.get('phone')),
            email=_optional_text(data.get('email')),
            receipt_header=_optional_text(data.get('receipt_header')),
            receipt_footer=_optional_text(data.get('receipt_footer')),
        )


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar bounds as YYYY-MM-DD; '' leaves that side open"""
    start: str = ''
    end: str = ''

    def as_query(self) -> Tuple[Optional[str], Optional[str]]:
        return (self.start or None, self.end or None)


@dataclass(frozen=True)
class SortSpec:
    """The single active sort column"""
    key: str = 'created_at'
    direction: str = DESC

    def __post_init__(self):
        if self.key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {self.key}")
        if self.direction not in (ASC, DESC):
            raise ValueError(f"Unknown sort direction: {self.direction}")

    def toggled(self, key: str) -> 'SortSpec':
        """Same key flips direction, a different key starts ascending"""
        if key == self.key:
            return SortSpec(key, ASC if self.direction == DESC else DESC)
        return SortSpec(key, ASC)


@dataclass(frozen=True)
class PageResult:
    """The visible slice of the filtered, sorted list"""
    rows: Tuple[TransactionSummary, ...] = ()
    current_page: int = 1
    total_pages: int = 0
    filtered_count: int = 0
    page_links: Tuple[int, ...] = field(default_factory=tuple)
