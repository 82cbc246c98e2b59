# Currency formatting for receipts

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    decimal_places: int
    thousands_separator: str
    decimal_separator: str
    symbol_first: bool


CURRENCIES: Dict[str, Currency] = {
    'USD': Currency('USD', '$', 2, ',', '.', True),
    # CFA francs are not subdivided
    'XAF': Currency('XAF', 'FCFA', 0, ' ', ',', False),
}


class CurrencyFormatter:
    """Formats Decimal amounts as $1,234.56 or 1 234 FCFA"""

    def __init__(self, code: str = 'USD'):
        if code not in CURRENCIES:
            raise ValueError(f"Unsupported currency: {code}")
        self.currency = CURRENCIES[code]

    def format(self, amount: Decimal) -> str:
        c = self.currency
        quantum = Decimal(1).scaleb(-c.decimal_places)
        value = Decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)
        sign = '-' if value < 0 else ''
        number = f"{abs(value):,.{c.decimal_places}f}"
        # Swap separators through a placeholder so ',' -> ' ' and '.' -> ',' don't collide
        number = number.replace(',', '\0').replace('.', c.decimal_separator).replace('\0', c.thousands_separator)
        if c.symbol_first:
            return f"{sign}{c.symbol}{number}"
        return f"{sign}{number} {c.symbol}"
