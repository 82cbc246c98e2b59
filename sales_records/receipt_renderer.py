# Receipt Renderer - fixed-width thermal receipt layout
# Produces plain text, ESC/POS bytes for the printer and a standalone HTML copy

import html
import logging
import textwrap
from datetime import timezone, tzinfo
from typing import List, Optional

from .currency import CurrencyFormatter
from .receipt_composer import ReceiptDocument

logger = logging.getLogger(__name__)

# Characters per line in the printer's default font
PAPER_COLUMNS = {
    '58mm': 32,
    '80mm': 48,
}

AMOUNT_WIDTH = 12
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M'


class ReceiptRenderer:
    """Lays out a ReceiptDocument in monospace columns"""

    # ESC/POS command constants
    ESC = b'\x1b'
    GS = b'\x1d'
    LF = b'\x0a'

    CMD_INITIALIZE = ESC + b'@'       # Initialize printer
    CMD_FEED = ESC + b'd' + b'\x04'   # Feed 4 lines
    CMD_CUT = GS + b'V' + b'\x42\x00'  # Partial cut after feed

    ENCODING = 'cp1252'

    def __init__(self, paper_width: str = '80mm', currency: Optional[CurrencyFormatter] = None,
                 tz: Optional[tzinfo] = None):
        if paper_width not in PAPER_COLUMNS:
            raise ValueError(f"Unsupported paper width: {paper_width}")
        self.paper_width = paper_width
        self.width = PAPER_COLUMNS[paper_width]
        self.currency = currency or CurrencyFormatter()
        self.tz = tz or timezone.utc

    def _center(self, text: str) -> List[str]:
        return [line.center(self.width).rstrip() for line in textwrap.wrap(text, self.width)] or ['']

    def _wrap(self, text: str, indent: str = '') -> List[str]:
        return textwrap.wrap(text, self.width, subsequent_indent=indent) or ['']

    def _columns(self, left: str, right: str) -> List[str]:
        """Left text padded so right ends on the last column

        When the two do not fit on one line, right goes on its own line below.
        """
        right_width = max(AMOUNT_WIDTH, len(right))
        if len(left) + right_width > self.width:
            return [left, right.rjust(self.width)]
        return [left.ljust(self.width - right_width) + right.rjust(right_width)]

    def _rule(self, char: str) -> str:
        return char * self.width

    def render(self, doc: ReceiptDocument) -> str:
        money = self.currency.format
        lines: List[str] = []

        lines.extend(self._center(doc.store_name))
        for header in doc.header_lines:
            lines.extend(self._center(header))
        lines.append(self._rule('='))

        lines.extend(self._wrap(f"Receipt #: {doc.sale_number}"))
        lines.append(f"Date: {doc.created_at.astimezone(self.tz).strftime(TIMESTAMP_FORMAT)}")
        if doc.cashier:
            lines.extend(self._wrap(f"Cashier: {doc.cashier}"))
        for label, value in doc.customer_lines:
            lines.extend(self._wrap(f"{label}: {value}"))
        lines.append(self._rule('-'))

        for row in doc.rows:
            lines.extend(self._wrap(row.label, '  '))
            lines.extend(self._columns(f"  {row.quantity} x {money(row.unit_price)}", money(row.line_total)))
        lines.append(self._rule('-'))

        for entry in doc.summary:
            if entry.label == 'Total':
                lines.append(self._rule('='))
                lines.extend(self._columns('TOTAL:', money(entry.amount)))
                lines.append(self._rule('='))
            elif entry.label == 'Discount':
                lines.extend(self._columns('Discount:', money(-entry.amount)))
            else:
                lines.extend(self._columns(f"{entry.label}:", money(entry.amount)))

        lines.extend(self._columns('Payment:', doc.payment_label))
        for entry in doc.tender_lines:
            lines.extend(self._columns(f"{entry.label}:", money(entry.amount)))

        if doc.note:
            lines.append(self._rule('-'))
            lines.extend(self._wrap(f"Notes: {doc.note}"))

        lines.append(self._rule('-'))
        for footer in doc.footer_lines:
            lines.extend(self._center(footer))

        return '\n'.join(lines) + '\n'

    def to_escpos(self, text: str) -> bytes:
        """Wrap rendered text in printer init, feed and cut commands"""
        body = text.encode(self.ENCODING, errors='replace')
        return self.CMD_INITIALIZE + body + self.CMD_FEED + self.CMD_CUT

    def to_html(self, text: str, title: str) -> str:
        """Standalone page the user can open and print by hand"""
        return (
            '<!DOCTYPE html>\n'
            '<html>\n'
            '<head>\n'
            '<meta charset="utf-8">\n'
            f'<title>{html.escape(title)}</title>\n'
            '<style>\n'
            f'@media print {{ @page {{ size: {self.paper_width} auto; margin: 0; }} }}\n'
            f'body {{ margin: 0 auto; max-width: {self.paper_width}; }}\n'
            "pre { font-family: 'Courier New', monospace; font-size: 12px; margin: 0; }\n"
            '</style>\n'
            '</head>\n'
            '<body>\n'
            f'<pre>{html.escape(text)}</pre>\n'
            '</body>\n'
            '</html>\n'
        )
