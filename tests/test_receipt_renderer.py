# Tests for fixed-width receipt rendering

from datetime import timedelta, timezone
from decimal import Decimal

import pytest

from helpers import make_detail
from sales_records.currency import CurrencyFormatter
from sales_records.models import StoreProfile
from sales_records.receipt_composer import compose
from sales_records.receipt_renderer import PAPER_COLUMNS, ReceiptRenderer


def busy_detail():
    items = [
        {'id': 1, 'product_id': 3, 'product': {'name': 'Extra long premium basmati rice family pack'},
         'quantity': 12, 'unit_price': '1234.56', 'line_total': '14814.72'},
        {'id': 2, 'product_id': 9, 'quantity': 1, 'unit_price': '0.99', 'line_total': '0.99'},
    ]
    return make_detail(1, items=items, subtotal='14815.71', tax_amount='1185.26',
                       discount_amount='100.00', total_amount='15900.97', cashier_name='Grace',
                       customer_name='Ada Obi', customer_phone='0803 555 0101',
                       notes='Deliver to the back door after 5pm please, ring twice')


def busy_store():
    return StoreProfile(name='RetailStack Superstore and Pharmacy', address='12 Main Street, Block C',
                        city='Lagos', state='LA', zip_code='100001', phone='555-0100',
                        email='hello@retailstack.example', receipt_footer='Goods sold are not returnable')


class TestReceiptRenderer:
    """Test receipt layout"""

    def test_golden_58mm(self):
        renderer = ReceiptRenderer('58mm')

        text = renderer.render(compose(make_detail(1)))

        assert text.split('\n') == [
            '          RetailStack',
            '=' * 32,
            'Receipt #: S-1001',
            'Date: 2024-03-02 10:00',
            '-' * 32,
            'Widget',
            f"{'  2 x $50.00':<25}$100.00",
            '-' * 32,
            f"{'Subtotal:':<25}$100.00",
            f"{'Tax:':<27}$8.00",
            '=' * 32,
            f"{'TOTAL:':<25}$108.00",
            '=' * 32,
            f"{'Payment:':<28}CASH",
            '-' * 32,
            '  Thank you for your purchase!',
            '  Please keep this receipt for',
            '          your records',
            '',
        ]

    def test_render_is_deterministic(self):
        """Test composing twice from the same sale renders identical text"""
        renderer = ReceiptRenderer('80mm')
        first = compose(busy_detail(), busy_store(), amount_received=Decimal('16000'), change=Decimal('99.03'))
        second = compose(busy_detail(), busy_store(), amount_received=Decimal('16000'), change=Decimal('99.03'))

        assert first is not second
        assert renderer.render(first) == renderer.render(second)

    @pytest.mark.parametrize('paper', ['58mm', '80mm'])
    def test_lines_fit_paper(self, paper):
        renderer = ReceiptRenderer(paper)
        doc = compose(busy_detail(), busy_store(), amount_received=Decimal('16000'), change=Decimal('99.03'))

        lines = renderer.render(doc).splitlines()

        assert all(len(line) <= PAPER_COLUMNS[paper] for line in lines)

    @pytest.mark.parametrize('paper', ['58mm', '80mm'])
    def test_amounts_right_aligned(self, paper):
        renderer = ReceiptRenderer(paper)
        width = PAPER_COLUMNS[paper]

        lines = renderer.render(compose(busy_detail())).splitlines()
        amount_lines = [line for line in lines if line.endswith(('$14,814.72', '$15,900.97', '$0.99'))]

        assert len(amount_lines) == 3
        assert all(len(line) == width for line in amount_lines)

    def test_wide_amounts_move_to_next_line(self):
        """Test prices are never cut when qty, unit price and total overflow 58mm"""
        items = [{'id': 1, 'product_id': 3, 'product': {'name': 'Cement 50kg'}, 'quantity': 10,
                  'unit_price': '250000', 'line_total': '2500000'}]
        detail = make_detail(1, items=items, subtotal='2500000', tax_amount='0', total_amount='2500000')
        renderer = ReceiptRenderer('58mm', CurrencyFormatter('XAF'))

        lines = renderer.render(compose(detail)).splitlines()

        row = lines.index('Cement 50kg')
        assert lines[row + 1] == '  10 x 250 000 FCFA'
        assert lines[row + 2] == '2 500 000 FCFA'.rjust(32)
        assert f"{'Subtotal:':<18}2 500 000 FCFA" in lines
        assert all(len(line) <= 32 for line in lines)

    def test_discount_printed_negative(self):
        text = ReceiptRenderer('58mm').render(compose(busy_detail()))

        assert f"{'Discount:':<24}-$100.00" in text.splitlines()

    def test_optional_sections(self):
        text = ReceiptRenderer('80mm').render(compose(busy_detail(), busy_store()))

        assert 'Cashier: Grace' in text
        assert 'Customer: Ada Obi' in text
        assert 'Notes: Deliver to the back door' in text
        assert 'Lagos, LA 100001' in text

    def test_timestamp_in_configured_zone(self):
        renderer = ReceiptRenderer('58mm', tz=timezone(timedelta(hours=1)))

        assert 'Date: 2024-03-02 11:00' in renderer.render(compose(make_detail(1)))

    def test_unknown_paper_width(self):
        with pytest.raises(ValueError):
            ReceiptRenderer('110mm')

    def test_escpos_framing(self):
        renderer = ReceiptRenderer('58mm')

        data = renderer.to_escpos('Total: £5\n')

        assert data.startswith(b'\x1b@')
        assert data.endswith(b'\x1bd\x04\x1dV\x42\x00')
        assert b'Total: \xa35\n' in data

    def test_html_download_copy(self):
        renderer = ReceiptRenderer('58mm')

        page = renderer.to_html('<Widget> & co\n', 'receipt-S-1')

        assert '&lt;Widget&gt; &amp; co' in page
        assert '<title>receipt-S-1</title>' in page
        assert 'size: 58mm auto' in page


class TestCurrencyFormatter:
    """Test money formatting"""

    def test_usd(self):
        fmt = CurrencyFormatter('USD')

        assert fmt.format(Decimal('1234.5')) == '$1,234.50'
        assert fmt.format(Decimal('0')) == '$0.00'
        assert fmt.format(Decimal('-5')) == '-$5.00'

    def test_half_up_rounding(self):
        assert CurrencyFormatter('USD').format(Decimal('2.345')) == '$2.35'

    def test_xaf(self):
        fmt = CurrencyFormatter('XAF')

        assert fmt.format(Decimal('1234567')) == '1 234 567 FCFA'
        assert fmt.format(Decimal('99.5')) == '100 FCFA'

    def test_unknown_currency(self):
        with pytest.raises(ValueError):
            CurrencyFormatter('GBP')
