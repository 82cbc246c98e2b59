# Tests for print-or-download receipt output

import socket

import pytest
import serial

from sales_records.errors import PrintSurfaceUnavailable
from sales_records.receipt_output import (
    NetworkPrintSurface, PrintSurface, ReceiptOutput, SerialPrintSurface, WindowsSpoolerSurface,
    make_surface_factory,
)
from sales_records.receipt_renderer import ReceiptRenderer


class FakeSurface(PrintSurface):
    """In-memory printer connection"""

    def __init__(self, fail_open=False, fail_print=False):
        super().__init__()
        self.name = 'fake'
        self.fail_open = fail_open
        self.fail_print = fail_print
        self.opened = False
        self.jobs = []

    def open(self):
        if self.fail_open:
            raise PrintSurfaceUnavailable("offline")
        self.opened = True

    def print_job(self, data):
        if self.fail_print:
            raise PrintSurfaceUnavailable("paper out")
        self.jobs.append(data)


class TestReceiptOutput:
    """Test printer tier, download fallback and connection cleanup"""

    @pytest.fixture(autouse=True)
    def _output(self, scheduler, notifier, tmp_path):
        self.scheduler = scheduler
        self.notifier = notifier
        self.tmp_path = tmp_path
        self.renderer = ReceiptRenderer('58mm')
        self.surfaces = []

    def make_output(self, **surface_kwargs):
        def factory():
            surface = FakeSurface(**surface_kwargs)
            self.surfaces.append(surface)
            return surface
        return ReceiptOutput(self.renderer, self.scheduler, factory, self.notifier,
                             download_dir=self.tmp_path / 'receipts')

    def test_printed(self):
        output = self.make_output()

        outcome = output.print_or_download('hello\n', 'receipt-S-1')

        assert outcome.tier == 'printed'
        assert outcome.target == 'fake'
        assert self.surfaces[0].jobs == [self.renderer.to_escpos('hello\n')]
        assert self.notifier.notices == [('info', 'Receipt sent to printer')]

    def test_surface_closed_after_delay(self):
        output = self.make_output()
        output.print_or_download('hello\n', 'receipt-S-1')
        surface = self.surfaces[0]

        self.scheduler.advance(0.5)
        assert not surface.closed
        assert output.pending_cleanups() == 1

        self.scheduler.advance(0.5)
        assert surface.closed
        assert output.pending_cleanups() == 0

    def test_no_printer_downloads(self):
        output = ReceiptOutput(self.renderer, self.scheduler, None, self.notifier,
                               download_dir=self.tmp_path / 'receipts')

        outcome = output.print_or_download('hello <b>\n', 'receipt-S-1')

        assert outcome.tier == 'downloaded'
        path = self.tmp_path / 'receipts' / 'receipt-S-1.html'
        assert outcome.target == str(path)
        assert 'hello &lt;b&gt;' in path.read_text(encoding='utf-8')
        assert self.notifier.levels() == ['info']
        assert self.scheduler.pending() == []

    @pytest.mark.parametrize('failure', ['fail_open', 'fail_print'])
    def test_printer_failure_falls_back_and_still_closes(self, failure):
        output = self.make_output(**{failure: True})

        outcome = output.print_or_download('hello\n', 'receipt-S-1')

        assert outcome.tier == 'downloaded'
        assert (self.tmp_path / 'receipts' / 'receipt-S-1.html').exists()
        self.scheduler.advance(1.0)
        assert self.surfaces[0].closed
        assert output.pending_cleanups() == 0

    def test_repeated_prints_all_cleaned_up(self):
        output = self.make_output()

        for n in range(5):
            output.print_or_download('hello\n', f'receipt-S-{n}')
        self.scheduler.advance(1.0)

        assert len(self.surfaces) == 5
        assert all(s.closed for s in self.surfaces)
        assert output.pending_cleanups() == 0

    def test_close_releases_pending_surfaces(self):
        output = self.make_output()
        output.print_or_download('hello\n', 'receipt-S-1')

        output.close()

        assert self.surfaces[0].closed
        # The scheduled cleanup is then a no-op
        self.scheduler.advance(1.0)
        assert output.pending_cleanups() == 0

    def test_unwritable_download_dir_fails_with_notice(self):
        """Test a download failure is reported instead of raised"""
        blocker = self.tmp_path / 'receipts'
        blocker.write_text('not a directory')
        output = ReceiptOutput(self.renderer, self.scheduler, None, self.notifier, download_dir=blocker)

        outcome = output.print_or_download('text', 'receipt-S-1')

        assert outcome.tier == 'failed'
        assert outcome.target == str(blocker)
        assert self.notifier.levels() == ['error']

    def test_print_surface_is_abstract(self):
        with pytest.raises(TypeError):
            PrintSurface()

    def test_unsafe_filename(self):
        output = ReceiptOutput(self.renderer, self.scheduler, None, self.notifier,
                               download_dir=self.tmp_path)

        outcome = output.print_or_download('x\n', '../receipt S/1')

        assert outcome.target == str(self.tmp_path / 'receipt_S_1.html')


class TestSurfaceFactory:
    """Test printer config parsing"""

    def test_none(self):
        assert make_surface_factory({'mode': 'none'}) is None
        assert make_surface_factory({}) is None

    def test_unknown_mode(self):
        assert make_surface_factory({'mode': 'usb'}) is None

    def test_network(self):
        factory = make_surface_factory({'mode': 'network', 'host': '10.0.0.5', 'port': 9101})

        surface = factory()

        assert isinstance(surface, NetworkPrintSurface)
        assert surface.name == 'network:10.0.0.5:9101'

    def test_network_without_host(self):
        assert make_surface_factory({'mode': 'network'}) is None

    def test_serial(self):
        surface = make_surface_factory({'mode': 'serial', 'serial_port': '/dev/ttyUSB0', 'baudrate': 19200})()

        assert isinstance(surface, SerialPrintSurface)
        assert surface.baudrate == 19200

    def test_windows(self):
        surface = make_surface_factory({'mode': 'windows', 'printer_name': 'EPSON TM-T20'})()

        assert isinstance(surface, WindowsSpoolerSurface)
        assert surface.name == 'windows:EPSON TM-T20'


class TestPrintSurfaces:
    """Test connection failures map to PrintSurfaceUnavailable"""

    def test_network_unreachable(self, monkeypatch):
        def refuse(address, timeout=None):
            raise ConnectionRefusedError("refused")
        monkeypatch.setattr(socket, 'create_connection', refuse)

        with pytest.raises(PrintSurfaceUnavailable):
            NetworkPrintSurface('10.0.0.5').open()

    def test_network_sends_job(self, monkeypatch):
        sent = []

        class Sock:
            def sendall(self, data):
                sent.append(data)

            def close(self):
                sent.append('closed')

        monkeypatch.setattr(socket, 'create_connection', lambda address, timeout=None: Sock())
        surface = NetworkPrintSurface('10.0.0.5')

        surface.open()
        surface.print_job(b'data')
        surface.close()
        surface.close()

        assert sent == [b'data', 'closed']

    def test_serial_port_missing(self, monkeypatch):
        def missing(*args, **kwargs):
            raise serial.SerialException("could not open port")
        monkeypatch.setattr(serial, 'Serial', missing)

        with pytest.raises(PrintSurfaceUnavailable):
            SerialPrintSurface('/dev/ttyUSB9').open()

    def test_windows_spooler_unavailable(self, monkeypatch):
        monkeypatch.setattr('sales_records.receipt_output.WIN32_AVAILABLE', False)

        with pytest.raises(PrintSurfaceUnavailable):
            WindowsSpoolerSurface().open()
