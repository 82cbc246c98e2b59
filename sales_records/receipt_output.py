# Receipt Output - sends rendered receipts to a thermal printer or to a file
# Network (port 9100), serial and Windows spooler printers; HTML download as fallback

import logging
import re
import socket
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Set

import serial

from .errors import PrintSurfaceUnavailable
from .notifications import Notifier

# Windows spooler - optional (pywin32)
WIN32_AVAILABLE = False
if sys.platform == 'win32':
    try:
        import win32print
        WIN32_AVAILABLE = True
    except ImportError:
        pass

logger = logging.getLogger(__name__)

CLEANUP_DELAY = 1.0  # seconds a printer connection stays open after the job


class PrintSurface(ABC):
    """A printer connection owned by a single print job"""

    name = 'printer'

    def __init__(self):
        self.closed = False

    @abstractmethod
    def open(self):
        """Connect to the printer; raises PrintSurfaceUnavailable"""

    @abstractmethod
    def print_job(self, data: bytes):
        """Send one ESC/POS job; raises PrintSurfaceUnavailable"""

    def _release(self):
        pass

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self._release()
        except OSError as e:
            logger.warning("Error closing %s: %s", self.name, e)
        logger.debug("%s closed", self.name)


class NetworkPrintSurface(PrintSurface):
    """Raw TCP printer (most thermal printers listen on 9100)"""

    def __init__(self, host: str, port: int = 9100, timeout: float = 5.0):
        super().__init__()
        self.host = host
        self.port = port
        self.timeout = timeout
        self.name = f"network:{host}:{port}"
        self.sock = None

    def open(self):
        try:
            self.sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            raise PrintSurfaceUnavailable(f"Cannot reach printer {self.host}:{self.port}: {e}") from e

    def print_job(self, data: bytes):
        try:
            self.sock.sendall(data)
        except OSError as e:
            raise PrintSurfaceUnavailable(f"Printer {self.name} dropped the job: {e}") from e

    def _release(self):
        if self.sock is not None:
            self.sock.close()


class SerialPrintSurface(PrintSurface):
    """Printer on a serial/COM port"""

    def __init__(self, port: str = 'COM3', baudrate: int = 9600):
        super().__init__()
        self.port = port
        self.baudrate = baudrate
        self.name = f"serial:{port}"
        self.ser = None

    def open(self):
        try:
            self.ser = serial.Serial(self.port, self.baudrate, timeout=1, write_timeout=5)
        except serial.SerialException as e:
            raise PrintSurfaceUnavailable(f"Cannot open serial printer {self.port}: {e}") from e

    def print_job(self, data: bytes):
        try:
            self.ser.write(data)
            self.ser.flush()
        except serial.SerialException as e:
            raise PrintSurfaceUnavailable(f"Serial printer {self.port} failed: {e}") from e

    def _release(self):
        if self.ser is not None:
            self.ser.close()


class WindowsSpoolerSurface(PrintSurface):
    """RAW job through the Windows print spooler (pywin32)"""

    def __init__(self, printer_name: Optional[str] = None):
        super().__init__()
        self.printer_name = printer_name
        self.name = f"windows:{printer_name or 'default'}"
        self.handle = None

    def open(self):
        if not WIN32_AVAILABLE:
            raise PrintSurfaceUnavailable("pywin32 not available; Windows spooler cannot be used")
        try:
            name = self.printer_name or win32print.GetDefaultPrinter()
            self.handle = win32print.OpenPrinter(name)
        except Exception as e:
            raise PrintSurfaceUnavailable(f"Cannot open Windows printer: {e}") from e

    def print_job(self, data: bytes):
        try:
            win32print.StartDocPrinter(self.handle, 1, ('Receipt', None, 'RAW'))
            try:
                win32print.StartPagePrinter(self.handle)
                win32print.WritePrinter(self.handle, data)
                win32print.EndPagePrinter(self.handle)
            finally:
                win32print.EndDocPrinter(self.handle)
        except Exception as e:
            raise PrintSurfaceUnavailable(f"Windows spooler rejected the job: {e}") from e

    def _release(self):
        if self.handle is not None:
            win32print.ClosePrinter(self.handle)


def make_surface_factory(printer_config: Dict) -> Optional[Callable[[], PrintSurface]]:
    """Build the printer factory from the "printer" config block"""
    mode = (printer_config or {}).get('mode', 'none')
    if mode == 'network':
        host = printer_config.get('host')
        if not host:
            logger.warning("Network printer configured without a host; receipts will be downloaded")
            return None
        port = int(printer_config.get('port', 9100))
        return lambda: NetworkPrintSurface(host, port)
    if mode == 'serial':
        port = printer_config.get('serial_port', 'COM3')
        baudrate = int(printer_config.get('baudrate', 9600))
        return lambda: SerialPrintSurface(port, baudrate)
    if mode == 'windows':
        return lambda: WindowsSpoolerSurface(printer_config.get('printer_name'))
    if mode != 'none':
        logger.warning("Unknown printer mode %r; receipts will be downloaded", mode)
    return None


@dataclass(frozen=True)
class PrintOutcome:
    """How a receipt left the system: 'printed', 'downloaded' or 'failed'"""
    tier: str
    target: str


class ReceiptOutput:
    """Tries the printer first, then writes a downloadable copy"""

    def __init__(self, renderer, scheduler, surface_factory: Optional[Callable[[], PrintSurface]] = None,
                 notifier: Optional[Notifier] = None, download_dir: Path = Path('receipts'),
                 cleanup_delay: float = CLEANUP_DELAY):
        self.renderer = renderer
        self.scheduler = scheduler
        self.surface_factory = surface_factory
        self.notifier = notifier or Notifier()
        self.download_dir = Path(download_dir)
        self.cleanup_delay = cleanup_delay
        self.lock = threading.Lock()
        self._open_surfaces: Set[PrintSurface] = set()

    def print_or_download(self, rendered: str, filename_hint: str) -> PrintOutcome:
        try:
            return self._print(rendered)
        except PrintSurfaceUnavailable as e:
            logger.warning("Printing unavailable, falling back to download: %s", e)
        try:
            path = self._download(rendered, filename_hint)
        except OSError as e:
            logger.error("Could not save receipt to %s: %s", self.download_dir, e)
            self.notifier.error("Receipt could not be printed or saved")
            return PrintOutcome('failed', str(self.download_dir))
        self.notifier.info(f"Printer unavailable - receipt saved to {path}")
        return PrintOutcome('downloaded', str(path))

    def _print(self, rendered: str) -> PrintOutcome:
        if self.surface_factory is None:
            raise PrintSurfaceUnavailable("No printer configured")
        surface = self.surface_factory()
        with self.lock:
            self._open_surfaces.add(surface)
        try:
            surface.open()
            surface.print_job(self.renderer.to_escpos(rendered))
        finally:
            # Give the printer time to drain before the connection goes away
            self.scheduler.call_later(self.cleanup_delay, lambda: self._cleanup(surface))
        self.notifier.info("Receipt sent to printer")
        return PrintOutcome('printed', surface.name)

    def _cleanup(self, surface: PrintSurface):
        with self.lock:
            self._open_surfaces.discard(surface)
        surface.close()

    def _download(self, rendered: str, filename_hint: str) -> Path:
        safe = re.sub(r'[^\w.-]+', '_', filename_hint).strip('._') or 'receipt'
        self.download_dir.mkdir(parents=True, exist_ok=True)
        path = self.download_dir / f"{safe}.html"
        path.write_text(self.renderer.to_html(rendered, filename_hint), encoding='utf-8')
        logger.info("Receipt written to %s", path)
        return path

    def pending_cleanups(self) -> int:
        with self.lock:
            return len(self._open_surfaces)

    def close(self):
        """Close printer connections still waiting for cleanup"""
        with self.lock:
            surfaces = list(self._open_surfaces)
            self._open_surfaces.clear()
        for surface in surfaces:
            surface.close()
