# Logging configuration - RotatingFileHandler, structured format, error alerting

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Optional

# Default log directory (project root / logs)
LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_FILE = LOG_DIR / "retailstack_sales.log"
LOG_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
LOG_BACKUP_COUNT = 5

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ErrorAlertHandler(logging.Handler):
    """Forwards ERROR and CRITICAL records to an alert callback(message, level)."""

    def __init__(self, callback: Callable[[str, str], None]):
        super().__init__(level=logging.ERROR)
        self.callback = callback

    def emit(self, record: logging.LogRecord):
        try:
            self.callback(self.format(record), record.levelname)
        except Exception:
            self.handleError(record)


def setup_logging(
    log_path: Optional[Path] = None,
    max_bytes: int = LOG_MAX_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
    console: bool = True,
    level: int = logging.INFO,
    alert_callback: Optional[Callable[[str, str], None]] = None,
) -> None:
    """
    Configure structured logging with file rotation, optional console and error alerts.
    """
    log_path = Path(log_path or LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    # Avoid duplicate handlers when called multiple times
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    if alert_callback:
        alert_handler = ErrorAlertHandler(alert_callback)
        alert_handler.setFormatter(formatter)
        root.addHandler(alert_handler)

    # Connection-pool chatter drowns out retry warnings
    logging.getLogger("urllib3").setLevel(logging.WARNING)
