# User-facing notices for RetailStack Sales Records

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Notifier:
    """Logs notices and forwards them as (level, message) to the UI callback"""

    def __init__(self, callback: Optional[Callable[[str, str], None]] = None):
        self.callback = callback

    def _emit(self, level: str, message: str):
        if self.callback:
            try:
                self.callback(level, message)
            except Exception as e:
                logger.error("Notice callback failed: %s", e)

    def info(self, message: str):
        logger.info(message)
        self._emit('info', message)

    def warning(self, message: str):
        logger.warning(message)
        self._emit('warning', message)

    def error(self, message: str):
        logger.error(message)
        self._emit('error', message)
