# Event bus for RetailStack Sales Records
# Typed domain events passed to subscribers that asked for them

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleRecorded:
    """A new sale was completed at a register"""
    sale_id: int
    sale_number: str = ''


@dataclass(frozen=True)
class SaleVoided:
    """An existing sale was voided"""
    sale_id: int
    reason: Optional[str] = None


Handler = Callable[[object], None]


class Subscription:
    """Returned by EventBus.subscribe; call unsubscribe() to stop delivery"""

    def __init__(self, bus: 'EventBus', event_type: Type, handler: Handler):
        self.bus = bus
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.bus._remove(self)
            self.active = False


class EventBus:
    """In-process publish/subscribe keyed by event type"""

    def __init__(self):
        self.lock = threading.Lock()
        self._subscribers: Dict[Type, List[Subscription]] = {}

    def subscribe(self, event_type: Type, handler: Handler) -> Subscription:
        sub = Subscription(self, event_type, handler)
        with self.lock:
            self._subscribers.setdefault(event_type, []).append(sub)
        return sub

    def _remove(self, sub: Subscription):
        with self.lock:
            subs = self._subscribers.get(sub.event_type, [])
            if sub in subs:
                subs.remove(sub)

    def publish(self, event: object) -> int:
        """Deliver event to its subscribers; returns how many were called"""
        with self.lock:
            subs = list(self._subscribers.get(type(event), []))
        for sub in subs:
            try:
                sub.handler(event)
            except Exception as e:
                logger.error("Handler for %s failed: %s", type(event).__name__, e)
        return len(subs)

    def subscriber_count(self, event_type: Type) -> int:
        with self.lock:
            return len(self._subscribers.get(event_type, []))
