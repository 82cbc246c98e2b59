# Date range resolution for RetailStack Sales Records
# Expands "today", "week", "month", ... into YYYY-MM-DD bounds

import logging
from datetime import date, timedelta
from typing import Callable

from .models import DateRange

logger = logging.getLogger(__name__)

RANGE_TOKENS = ('today', 'week', 'month', 'quarter', 'year', 'custom')

# Python weekday() numbering: Monday=0 ... Sunday=6
WEEKDAYS = {
    'monday': 0, 'tuesday': 1, 'wednesday': 2, 'thursday': 3,
    'friday': 4, 'saturday': 5, 'sunday': 6,
}

DATE_FORMAT = '%Y-%m-%d'


class DateRangeResolver:
    """Maps a range token to concrete start/end dates"""

    def __init__(self, clock: Callable[[], date] = date.today, week_starts_on: str = 'sunday'):
        if week_starts_on not in WEEKDAYS:
            raise ValueError(f"Unknown week start: {week_starts_on}")
        self.clock = clock
        self.week_start = WEEKDAYS[week_starts_on]

    def resolve(self, token: str, custom_start: str = '', custom_end: str = '') -> DateRange:
        if token == 'custom':
            # Empty bounds are passed on as-is and mean "open on that side"
            if custom_start and custom_end and custom_start > custom_end:
                logger.warning("Custom range starts after it ends: %s > %s", custom_start, custom_end)
            return DateRange(custom_start or '', custom_end or '')

        today = self.clock()
        if token == 'week':
            start = today - timedelta(days=(today.weekday() - self.week_start) % 7)
        elif token == 'month':
            start = today.replace(day=1)
        elif token == 'quarter':
            start = today.replace(month=3 * ((today.month - 1) // 3) + 1, day=1)
        elif token == 'year':
            start = today.replace(month=1, day=1)
        else:
            if token != 'today':
                logger.debug("Unknown range token %r, using today", token)
            start = today
        return DateRange(start.strftime(DATE_FORMAT), today.strftime(DATE_FORMAT))
