# Tests for date range resolution

from datetime import date

import pytest

from sales_records.date_ranges import DateRangeResolver
from sales_records.models import DateRange


def resolver_on(day, **kwargs):
    return DateRangeResolver(clock=lambda: day, **kwargs)


class TestDateRangeResolver:
    """Test symbolic range tokens"""

    def setup_method(self):
        # A Friday
        self.resolver = resolver_on(date(2024, 3, 15))

    def test_month(self):
        """Test month starts on the 1st"""
        assert self.resolver.resolve('month') == DateRange('2024-03-01', '2024-03-15')

    def test_today(self):
        assert self.resolver.resolve('today') == DateRange('2024-03-15', '2024-03-15')

    def test_week_starts_sunday_by_default(self):
        """Test week start"""
        assert self.resolver.resolve('week') == DateRange('2024-03-10', '2024-03-15')

    def test_week_starting_monday(self):
        resolver = resolver_on(date(2024, 3, 15), week_starts_on='monday')

        assert resolver.resolve('week') == DateRange('2024-03-11', '2024-03-15')

    def test_week_on_week_start_day(self):
        resolver = resolver_on(date(2024, 3, 10))

        assert resolver.resolve('week') == DateRange('2024-03-10', '2024-03-10')

    def test_quarter(self):
        """Test quarter start"""
        assert self.resolver.resolve('quarter') == DateRange('2024-01-01', '2024-03-15')
        assert resolver_on(date(2024, 8, 20)).resolve('quarter').start == '2024-07-01'
        assert resolver_on(date(2024, 12, 31)).resolve('quarter').start == '2024-10-01'

    def test_year(self):
        assert self.resolver.resolve('year') == DateRange('2024-01-01', '2024-03-15')

    @pytest.mark.parametrize('day', [
        date(2024, 1, 1), date(2024, 2, 29), date(2024, 3, 15), date(2024, 12, 31), date(2023, 7, 2),
    ])
    def test_symbolic_ranges_end_today(self, day):
        """Test start <= end and end is the reference day"""
        resolver = resolver_on(day)

        for token in ('today', 'week', 'month', 'quarter', 'year'):
            result = resolver.resolve(token)
            assert result.start <= result.end
            assert result.end == day.isoformat()

    def test_custom_passes_values_through(self):
        """Test custom range is verbatim"""
        result = self.resolver.resolve('custom', '2024-02-01', '2024-02-10')

        assert result == DateRange('2024-02-01', '2024-02-10')

    def test_custom_with_empty_bounds_is_unbounded(self):
        result = self.resolver.resolve('custom', '', '2024-02-10')

        assert result.start == ''
        assert result.as_query() == (None, '2024-02-10')
        assert self.resolver.resolve('custom').as_query() == (None, None)

    def test_unknown_token_is_today(self):
        assert self.resolver.resolve('fortnight') == DateRange('2024-03-15', '2024-03-15')

    def test_bad_week_start(self):
        with pytest.raises(ValueError):
            DateRangeResolver(week_starts_on='someday')
