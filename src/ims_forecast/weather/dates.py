"""Date window helpers.

Historical station data looks backwards from today (``get_date_range``),
forecasts look forwards from today (``get_forecast_date_range``). Both take
the same period argument.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional

from ims_forecast.weather.models import DateRange, Period

PERIOD_DAYS: Dict[Period, int] = {
    Period.SHORT: 2,
    Period.MEDIUM: 7,
    Period.LONG: 30,
}


def utc_today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()


def get_date_range(period: Period, today: Optional[date] = None) -> DateRange:
    """Backward-looking window ending today, for observation requests.

    Args:
        period: Requested period
        today: Anchor date (defaults to the current UTC date)

    Returns:
        DateRange from ``today - N`` to ``today``
    """
    today = today or utc_today()
    days = PERIOD_DAYS.get(period, PERIOD_DAYS[Period.SHORT])
    return DateRange(start=today - timedelta(days=days), end=today)


def get_forecast_date_range(period: Period, today: Optional[date] = None) -> DateRange:
    """Forward-looking window starting today, for forecast requests.

    Args:
        period: Requested period
        today: Anchor date (defaults to the current UTC date)

    Returns:
        DateRange from ``today`` to ``today + N - 1`` (N days inclusive)
    """
    today = today or utc_today()
    days = PERIOD_DAYS.get(period, PERIOD_DAYS[Period.SHORT])
    return DateRange(start=today, end=today + timedelta(days=days - 1))


def expected_periods(period: Period, date_range: DateRange) -> int:
    """Number of output periods a full series for the window would have.

    Hours for hourly periods, days otherwise.
    """
    if period.is_hourly:
        return date_range.days * 24
    return date_range.days
