"""UTC datetime utilities."""

from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar-month arithmetic, clamped to month end (Jan 31 + 1M -> Feb 28/29)."""
    return moment + relativedelta(months=months)
