"""Holding period codes: whole calendar months written as "<n>M"."""

import re
from datetime import datetime

from src.p2p_common.datetime_utils import add_months
from src.p2p_common.errors import InvalidPeriodError

_PERIOD_RE = re.compile(r"^\d+M$")


def parse_period(period_code: object) -> tuple[str, int]:
    """Normalize a period code and return (code, months).

    " 6m " -> ("6M", 6). Raises InvalidPeriodError for anything that is not
    a positive whole number of months.
    """
    if not isinstance(period_code, str):
        raise InvalidPeriodError(period_code)
    code = period_code.strip().upper()
    if not _PERIOD_RE.match(code):
        raise InvalidPeriodError(period_code)
    months = int(code[:-1])
    if months < 1:
        raise InvalidPeriodError(period_code)
    return f"{months}M", months


def expiry_for(period_code: object, start: datetime) -> tuple[str, datetime]:
    """Parse the code and return (code, expires_at) counted from `start`."""
    code, months = parse_period(period_code)
    try:
        return code, add_months(start, months)
    except (ValueError, OverflowError):
        # well-formed but lands past datetime.max
        raise InvalidPeriodError(period_code) from None
