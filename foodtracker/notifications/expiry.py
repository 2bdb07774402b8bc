"""
Expiry date arithmetic and the scheduler's time source.

Products store their expiry date as whatever string the client wrote
(``"2025-11-20"`` from the date picker, or a full ISO timestamp from the
label analyzer). Everything here works at calendar-day granularity in the
server's local time.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

ExpiryValue = Union[date, datetime, str, None]


class SystemClock:
    """Wall-clock time source (naive local time)."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """
    Clock pinned to a given instant.

    Used by tests and by one-off replays where "today" must be exact.
    """

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, days: int = 0, hours: int = 0) -> None:
        """Move the clock forward."""
        self.current = self.current + timedelta(days=days, hours=hours)


def parse_expiry_date(value: ExpiryValue) -> Optional[date]:
    """
    Normalize an expiry value to a local calendar date.

    Args:
        value: date, datetime, ``YYYY-MM-DD`` string or ISO-8601 timestamp

    Returns:
        The calendar date, or None when the value is missing or malformed
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _to_local_date(value)

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    # Python < 3.11 does not accept the "Z" suffix in fromisoformat
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return _to_local_date(datetime.fromisoformat(text))
    except (ValueError, OverflowError):
        return None


def _to_local_date(value: datetime) -> Optional[date]:
    if value.tzinfo is not None:
        try:
            value = value.astimezone()
        except OverflowError:
            # Shifting to local time left the supported date range
            return None
    return value.date()


def days_until_expiry(expiry_date: ExpiryValue, today: date) -> Optional[int]:
    """
    Whole days from ``today`` until ``expiry_date``.

    Both sides are calendar dates (midnight-normalized), so the difference is
    already the ceiling of the fractional day count.

    Returns:
        Negative if expired, 0 if it expires today, positive days remaining,
        or None when the expiry date is unknown
    """
    expiry = parse_expiry_date(expiry_date)
    if expiry is None:
        return None
    return (expiry - today).days
