"""
Time helpers shared by the stores and the scheduler.
"""

from datetime import datetime, timedelta
from typing import Optional


class TimeUtils:
    """Conversions between datetimes and their stored text form."""

    @staticmethod
    def to_db(value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        return value.isoformat(sep=' ')

    @staticmethod
    def from_db(value: Optional[str]) -> Optional[datetime]:
        if value is None or value == '':
            return None
        return datetime.fromisoformat(value)

    @staticmethod
    def start_of_day(value: datetime) -> datetime:
        return value.replace(hour=0, minute=0, second=0, microsecond=0)

    @staticmethod
    def whole_periods(start: datetime, end: datetime, period: timedelta) -> int:
        """Number of complete periods between two instants (never negative)."""
        if end <= start:
            return 0
        return int((end - start) // period)
