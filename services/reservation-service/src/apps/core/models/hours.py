# services/reservation-service/src/apps/core/models/hours.py
"""
Opening Hours Primitives

Shared by business hours and staff working hours.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from django.db import models


class DayOfWeek(models.IntegerChoices):
    SUNDAY = 0, 'Sunday'
    MONDAY = 1, 'Monday'
    TUESDAY = 2, 'Tuesday'
    WEDNESDAY = 3, 'Wednesday'
    THURSDAY = 4, 'Thursday'
    FRIDAY = 5, 'Friday'
    SATURDAY = 6, 'Saturday'


def day_of_week(target_date: date) -> int:
    """Day of week with 0=Sunday."""
    return (target_date.weekday() + 1) % 7


@dataclass(frozen=True)
class DayHours:
    """Resolved opening window for one date."""

    closed: bool
    open: Optional[time] = None
    close: Optional[time] = None

    @classmethod
    def closed_day(cls) -> 'DayHours':
        return cls(closed=True)

    @classmethod
    def window(cls, open_time: time, close_time: time) -> 'DayHours':
        if open_time is None or close_time is None or open_time >= close_time:
            return cls(closed=True)
        return cls(closed=False, open=open_time, close=close_time)

    def to_dict(self) -> dict:
        if self.closed:
            return {'closed': True}
        return {
            'open': self.open.strftime('%H:%M'),
            'close': self.close.strftime('%H:%M'),
        }
