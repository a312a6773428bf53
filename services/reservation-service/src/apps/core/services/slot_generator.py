# services/reservation-service/src/apps/core/services/slot_generator.py
"""
Slot Generator

Enumerates fixed-duration candidate slots inside an open window. Purely
geometric: bookings are not consulted.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator

from django.conf import settings


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


class SlotGenerator:
    """
    Lazy, restartable sequence of slots ``[t, t + duration)``.

    ``t`` starts at ``window_start`` and advances by ``granularity``; a slot
    is produced only while it ends no later than ``window_end``. Iterating
    the generator twice yields the same slots.
    """

    def __init__(
        self,
        window_start: datetime,
        window_end: datetime,
        duration: timedelta,
        granularity: timedelta = None
    ):
        if duration <= timedelta(0):
            raise ValueError("Slot duration must be positive")

        self.window_start = window_start
        self.window_end = window_end
        self.duration = duration
        self.granularity = granularity or timedelta(minutes=settings.SLOT_GRANULARITY_MINUTES)

        if self.granularity <= timedelta(0):
            raise ValueError("Slot granularity must be positive")

    def __iter__(self) -> Iterator[Slot]:
        start = self.window_start
        while start + self.duration <= self.window_end:
            yield Slot(start, start + self.duration)
            start += self.granularity

    def __len__(self) -> int:
        if self.window_start + self.duration > self.window_end:
            return 0
        span = self.window_end - self.duration - self.window_start
        return span // self.granularity + 1
