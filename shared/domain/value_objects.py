"""
Common Value Objects

- BookingPeriod: the instants a reservation occupies, either a continuous
  range (start to end) or a single predefined date (no end)
"""

from dataclasses import dataclass
from datetime import datetime

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class BookingPeriod(ValueObject):
    """
    Booking period value object

    A period with an end_date is a continuous range: start_date inclusive,
    end_date exclusive. A period without an end_date is pinned to a single
    instant (predefined-date listings).
    """
    start_date: datetime
    end_date: datetime | None = None

    def __post_init__(self):
        if self.start_date is None:
            raise ValueError("Start date is required")
        if self.end_date is not None and self.start_date >= self.end_date:
            raise ValueError(
                f"Start date ({self.start_date.isoformat()}) must be before "
                f"end date ({self.end_date.isoformat()})"
            )

    @property
    def is_single_date(self) -> bool:
        return self.end_date is None

    def __str__(self):
        if self.end_date is None:
            return self.start_date.isoformat()
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"
