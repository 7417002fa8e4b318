"""
Availability Domain Entities

Request-scoped records the availability engines work on. They are built
from persisted bookings and owner declarations, fed to the engines and
discarded once the verdict is produced.

Inputs:
- Interval / DateMark: an existing reservation (or a candidate) in range
  or date mode
- PeriodDeclaration / DateDeclaration: owner-declared availability windows

Outputs:
- TimelinePoint: running quantity at an instant (range mode)
- DateBucket: accumulated quantity for a date (date mode)
- RangeAvailability / DateAvailability: verdict plus timeline
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from shared.domain.base import ValueObject


class Boundary(Enum):
    """Which edge of the candidate reservation a timeline point carries"""
    START = 'start'
    END = 'end'


@dataclass(frozen=True)
class Interval(ValueObject):
    """Units occupied over [start_date, end_date)"""
    start_date: datetime
    end_date: datetime
    quantity: int = 1


@dataclass(frozen=True)
class DateMark(ValueObject):
    """Units occupied at a single instant"""
    date: datetime
    quantity: int = 1


@dataclass(frozen=True)
class PeriodDeclaration(ValueObject):
    """
    Owner declaration over a time window

    available=True frees `quantity` units during the window,
    available=False consumes them like a blackout.
    """
    start_date: datetime
    end_date: datetime
    available: bool
    quantity: int = 1


@dataclass(frozen=True)
class DateDeclaration(ValueObject):
    """
    Owner declaration for a single date

    In date mode the quantity is the capacity offered on that date.
    """
    date: datetime
    available: bool = True
    quantity: int = 1


@dataclass
class TimelinePoint:
    date: datetime
    quantity: int
    boundary: Boundary | None = None

    def to_dict(self) -> dict:
        data = {'date': self.date, 'quantity': self.quantity}
        if self.boundary is not None:
            data['boundary'] = self.boundary.value
        return data


@dataclass
class DateBucket:
    date: datetime
    quantity: int = 0
    selected: bool = False

    def to_dict(self) -> dict:
        data = {'date': self.date, 'quantity': self.quantity}
        if self.selected:
            data['selected'] = True
        return data


@dataclass(frozen=True)
class RangeAvailability:
    is_available: bool
    timeline: list[TimelinePoint] = field(default_factory=list)


@dataclass(frozen=True)
class DateAvailability:
    is_available: bool
    declarations: list[DateMark] = field(default_factory=list)
    dates: list[DateBucket] = field(default_factory=list)
