"""
Availability Engines

Pure functions deciding whether a candidate reservation fits a listing's
capacity, given the listing's existing reservations and the owner's
availability declarations.

- evaluate_range_availability: continuous time ranges, sweep line over
  signed deltas
- evaluate_date_availability: single predefined dates, grouping by date

Neither function performs I/O or raises on well-formed input. The caller
is responsible for reading a consistent snapshot and for persisting an
admitted reservation under the same per-listing lock.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from itertools import groupby
from operator import attrgetter
from typing import Iterable

from apps.bookings.domain.entities import (
    Boundary,
    DateAvailability,
    DateBucket,
    DateDeclaration,
    DateMark,
    Interval,
    PeriodDeclaration,
    RangeAvailability,
    TimelinePoint,
)

# Distance between the synthetic zero point and the first real event
TIMELINE_ANCHOR_OFFSET = timedelta(days=1)


@dataclass(frozen=True)
class _Step:
    date: datetime
    delta: int
    boundary: Boundary | None = None


def evaluate_range_availability(
    existing_reservations: Iterable[Interval] = (),
    declarations: Iterable[PeriodDeclaration] = (),
    candidate: Interval | None = None,
    max_quantity: int | None = None,
) -> RangeAvailability:
    """
    Merge reservations, declarations and the candidate into one timeline

    Every interval contributes +quantity at its start and -quantity at its
    end. An available declaration contributes the opposite signs since it
    frees capacity for its window. The candidate's deltas are tagged with
    Boundary.START / Boundary.END.

    Returns:
        RangeAvailability with:
        - timeline: one point per distinct instant, carrying the running
          quantity after all deltas at that instant, preceded by a zero
          anchor one day before the first event
        - is_available: False as soon as the running quantity exceeds
          max_quantity at any instant, when both a candidate and a
          ceiling are given; True otherwise
    """
    steps: list[_Step] = []

    for reservation in existing_reservations:
        steps.append(_Step(reservation.start_date, reservation.quantity))
        steps.append(_Step(reservation.end_date, -reservation.quantity))

    for declaration in declarations:
        sign = -1 if declaration.available else 1
        steps.append(_Step(declaration.start_date, sign * declaration.quantity))
        steps.append(_Step(declaration.end_date, -sign * declaration.quantity))

    if candidate is not None:
        steps.append(_Step(candidate.start_date, candidate.quantity, Boundary.START))
        steps.append(_Step(candidate.end_date, -candidate.quantity, Boundary.END))

    # sorted() is stable, same-instant steps keep their push order
    steps = sorted(steps, key=attrgetter('date'))

    check_capacity = candidate is not None and max_quantity is not None
    is_available = True
    quantity = 0
    timeline: list[TimelinePoint] = []

    for date, same_instant_steps in groupby(steps, key=attrgetter('date')):
        boundary = None
        for step in same_instant_steps:
            quantity += step.delta
            if boundary is None:
                boundary = step.boundary

        timeline.append(TimelinePoint(date=date, quantity=quantity, boundary=boundary))

        if is_available and check_capacity and quantity > max_quantity:
            is_available = False

    if timeline:
        anchor_date = timeline[0].date - TIMELINE_ANCHOR_OFFSET
        timeline.insert(0, TimelinePoint(date=anchor_date, quantity=0))

    return RangeAvailability(is_available=is_available, timeline=timeline)


def evaluate_date_availability(
    existing_reservations: Iterable[DateMark] = (),
    declarations: Iterable[DateDeclaration] = (),
    candidate: DateMark | None = None,
    max_quantity: int | None = None,
) -> DateAvailability:
    """
    Group reservations by date and check the candidate's date

    Reservations on the same date are summed into one bucket. The candidate
    is added to its date's bucket, which is flagged as selected.

    The ceiling for the candidate's date is max_quantity, unless the owner
    declared that exact date, in which case the declaration's quantity
    replaces it. Without a candidate or without max_quantity the verdict
    is always True.
    """
    buckets: dict[datetime, DateBucket] = {}

    for reservation in existing_reservations:
        bucket = buckets.get(reservation.date)
        if bucket is None:
            bucket = buckets[reservation.date] = DateBucket(date=reservation.date)
        bucket.quantity += reservation.quantity

    if candidate is not None:
        bucket = buckets.get(candidate.date)
        if bucket is None:
            bucket = buckets[candidate.date] = DateBucket(date=candidate.date)
        bucket.quantity += candidate.quantity
        bucket.selected = True

    dates = sorted(buckets.values(), key=attrgetter('date'))

    declarations = list(declarations)
    # Last declaration wins when a date is declared twice
    declarations_by_date = {declaration.date: declaration for declaration in declarations}

    ceiling = None
    if candidate is not None and max_quantity is not None:
        ceiling = max_quantity
        declaration = declarations_by_date.get(candidate.date)
        if declaration is not None:
            ceiling = declaration.quantity

    is_available = True
    if candidate is not None and ceiling is not None:
        is_available = buckets[candidate.date].quantity <= ceiling

    return DateAvailability(
        is_available=is_available,
        declarations=[DateMark(date=d.date, quantity=d.quantity) for d in declarations],
        dates=dates,
    )
