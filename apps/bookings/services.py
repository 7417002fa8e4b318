"""Domain services for booking workflows.

Собирают входные данные для движков доступности из базы (будущие брони,
заявленная владельцем доступность, лимит единиц) и выполняют проверки,
предшествующие созданию брони.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import TYPE_CHECKING

from django.db import transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.bookings.domain.availability import evaluate_date_availability, evaluate_range_availability
from apps.bookings.domain.entities import (
    DateAvailability,
    DateDeclaration,
    DateMark,
    Interval,
    PeriodDeclaration,
    RangeAvailability,
)
from apps.listings.models import Listing, ListingAvailability, ListingType
from apps.listings.services import compute_recurring_dates
from shared.domain.value_objects import BookingPeriod

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from django.db.models import QuerySet  # type: ignore

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Base error of the booking workflow, carries the HTTP status to answer with."""

    status_code = 400

    def __init__(self, message: str, *, errors: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class BookingValidationError(BookingError):
    """Raised when booking input breaks the listing type rules."""


class BookingConflictError(BookingError):
    """Raised when a listing is busy for requested dates."""


class BookingForbiddenError(BookingError):
    status_code = 403


class BookingNotFoundError(BookingError):
    status_code = 404


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def lock_listing(listing_id: int) -> Listing:
    """Load the listing and hold its row lock until the transaction ends.

    All bookings of one listing are admitted one after another: the lock is
    taken before the future bookings are read and released after the new
    booking is inserted.
    """

    listing = _lock_queryset_if_possible(Listing.objects.filter(pk=listing_id)).first()
    if listing is None:
        raise BookingNotFoundError("Объявление не найдено.")
    return listing


def lock_booking(booking_id: int):
    from .models import Booking  # Local import to prevent circular dependency

    booking = _lock_queryset_if_possible(Booking.objects.filter(pk=booking_id)).first()
    if booking is None:
        raise BookingNotFoundError("Бронирование не найдено.")
    return booking


def get_listing_type(listing_type_id: int) -> ListingType:
    listing_type = ListingType.objects.filter(pk=listing_type_id, is_active=True).first()
    if listing_type is None:
        raise BookingNotFoundError("Тип объявления не найден.")
    return listing_type


def get_reference_date(now: datetime) -> datetime:
    """Начало текущих суток по UTC, от него отсчитываются ограничения дат."""

    return now.astimezone(dt_timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def get_future_bookings(listing: Listing, now: datetime) -> "QuerySet":
    """Active bookings of the listing that still occupy units after `now`."""

    from .models import Booking  # Local import to prevent circular dependency

    # A pending booking stops holding units once its hold has run out
    return Booking.objects.filter(
        listing=listing,
        status__in=Booking.ACTIVE_STATUSES,
    ).exclude(
        status=Booking.Status.PENDING,
        expires_at__isnull=False,
        expires_at__lte=now,
    ).filter(
        Q(end_date__isnull=False, end_date__gt=now)
        | Q(end_date__isnull=True, start_date__gte=now)
    ).order_by("start_date", "pk")


def ensure_listing_is_bookable(listing: Listing, listing_type_id: int, taker) -> None:
    if listing.owner_id == taker.id:
        raise BookingForbiddenError("Владелец не может бронировать собственное объявление.")

    listing_type_ids = list(listing.listing_types.values_list("id", flat=True))
    if not listing_type_ids:
        raise BookingValidationError("У объявления нет доступных типов бронирования.")
    if listing_type_id not in listing_type_ids:
        raise BookingValidationError("Некорректный тип бронирования для этого объявления.")
    if not listing.quantity:
        raise BookingValidationError("Недостаточно единиц для бронирования.")
    if not listing.validated:
        raise BookingValidationError("Объявление ещё не проверено администратором.")
    if not listing.is_bookable():
        raise BookingValidationError("Объявление недоступно для бронирования.")


def validate_booking_dates(
    start_date: datetime,
    nb_time_units: int | None,
    ref_date: datetime,
    listing_type: ListingType,
    can_omit_duration: bool = False,
) -> None:
    """Check the requested start date and duration against the listing type.

    All failed rules are collected into BookingValidationError.errors.
    """

    errors: list[str] = []

    if nb_time_units is None:
        if not can_omit_duration:
            errors.append("Не указана продолжительность брони.")
    else:
        if nb_time_units <= 0:
            errors.append("Продолжительность брони должна быть положительной.")
        if listing_type.min_duration is not None and nb_time_units < listing_type.min_duration:
            errors.append("Продолжительность брони меньше минимальной.")
        if listing_type.max_duration is not None and nb_time_units > listing_type.max_duration:
            errors.append("Продолжительность брони больше максимальной.")

    earliest_start = ref_date + timedelta(days=listing_type.start_date_min_delta)
    if start_date < earliest_start:
        errors.append("Дата начала брони слишком ранняя.")
    if listing_type.start_date_max_delta is not None:
        latest_start = ref_date + timedelta(days=listing_type.start_date_max_delta)
        if start_date > latest_start:
            errors.append("Дата начала брони слишком поздняя.")

    if errors:
        raise BookingValidationError("Некорректные даты бронирования.", errors=errors)


def compute_end_date(start_date: datetime, nb_time_units: int, listing_type: ListingType) -> datetime:
    return start_date + nb_time_units * listing_type.time_unit_delta


def build_range_period(start_date: datetime, nb_time_units: int, listing_type: ListingType) -> BookingPeriod:
    try:
        return BookingPeriod(start_date, compute_end_date(start_date, nb_time_units, listing_type))
    except OverflowError as exc:
        raise BookingValidationError("Дата окончания брони выходит за допустимые пределы.") from exc
    except ValueError as exc:
        raise BookingValidationError(str(exc)) from exc


def is_predefined_date(listing: Listing, start_date: datetime) -> bool:
    """A predefined date is declared by the owner or produced by the listing's recurrence rule."""

    declared = ListingAvailability.objects.filter(
        listing=listing,
        type=ListingAvailability.Type.DATE,
        start_date=start_date,
    ).exists()
    if declared:
        return True
    if not listing.recurring_dates_pattern:
        return False
    recurring_dates = compute_recurring_dates(
        listing.recurring_dates_pattern,
        start_date - timedelta(days=1),
        start_date + timedelta(days=1),
    )
    return start_date in recurring_dates


def resolve_booking_period(
    listing: Listing,
    listing_type: ListingType,
    start_date: datetime | None,
    nb_time_units: int | None,
    now: datetime,
) -> BookingPeriod | None:
    """Turn the requested dates into the period the booking will occupy.

    Returns None for listing types that do not book time at all.
    """

    ref_date = get_reference_date(now)

    if listing_type.time_mode == ListingType.TimeMode.FLEXIBLE:
        if start_date is None or nb_time_units is None:
            raise BookingValidationError("Укажите дату начала и продолжительность брони.")
        validate_booking_dates(start_date, nb_time_units, ref_date, listing_type, can_omit_duration=False)
        return build_range_period(start_date, nb_time_units, listing_type)

    if listing_type.time_mode == ListingType.TimeMode.PREDEFINED:
        if start_date is None:
            raise BookingValidationError("Укажите дату брони.")
        validate_booking_dates(start_date, None, ref_date, listing_type, can_omit_duration=True)
        if not is_predefined_date(listing, start_date):
            raise BookingValidationError("Дата брони не входит в список предопределённых дат.")
        return BookingPeriod(start_date)

    return None


def get_period_declarations(listing: Listing, listing_type: ListingType) -> list[PeriodDeclaration]:
    """Owner periods only count when the listing type uses an owner calendar."""

    if listing_type.time_availability not in (
        ListingType.TimeAvailability.AVAILABLE,
        ListingType.TimeAvailability.UNAVAILABLE,
    ):
        return []
    availabilities = ListingAvailability.objects.filter(
        listing=listing,
        type=ListingAvailability.Type.PERIOD,
    ).order_by("start_date", "pk")
    return [
        PeriodDeclaration(
            start_date=availability.start_date,
            end_date=availability.end_date,
            available=availability.available,
            quantity=availability.quantity,
        )
        for availability in availabilities
    ]


def get_date_declarations(listing: Listing) -> list[DateDeclaration]:
    availabilities = ListingAvailability.objects.filter(
        listing=listing,
        type=ListingAvailability.Type.DATE,
    ).order_by("start_date", "pk")
    return [
        DateDeclaration(
            date=availability.start_date,
            available=availability.available,
            quantity=availability.quantity,
        )
        for availability in availabilities
    ]


def get_period_availability(
    listing: Listing,
    listing_type: ListingType,
    period: BookingPeriod | None = None,
    quantity: int = 1,
    *,
    now: datetime,
    max_quantity: int | None = None,
) -> RangeAvailability:
    bookings = get_future_bookings(listing, now).filter(end_date__isnull=False)
    reservations = [
        Interval(start_date=booking.start_date, end_date=booking.end_date, quantity=booking.quantity)
        for booking in bookings
    ]
    candidate = None
    if period is not None:
        candidate = Interval(start_date=period.start_date, end_date=period.end_date, quantity=quantity)

    return evaluate_range_availability(
        existing_reservations=reservations,
        declarations=get_period_declarations(listing, listing_type),
        candidate=candidate,
        max_quantity=max_quantity,
    )


def get_date_availability(
    listing: Listing,
    listing_type: ListingType,
    period: BookingPeriod | None = None,
    quantity: int = 1,
    *,
    now: datetime,
    max_quantity: int | None = None,
) -> DateAvailability:
    bookings = get_future_bookings(listing, now).filter(end_date__isnull=True)
    reservations = [DateMark(date=booking.start_date, quantity=booking.quantity) for booking in bookings]
    declarations = get_date_declarations(listing)
    if listing_type.availability_mode == ListingType.AvailabilityMode.UNIQUE:
        # A per-date declaration may lower the single unit, never raise it
        declarations = [
            DateDeclaration(date=item.date, available=item.available, quantity=min(item.quantity, 1))
            for item in declarations
        ]
    candidate = None
    if period is not None:
        candidate = DateMark(date=period.start_date, quantity=quantity)

    return evaluate_date_availability(
        existing_reservations=reservations,
        declarations=declarations,
        candidate=candidate,
        max_quantity=max_quantity,
    )


def _evaluate(
    listing: Listing,
    listing_type: ListingType,
    period: BookingPeriod | None,
    quantity: int,
    now: datetime,
) -> RangeAvailability | DateAvailability | None:
    """Run the engine matching the listing type's time mode.

    A unique listing is a stock of one: each booking takes exactly one unit.
    """

    max_quantity = listing.get_max_quantity(listing_type)
    if listing_type.availability_mode == ListingType.AvailabilityMode.UNIQUE:
        quantity = 1

    if listing_type.time_mode == ListingType.TimeMode.FLEXIBLE:
        return get_period_availability(
            listing, listing_type, period, quantity, now=now, max_quantity=max_quantity
        )
    if listing_type.time_mode == ListingType.TimeMode.PREDEFINED:
        return get_date_availability(
            listing, listing_type, period, quantity, now=now, max_quantity=max_quantity
        )
    return None


def ensure_listing_is_available(
    listing: Listing,
    listing_type: ListingType,
    period: BookingPeriod | None,
    quantity: int,
    now: datetime,
) -> int:
    """Ensure the listing can take `quantity` more units over the period.

    Returns the quantity to record on the booking.
    """

    availability_mode = listing_type.availability_mode
    if availability_mode == ListingType.AvailabilityMode.NONE:
        return 1

    max_quantity = listing.get_max_quantity(listing_type)
    checks_upfront = (
        availability_mode == ListingType.AvailabilityMode.UNIQUE
        or listing_type.time_mode == ListingType.TimeMode.FLEXIBLE
    )
    if checks_upfront and max_quantity is not None and max_quantity < quantity:
        logger.info(f"Listing {listing.id}: requested {quantity} units, only {max_quantity} exist")
        raise BookingConflictError("Недостаточно свободных единиц для бронирования.")

    result = _evaluate(listing, listing_type, period, quantity, now)
    if result is not None and not result.is_available:
        logger.info(f"Listing {listing.id} is not available for {period} (quantity {quantity})")
        raise BookingConflictError("Объект недоступен на выбранные даты.")

    if availability_mode == ListingType.AvailabilityMode.UNIQUE:
        return 1
    return quantity


def describe_listing_availability(
    listing: Listing,
    listing_type: ListingType,
    period: BookingPeriod | None,
    quantity: int,
    now: datetime,
) -> dict:
    """Availability preview for the listing calendar."""

    payload: dict = {
        "listing_id": listing.id,
        "listing_type_id": listing_type.id,
        "time_mode": listing_type.time_mode,
        "max_quantity": listing.get_max_quantity(listing_type),
        "is_available": True,
    }

    result = _evaluate(listing, listing_type, period, quantity, now)
    if isinstance(result, RangeAvailability):
        payload["is_available"] = result.is_available
        payload["timeline"] = [point.to_dict() for point in result.timeline]
    elif isinstance(result, DateAvailability):
        payload["is_available"] = result.is_available
        payload["declarations"] = [
            {"date": mark.date, "quantity": mark.quantity} for mark in result.declarations
        ]
        payload["dates"] = [bucket.to_dict() for bucket in result.dates]
    return payload
