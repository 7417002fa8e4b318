"""Tests for booking services feeding the availability engines."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from apps.bookings.models import Booking
from apps.bookings.services import (
    BookingConflictError,
    BookingForbiddenError,
    BookingValidationError,
    build_range_period,
    ensure_listing_is_available,
    ensure_listing_is_bookable,
    get_future_bookings,
    get_reference_date,
    is_predefined_date,
    resolve_booking_period,
    validate_booking_dates,
)
from apps.listings.models import Listing, ListingAvailability, ListingType
from apps.users.models import CustomUser
from shared.domain.value_objects import BookingPeriod

NOW = datetime(2026, 3, 10, 12, 30, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def owner():
    return CustomUser.objects.create_user(
        email="owner@example.com",
        password="OwnerPass123",
        role=CustomUser.RoleChoices.OWNER,
    )


@pytest.fixture
def taker():
    return CustomUser.objects.create_user(email="taker@example.com", password="TakerPass123")


@pytest.fixture
def rental_type():
    return ListingType.objects.create(
        name="Аренда по дням",
        time_mode=ListingType.TimeMode.FLEXIBLE,
        availability_mode=ListingType.AvailabilityMode.STOCK,
        time_unit=ListingType.TimeUnit.DAY,
        min_duration=1,
        max_duration=14,
        start_date_max_delta=90,
    )


@pytest.fixture
def event_type():
    return ListingType.objects.create(
        name="Мероприятие",
        time_mode=ListingType.TimeMode.PREDEFINED,
        availability_mode=ListingType.AvailabilityMode.STOCK,
    )


@pytest.fixture
def listing(owner, rental_type, event_type):
    listing = Listing.objects.create(
        owner=owner,
        title="Велосипеды",
        quantity=2,
        validated=True,
    )
    listing.listing_types.add(rental_type, event_type)
    return listing


def book(listing, listing_type, taker, start, end=None, quantity=1, status=Booking.Status.ACCEPTED):
    return Booking.objects.create(
        listing=listing,
        listing_type=listing_type,
        owner=listing.owner,
        taker=taker,
        start_date=start,
        end_date=end,
        quantity=quantity,
        status=status,
    )


def test_reference_date_is_utc_midnight():
    almaty = timezone(timedelta(hours=5))

    assert get_reference_date(datetime(2026, 3, 11, 2, 0, tzinfo=almaty)) == utc(2026, 3, 10)


@pytest.mark.django_db
def test_future_bookings_skip_finished_and_inactive(listing, rental_type, event_type, taker):
    running = book(listing, rental_type, taker, utc(2026, 3, 9), utc(2026, 3, 12))
    upcoming_date = book(listing, event_type, taker, utc(2026, 3, 20))
    book(listing, rental_type, taker, utc(2026, 3, 1), utc(2026, 3, 5))
    book(listing, event_type, taker, utc(2026, 3, 1))
    book(listing, rental_type, taker, utc(2026, 3, 15), utc(2026, 3, 16), status=Booking.Status.CANCELLED)
    pending = book(listing, rental_type, taker, utc(2026, 3, 15), utc(2026, 3, 16), status=Booking.Status.PENDING)

    bookings = list(get_future_bookings(listing, NOW))

    assert bookings == [running, pending, upcoming_date]


@pytest.mark.django_db
def test_owner_cannot_book_own_listing(listing, owner, rental_type):
    with pytest.raises(BookingForbiddenError) as exc_info:
        ensure_listing_is_bookable(listing, rental_type.id, owner)

    assert exc_info.value.status_code == 403


@pytest.mark.django_db
@pytest.mark.parametrize(
    "changes",
    [{"validated": False}, {"locked": True}, {"quantity": 0}],
)
def test_listing_flags_block_booking(listing, rental_type, taker, changes):
    for field, value in changes.items():
        setattr(listing, field, value)
    listing.save()

    with pytest.raises(BookingValidationError):
        ensure_listing_is_bookable(listing, rental_type.id, taker)


@pytest.mark.django_db
def test_listing_type_must_be_offered(listing, taker):
    other_type = ListingType.objects.create(name="Продажа", time_mode=ListingType.TimeMode.NONE)

    with pytest.raises(BookingValidationError):
        ensure_listing_is_bookable(listing, other_type.id, taker)


@pytest.mark.django_db
def test_validate_booking_dates_collects_every_error(rental_type):
    ref_date = utc(2026, 3, 10)
    rental_type.start_date_min_delta = 2

    with pytest.raises(BookingValidationError) as exc_info:
        validate_booking_dates(utc(2026, 3, 11), 20, ref_date, rental_type)

    assert len(exc_info.value.errors) == 2


@pytest.mark.django_db
def test_validate_booking_dates_accepts_window_edges(rental_type):
    ref_date = utc(2026, 3, 10)

    validate_booking_dates(ref_date, 1, ref_date, rental_type)
    validate_booking_dates(ref_date + timedelta(days=90), 14, ref_date, rental_type)


@pytest.mark.django_db
def test_validate_booking_dates_duration_omittable(event_type):
    ref_date = utc(2026, 3, 10)

    validate_booking_dates(utc(2026, 4, 1), None, ref_date, event_type, can_omit_duration=True)
    with pytest.raises(BookingValidationError):
        validate_booking_dates(utc(2026, 4, 1), None, ref_date, event_type, can_omit_duration=False)


@pytest.mark.django_db
def test_flexible_period_spans_time_units(listing, rental_type):
    period = resolve_booking_period(listing, rental_type, utc(2026, 3, 12), 3, NOW)

    assert period == BookingPeriod(utc(2026, 3, 12), utc(2026, 3, 15))


@pytest.mark.django_db
def test_hourly_period(listing, rental_type):
    rental_type.time_unit = ListingType.TimeUnit.HOUR

    period = resolve_booking_period(listing, rental_type, utc(2026, 3, 12, 9), 3, NOW)

    assert period.end_date == utc(2026, 3, 12, 12)


@pytest.mark.django_db
def test_flexible_period_requires_duration(listing, rental_type):
    with pytest.raises(BookingValidationError):
        resolve_booking_period(listing, rental_type, utc(2026, 3, 12), None, NOW)


@pytest.mark.django_db
def test_no_time_mode_books_no_period(listing):
    listing_type = ListingType.objects.create(name="Покупка", time_mode=ListingType.TimeMode.NONE)

    assert resolve_booking_period(listing, listing_type, None, None, NOW) is None


@pytest.mark.django_db
def test_predefined_date_must_be_declared_or_recurring(listing, event_type):
    declared = utc(2026, 3, 20, 18)
    ListingAvailability.objects.create(
        listing=listing,
        type=ListingAvailability.Type.DATE,
        start_date=declared,
        quantity=2,
    )
    listing.recurring_dates_pattern = "DTSTART:20260302T180000Z\nRRULE:FREQ=WEEKLY;BYDAY=MO"
    listing.save()

    assert is_predefined_date(listing, declared)
    assert is_predefined_date(listing, utc(2026, 3, 16, 18))
    assert not is_predefined_date(listing, utc(2026, 3, 17, 18))

    period = resolve_booking_period(listing, event_type, utc(2026, 3, 23, 18), None, NOW)
    assert period.is_single_date

    with pytest.raises(BookingValidationError):
        resolve_booking_period(listing, event_type, utc(2026, 3, 24, 18), None, NOW)


@pytest.mark.django_db
def test_stock_flexible_rejects_when_timeline_overflows(listing, rental_type, taker):
    book(listing, rental_type, taker, utc(2026, 3, 12), utc(2026, 3, 16), quantity=2)
    period = BookingPeriod(utc(2026, 3, 14), utc(2026, 3, 15))

    with pytest.raises(BookingConflictError):
        ensure_listing_is_available(listing, rental_type, period, 1, NOW)


@pytest.mark.django_db
def test_stock_flexible_admits_and_keeps_requested_quantity(listing, rental_type, taker):
    book(listing, rental_type, taker, utc(2026, 3, 12), utc(2026, 3, 16), quantity=1)
    period = BookingPeriod(utc(2026, 3, 16), utc(2026, 3, 18))

    assert ensure_listing_is_available(listing, rental_type, period, 2, NOW) == 2


@pytest.mark.django_db
def test_stock_flexible_rejects_quantity_above_stock_upfront(listing, rental_type):
    period = BookingPeriod(utc(2026, 3, 16), utc(2026, 3, 18))

    with pytest.raises(BookingConflictError):
        ensure_listing_is_available(listing, rental_type, period, 3, NOW)


@pytest.mark.django_db
def test_cancelled_bookings_free_capacity(listing, rental_type, taker):
    book(
        listing, rental_type, taker, utc(2026, 3, 12), utc(2026, 3, 16),
        quantity=2, status=Booking.Status.CANCELLED,
    )
    period = BookingPeriod(utc(2026, 3, 14), utc(2026, 3, 15))

    assert ensure_listing_is_available(listing, rental_type, period, 2, NOW) == 2


@pytest.mark.django_db
def test_owner_periods_only_count_with_owner_calendar(listing, rental_type, taker):
    book(listing, rental_type, taker, utc(2026, 3, 12), utc(2026, 3, 16), quantity=2)
    ListingAvailability.objects.create(
        listing=listing,
        type=ListingAvailability.Type.PERIOD,
        start_date=utc(2026, 3, 13),
        end_date=utc(2026, 3, 15),
        available=True,
        quantity=1,
    )
    period = BookingPeriod(utc(2026, 3, 13), utc(2026, 3, 14))

    with pytest.raises(BookingConflictError):
        ensure_listing_is_available(listing, rental_type, period, 1, NOW)

    rental_type.time_availability = ListingType.TimeAvailability.AVAILABLE
    assert ensure_listing_is_available(listing, rental_type, period, 1, NOW) == 1


@pytest.mark.django_db
def test_stock_predefined_uses_date_buckets(listing, event_type, taker):
    date = utc(2026, 3, 20, 18)
    book(listing, event_type, taker, date, quantity=2)

    with pytest.raises(BookingConflictError):
        ensure_listing_is_available(listing, event_type, BookingPeriod(date), 1, NOW)

    other_date = utc(2026, 3, 27, 18)
    assert ensure_listing_is_available(listing, event_type, BookingPeriod(other_date), 2, NOW) == 2


@pytest.mark.django_db
def test_date_declaration_overrides_listing_stock(listing, event_type, taker):
    date = utc(2026, 3, 20, 18)
    ListingAvailability.objects.create(
        listing=listing,
        type=ListingAvailability.Type.DATE,
        start_date=date,
        quantity=5,
    )
    book(listing, event_type, taker, date, quantity=2)

    assert ensure_listing_is_available(listing, event_type, BookingPeriod(date), 3, NOW) == 3
    with pytest.raises(BookingConflictError):
        ensure_listing_is_available(listing, event_type, BookingPeriod(date), 4, NOW)


@pytest.mark.django_db
def test_unique_listing_books_one_unit(listing, taker):
    unique_type = ListingType.objects.create(
        name="Квартира",
        time_mode=ListingType.TimeMode.FLEXIBLE,
        availability_mode=ListingType.AvailabilityMode.UNIQUE,
    )
    period = BookingPeriod(utc(2026, 3, 12), utc(2026, 3, 14))

    with pytest.raises(BookingConflictError):
        ensure_listing_is_available(listing, unique_type, period, 2, NOW)

    assert ensure_listing_is_available(listing, unique_type, period, 1, NOW) == 1

    book(listing, unique_type, taker, utc(2026, 3, 13), utc(2026, 3, 15))
    with pytest.raises(BookingConflictError):
        ensure_listing_is_available(listing, unique_type, period, 1, NOW)


@pytest.mark.django_db
def test_unlimited_listing_always_admits_one(listing, rental_type, taker):
    free_type = ListingType.objects.create(
        name="Консультация",
        time_mode=ListingType.TimeMode.FLEXIBLE,
        availability_mode=ListingType.AvailabilityMode.NONE,
    )
    book(listing, free_type, taker, utc(2026, 3, 12), utc(2026, 3, 16), quantity=50)
    period = BookingPeriod(utc(2026, 3, 12), utc(2026, 3, 14))

    assert ensure_listing_is_available(listing, free_type, period, 10, NOW) == 1


@pytest.mark.django_db
def test_expired_hold_no_longer_occupies_units(listing, rental_type, taker):
    held = book(
        listing, rental_type, taker, utc(2026, 3, 12), utc(2026, 3, 16),
        quantity=2, status=Booking.Status.PENDING,
    )
    held.expires_at = NOW - timedelta(seconds=1)
    held.save()
    waiting = book(listing, rental_type, taker, utc(2026, 3, 20), utc(2026, 3, 21), status=Booking.Status.PENDING)
    waiting.expires_at = NOW + timedelta(minutes=5)
    waiting.save()
    period = BookingPeriod(utc(2026, 3, 13), utc(2026, 3, 14))

    assert list(get_future_bookings(listing, NOW)) == [waiting]
    assert ensure_listing_is_available(listing, rental_type, period, 2, NOW) == 2


@pytest.mark.django_db
def test_huge_duration_is_rejected_instead_of_overflowing(listing, rental_type):
    rental_type.max_duration = None

    with pytest.raises(BookingValidationError):
        resolve_booking_period(listing, rental_type, utc(2026, 3, 12), 10**9, NOW)


def test_range_period_past_calendar_end_is_rejected():
    listing_type = ListingType(time_unit=ListingType.TimeUnit.DAY)

    with pytest.raises(BookingValidationError):
        build_range_period(datetime(9999, 12, 1, tzinfo=timezone.utc), 100, listing_type)


@pytest.mark.django_db
def test_unique_listing_ignores_raised_date_ceiling(listing, taker):
    unique_event = ListingType.objects.create(
        name="Частная экскурсия",
        time_mode=ListingType.TimeMode.PREDEFINED,
        availability_mode=ListingType.AvailabilityMode.UNIQUE,
    )
    date = utc(2026, 3, 20, 18)
    ListingAvailability.objects.create(
        listing=listing,
        type=ListingAvailability.Type.DATE,
        start_date=date,
        quantity=5,
    )

    assert ensure_listing_is_available(listing, unique_event, BookingPeriod(date), 1, NOW) == 1

    book(listing, unique_event, taker, date)
    with pytest.raises(BookingConflictError):
        ensure_listing_is_available(listing, unique_event, BookingPeriod(date), 1, NOW)
