"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Admit and persist a new booking
- CancelBookingCommand: Cancel a booking (taker or owner)
- AcceptBookingCommand: Owner accepts a pending booking
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from apps.bookings.domain.events import BookingCancelled, BookingCreated
from apps.bookings.models import Booking
from apps.bookings.services import (
    BookingForbiddenError,
    BookingValidationError,
    ensure_listing_is_available,
    ensure_listing_is_bookable,
    get_listing_type,
    lock_booking,
    lock_listing,
    resolve_booking_period,
)

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    start_date / nb_time_units are required or ignored depending on the
    time mode of the listing type.
    """
    taker_id: int
    listing_id: int
    listing_type_id: int
    start_date: datetime | None = None
    nb_time_units: int | None = None
    quantity: int = 1


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking"""
    booking_id: int
    cancelled_by: int
    reason: str = ''


@dataclass
class AcceptBookingCommand:
    """Command for the listing owner to accept a pending booking"""
    booking_id: int
    accepted_by: int


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    Strategy:
    1. Start database transaction (atomic)
    2. Lock the listing row (SELECT FOR UPDATE), bookings of one listing
       are admitted one at a time
    3. Basic checks, period resolution, availability engines
    4. Insert the booking
    5. Commit transaction, then publish BookingCreated
    """

    def __init__(self, clock=timezone.now):
        self.clock = clock

    def __call__(self, command: CreateBookingCommand) -> Booking:
        return self.handle(command)

    def handle(self, command: CreateBookingCommand) -> Booking:
        """
        Handle booking creation

        Returns: Created Booking

        Raises:
            BookingError subclasses carrying the HTTP status to answer with
        """
        logger.info(
            f"Creating booking for listing {command.listing_id}, "
            f"taker {command.taker_id}, start {command.start_date}, "
            f"units {command.nb_time_units}, quantity {command.quantity}"
        )

        if not command.listing_id or not command.listing_type_id:
            raise BookingValidationError("Не указано объявление или тип бронирования.")
        if command.quantity is None or command.quantity < 1:
            raise BookingValidationError("Количество должно быть не меньше 1.")

        taker = get_user_model().objects.get(pk=command.taker_id)
        now = self.clock()

        with DjangoUnitOfWork() as uow:
            listing = lock_listing(command.listing_id)
            ensure_listing_is_bookable(listing, command.listing_type_id, taker)
            listing_type = get_listing_type(command.listing_type_id)

            period = resolve_booking_period(
                listing,
                listing_type,
                command.start_date,
                command.nb_time_units,
                now,
            )
            quantity = ensure_listing_is_available(listing, listing_type, period, command.quantity, now)

            auto_acceptance = listing.auto_booking_acceptance
            booking = Booking.objects.create(
                listing=listing,
                listing_type=listing_type,
                owner_id=listing.owner_id,
                taker=taker,
                start_date=period.start_date if period else None,
                end_date=period.end_date if period else None,
                nb_time_units=(
                    command.nb_time_units if period is not None and not period.is_single_date else None
                ),
                time_unit=listing_type.time_unit if period else '',
                quantity=quantity,
                auto_acceptance=auto_acceptance,
                status=Booking.Status.ACCEPTED if auto_acceptance else Booking.Status.PENDING,
                accepted_date=now if auto_acceptance else None,
                expires_at=None if auto_acceptance else now + timedelta(minutes=settings.BOOKING_HOLD_MINUTES),
            )

            uow.record_event(BookingCreated(
                aggregate_id=booking.id,
                booking_id=booking.id,
                listing_id=listing.id,
                taker_id=taker.id,
                start_date=booking.start_date,
                end_date=booking.end_date,
                quantity=booking.quantity,
                accepted=auto_acceptance,
            ))

        logger.info(
            f"Booking created successfully: {booking.booking_code} "
            f"(ID: {booking.id}, status {booking.status})"
        )

        return booking


class CancelBookingHandler:
    """Handler for cancelling booking, the units return to the listing"""

    def __call__(self, command: CancelBookingCommand) -> Booking:
        return self.handle(command)

    def handle(self, command: CancelBookingCommand) -> Booking:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason}")

        with DjangoUnitOfWork() as uow:
            booking = lock_booking(command.booking_id)

            if command.cancelled_by == booking.taker_id:
                source = Booking.CancellationSource.TAKER
            elif command.cancelled_by == booking.owner_id:
                source = Booking.CancellationSource.OWNER
            else:
                raise BookingForbiddenError("Отменить бронь может только арендатор или владелец.")

            if not booking.is_active:
                raise BookingValidationError(
                    f"Бронирование {booking.booking_code} нельзя отменить в статусе {booking.status}."
                )

            booking.mark_cancelled(source, command.reason)

            uow.record_event(BookingCancelled(
                aggregate_id=booking.id,
                booking_id=booking.id,
                listing_id=booking.listing_id,
                reason=command.reason,
            ))

        logger.info(f"Booking {booking.booking_code} cancelled successfully")
        return booking


class AcceptBookingHandler:
    """Handler for the owner accepting a pending booking"""

    def __init__(self, clock=timezone.now):
        self.clock = clock

    def __call__(self, command: AcceptBookingCommand) -> Booking:
        return self.handle(command)

    def handle(self, command: AcceptBookingCommand) -> Booking:
        logger.info(f"Accepting booking {command.booking_id}")

        with DjangoUnitOfWork():
            booking = lock_booking(command.booking_id)

            if command.accepted_by != booking.owner_id:
                raise BookingForbiddenError("Подтвердить бронь может только владелец объявления.")

            now = self.clock()
            if booking.status != Booking.Status.PENDING or booking.should_expire(now):
                raise BookingValidationError(
                    f"Бронирование {booking.booking_code} не ожидает подтверждения."
                )

            booking.mark_accepted(now)

        logger.info(f"Booking {booking.booking_code} accepted")
        return booking


def register_handlers(bus) -> None:
    """Wire the booking use cases into the message bus"""
    bus.register_command_handler(CreateBookingCommand, CreateBookingHandler(), replace=True)
    bus.register_command_handler(CancelBookingCommand, CancelBookingHandler(), replace=True)
    bus.register_command_handler(AcceptBookingCommand, AcceptBookingHandler(), replace=True)
