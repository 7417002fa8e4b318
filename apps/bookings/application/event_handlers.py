"""
Booking Event Handlers

Subscribers reacting to booking events once the transaction that raised
them has committed.
"""

import logging

from django.conf import settings

from apps.bookings.domain.events import BookingCancelled, BookingCreated, BookingExpired

logger = logging.getLogger(__name__)


def schedule_hold_expiry(event: BookingCreated) -> None:
    """Start the hold timer of a booking that waits for the owner"""
    if event.accepted or event.booking_id is None:
        return

    from apps.bookings.tasks import expire_booking_hold

    countdown = settings.BOOKING_HOLD_MINUTES * 60
    expire_booking_hold.apply_async(args=[event.booking_id], countdown=countdown)
    logger.info(f"Hold expiry for booking {event.booking_id} scheduled in {countdown}s")


def log_booking_event(event) -> None:
    logger.info(f"Booking event {event.__class__.__name__}: {event.to_dict()}")


def register_handlers(bus) -> None:
    bus.register_event_handler(BookingCreated, schedule_hold_expiry)
    for event_type in (BookingCreated, BookingCancelled, BookingExpired):
        bus.register_event_handler(event_type, log_booking_event)
