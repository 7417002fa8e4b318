"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.uow import DjangoUnitOfWork

from .domain.events import BookingExpired
from .models import Booking
from .services import BookingNotFoundError, lock_booking

logger = logging.getLogger(__name__)


def _expire_booking(booking_id: int, now) -> bool:
    """Expire one pending booking whose hold has run out, returns True if expired."""

    with DjangoUnitOfWork() as uow:
        try:
            booking = lock_booking(booking_id)
        except BookingNotFoundError:
            return False
        if not booking.should_expire(now):
            return False

        booking.mark_expired(now)
        uow.record_event(BookingExpired(
            aggregate_id=booking.id,
            booking_id=booking.id,
            listing_id=booking.listing_id,
        ))

    logger.info(f"Booking {booking.booking_code} expired, listing {booking.listing_id}")
    return True


@shared_task(name="bookings.expire_booking_hold")
def expire_booking_hold(booking_id: int) -> bool:
    """Истекает бронь, если владелец не подтвердил её в срок."""

    return _expire_booking(booking_id, timezone.now())


# ============================================================================
# PERIODIC TASKS (запускаются автоматически через Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_pending_bookings")
def expire_pending_bookings() -> dict[str, int]:
    """
    Автоматическое истечение неподтверждённых броней.

    Ищет бронирования со статусом PENDING, у которых истек expires_at,
    и переводит их в EXPIRED, освобождая единицы объявления.

    Запускается каждую минуту через Celery Beat.

    Returns:
        dict: {"expired": количество истекших броней}
    """
    now = timezone.now()
    expired_count = 0

    booking_ids = list(
        Booking.objects.filter(
            status=Booking.Status.PENDING,
            expires_at__lte=now,
        ).values_list("id", flat=True)
    )

    for booking_id in booking_ids:
        try:
            if _expire_booking(booking_id, now):
                expired_count += 1
        except Exception as e:
            logger.error(f"Error expiring booking {booking_id}: {e}", exc_info=True)

    if expired_count > 0:
        logger.info(f"Expired {expired_count} pending bookings")

    return {"expired": expired_count}
