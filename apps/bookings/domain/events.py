"""
Booking Domain Events

Published on the message bus after the booking transaction commits.
"""

from dataclasses import dataclass
from datetime import datetime

from shared.domain.base import DomainEvent


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A booking was admitted and persisted

    Triggers:
    - Hold expiry timer for bookings awaiting owner acceptance
    """
    booking_id: int | None = None
    listing_id: int | None = None
    taker_id: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    quantity: int = 1
    accepted: bool = False


@dataclass
class BookingCancelled(DomainEvent):
    """Event: A booking was cancelled, its units are free again"""
    booking_id: int | None = None
    listing_id: int | None = None
    reason: str = ''


@dataclass
class BookingExpired(DomainEvent):
    """Event: A pending booking was not accepted before its hold ran out"""
    booking_id: int | None = None
    listing_id: int | None = None
