"""
Unit of Work Pattern

Wraps a use case in a database transaction and makes sure domain events
recorded during it are published only after the transaction commits.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""

    @abstractmethod
    def record_event(self, event: DomainEvent):
        """Queue an event for publication after commit"""


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            listing = lock_listing(listing_id)
            booking = Booking.objects.create(...)
            uow.record_event(BookingCreated(...))
            # Transaction commits here
        # Events are published after commit

    Any exception raised inside the block rolls the transaction back and
    discards the recorded events.
    """

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule event publishing

        Django's transaction.on_commit() defers the callback until the
        outermost atomic block has actually committed.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Discard recorded events"""
        logger.info(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def record_event(self, event: DomainEvent):
        self._events.append(event)
        logger.debug(f"Recorded {event.__class__.__name__} (aggregate {event.aggregate_id})")

    @property
    def pending_events(self) -> List[DomainEvent]:
        return self._events.copy()

    def _publish_events(self, events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            # The transaction is already committed at this point
            logger.error(f"Error publishing events: {e}", exc_info=True)
