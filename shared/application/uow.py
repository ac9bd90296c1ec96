"""
Unit of Work Pattern

Wraps a database transaction and publishes the domain events recorded
inside it only once that transaction has committed.
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
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    @abstractmethod
    def add_event(self, event: DomainEvent):
        """Record an event to publish after commit"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            if not booking_repo.mark_cancelled(booking_id, now):
                raise AlreadyCancelledError(...)
            uow.add_event(BookingCancelled(...))
        # Events are published after commit
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

        transaction.on_commit() defers the publish until the outermost
        atomic block commits, and drops it if that block rolls back.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Rollback changes and discard events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def _publish_events(self, events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            # The data is already committed; a lost audit line must not fail the request.
            logger.error(f"Error publishing events: {e}", exc_info=True)
