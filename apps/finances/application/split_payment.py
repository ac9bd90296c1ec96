"""
Split Payment

One session's price shared by several players, each paying separately.
Every participant is processed on its own: a failure for one is recorded in
that participant's result and never undoes what was already created for the
others. The request as a whole fails only when the session cannot take the
whole group, and that is checked before anything is written.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from uuid import UUID, uuid4

import structlog
from django.conf import settings
from django.db import DatabaseError

from apps.finances.application.customers import ensure_customer
from apps.finances.domain.entities import NewOrder
from apps.finances.domain.events import SplitGroupCreated
from apps.finances.gateway import PaymentGateway
from apps.finances.repositories import OrderRepository
from apps.scheduling.reservations import ReservationService
from apps.users.repositories import UserDirectory
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.errors import CapacityError, DomainError, ErrorCode, InvalidInputError, NotFoundError
from shared.domain.value_objects import Money

logger = structlog.get_logger(__name__)


@dataclass
class SplitPaymentCommand:
    session_id: UUID
    participant_identifiers: Sequence[str]
    organizer_id: UUID


@dataclass(frozen=True)
class PlayerResult:
    identifier: str
    client_secret: Optional[str] = None
    order_id: Optional[UUID] = None
    booking_id: Optional[UUID] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_response(self) -> dict:
        data = {
            'identifier': self.identifier,
            'clientSecret': self.client_secret,
            'orderId': str(self.order_id) if self.order_id else None,
            'bookingId': str(self.booking_id) if self.booking_id else None,
        }
        if self.error is not None:
            data['error'] = self.error
            data['errorCode'] = self.error_code
        return data


@dataclass(frozen=True)
class SplitPaymentResult:
    split_group_id: UUID
    per_person_cents: int
    results: tuple

    def to_response(self) -> dict:
        return {
            'splitGroupId': str(self.split_group_id),
            'perPersonCents': self.per_person_cents,
            'results': [result.to_response() for result in self.results],
        }


@dataclass(frozen=True)
class _SplitContext:
    session_id: UUID
    organizer_id: UUID
    split_group_id: UUID
    per_person_cents: int
    currency: str


class SplitPaymentHandler:
    def __init__(
        self,
        reservations: ReservationService,
        order_repo: OrderRepository,
        user_directory: UserDirectory,
        gateway: PaymentGateway,
        uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork,
        currency: Optional[str] = None,
    ):
        self.reservations = reservations
        self.order_repo = order_repo
        self.user_directory = user_directory
        self.gateway = gateway
        self.uow_factory = uow_factory
        self.currency = currency or settings.PAYMENTS_CURRENCY

    def handle(self, command: SplitPaymentCommand) -> SplitPaymentResult:
        identifiers = list(command.participant_identifiers)
        if not identifiers:
            raise InvalidInputError("At least one player is required")

        session = self.reservations.get_session(command.session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if not session.is_open:
            raise CapacityError("Session is not open for booking")
        if session.spots_remaining < len(identifiers):
            raise CapacityError(
                f"Not enough spots. Need {len(identifiers)}, available: {session.spots_remaining}"
            )

        context = _SplitContext(
            session_id=session.id,
            organizer_id=command.organizer_id,
            split_group_id=uuid4(),
            per_person_cents=Money(session.price_cents, self.currency).split_ceil(len(identifiers)).cents,
            currency=self.currency,
        )
        log = logger.bind(split_group_id=str(context.split_group_id), session_id=str(session.id))
        log.info("split.started", participants=len(identifiers), per_person_cents=context.per_person_cents)

        results = tuple(self._process_participant(identifier, context) for identifier in identifiers)

        ready = sum(1 for result in results if result.ok)
        log.info("split.finished", ready=ready, failed=len(results) - ready)
        with self.uow_factory() as uow:
            uow.add_event(SplitGroupCreated(
                split_group_id=context.split_group_id,
                session_id=session.id,
                organizer_id=command.organizer_id,
                per_person_cents=context.per_person_cents,
                ready=ready,
                failed=len(results) - ready,
            ))

        return SplitPaymentResult(
            split_group_id=context.split_group_id,
            per_person_cents=context.per_person_cents,
            results=results,
        )

    def _process_participant(self, identifier: str, context: _SplitContext) -> PlayerResult:
        booking_id = None
        try:
            account = self.user_directory.resolve(identifier)
            if account is None:
                return PlayerResult(
                    identifier=identifier,
                    error=f"User with email {identifier} not found. They must sign up first.",
                    error_code=ErrorCode.USER_NOT_FOUND.value,
                )

            booking = self.reservations.reserve_spot(context.session_id, account.id, guests=0)
            booking_id = booking.id
            customer_id = ensure_customer(account, self.user_directory, self.gateway)
            intent = self.gateway.create_payment_intent(
                context.per_person_cents,
                context.currency,
                customer_id,
                {
                    'booking_id': str(booking.id),
                    'session_id': str(context.session_id),
                    'user_id': str(account.id),
                    'split_group_id': str(context.split_group_id),
                    'host_user_id': str(context.organizer_id),
                },
                idempotency_key=f"split-{context.split_group_id}-{booking.id}",
            )
            order = self.order_repo.create_pending(NewOrder(
                booking_id=booking.id,
                user_id=account.id,
                amount_cents=context.per_person_cents,
                stripe_payment_intent_id=intent.id,
                is_split=True,
                split_group_id=context.split_group_id,
                currency=context.currency,
            ))
        except DomainError as e:
            logger.warning("split.participant_failed", identifier=identifier, code=e.code.value, error=e.message)
            return PlayerResult(identifier=identifier, booking_id=booking_id, error=e.message, error_code=e.code.value)
        except DatabaseError as e:
            logger.error("split.participant_store_error", identifier=identifier, error=str(e))
            return PlayerResult(
                identifier=identifier,
                booking_id=booking_id,
                error="Could not reach the data store",
                error_code=ErrorCode.STORE_ERROR.value,
            )
        except Exception as e:
            # One participant's failure never aborts the rest of the split.
            logger.error("split.participant_failed", identifier=identifier, error=str(e), exc_info=True)
            return PlayerResult(
                identifier=identifier,
                booking_id=booking_id,
                error="Unexpected error",
                error_code=ErrorCode.INTERNAL_ERROR.value,
            )

        return PlayerResult(
            identifier=identifier,
            client_secret=intent.client_secret,
            order_id=order.id,
            booking_id=booking.id,
        )
