"""SplitPaymentHandler against in-memory ports."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest import mock
from uuid import uuid4

from django.test import SimpleTestCase

from apps.bookings.domain.entities import BookingStatus
from apps.finances.application.split_payment import SplitPaymentCommand, SplitPaymentHandler
from apps.finances.domain.entities import OrderStatus
from apps.scheduling.domain import SessionStatus
from shared.domain.errors import CapacityError, InvalidInputError, NotFoundError

from .fakes import (
    FakeGateway,
    FakeReservationService,
    FakeUnitOfWork,
    InMemoryOrderRepository,
    InMemoryUserDirectory,
)

STARTS_AT = datetime(2026, 7, 4, 18, 0, tzinfo=timezone.utc)


class SplitPaymentHandlerTests(SimpleTestCase):
    def setUp(self) -> None:
        self.reservations = FakeReservationService()
        self.orders = InMemoryOrderRepository()
        self.users = InMemoryUserDirectory()
        self.gateway = FakeGateway()
        self.uow = FakeUnitOfWork()
        self.handler = SplitPaymentHandler(
            reservations=self.reservations,
            order_repo=self.orders,
            user_directory=self.users,
            gateway=self.gateway,
            uow_factory=self.uow,
            currency="usd",
        )
        self.organizer = self.users.add("host@example.com")
        self.session = self.reservations.add_session(price_cents=2500, spots=6, starts_at=STARTS_AT)

    def _split(self, identifiers, session_id=None):
        return self.handler.handle(SplitPaymentCommand(
            session_id=session_id or self.session.id,
            participant_identifiers=identifiers,
            organizer_id=self.organizer.id,
        ))

    def test_every_player_gets_a_ceiling_share(self) -> None:
        players = [self.users.add(f"p{i}@example.com") for i in range(3)]

        result = self._split([p.email for p in players])

        self.assertEqual(result.per_person_cents, 834)
        self.assertEqual(len(result.results), 3)
        self.assertTrue(all(r.ok and r.client_secret for r in result.results))
        self.assertEqual([i["amount_cents"] for i in self.gateway.intents], [834, 834, 834])
        orders = list(self.orders.orders.values())
        self.assertTrue(all(o.is_split and o.split_group_id == result.split_group_id for o in orders))
        self.assertTrue(all(o.status is OrderStatus.PENDING for o in orders))
        self.assertEqual(self.reservations.sessions[self.session.id].spots_remaining, 3)
        self.assertEqual(self.uow.published_types(), ['SplitGroupCreated'])

    def test_intent_metadata_links_back_to_group(self) -> None:
        player = self.users.add("solo@example.com")

        result = self._split([player.email])

        intent = self.gateway.intents[0]
        self.assertEqual(intent["metadata"], {
            'booking_id': str(result.results[0].booking_id),
            'session_id': str(self.session.id),
            'user_id': str(player.id),
            'split_group_id': str(result.split_group_id),
            'host_user_id': str(self.organizer.id),
        })
        self.assertEqual(
            intent["idempotency_key"], f"split-{result.split_group_id}-{result.results[0].booking_id}"
        )
        self.assertEqual(self.users.get(player.id).stripe_customer_id, intent["customer_id"])

    def test_unknown_player_does_not_block_the_others(self) -> None:
        first = self.users.add("first@example.com")
        last = self.users.add("last@example.com")

        result = self._split([first.email, "ghost@example.com", last.email])

        self.assertEqual([r.identifier for r in result.results],
                         ["first@example.com", "ghost@example.com", "last@example.com"])
        ghost = result.results[1]
        self.assertEqual(ghost.error, "User with email ghost@example.com not found. They must sign up first.")
        self.assertEqual(ghost.to_response()["errorCode"], "user_not_found")
        self.assertTrue(result.results[0].ok)
        self.assertTrue(result.results[2].ok)
        self.assertEqual(len(self.orders.orders), 2)

    def test_gateway_failure_is_isolated_to_one_player(self) -> None:
        players = [self.users.add(f"p{i}@example.com", customer_id=f"cus_p{i}") for i in range(3)]
        self.gateway.fail_intent_for_customers = {"cus_p1"}

        result = self._split([p.email for p in players])

        failed = result.results[1]
        self.assertFalse(failed.ok)
        self.assertEqual(failed.error_code, "gateway_error")
        self.assertIsNotNone(failed.booking_id)
        self.assertEqual(
            self.reservations.bookings[failed.booking_id].status, BookingStatus.RESERVED
        )
        self.assertTrue(result.results[0].ok and result.results[2].ok)
        self.assertEqual(len(self.orders.orders), 2)

    def test_store_failure_is_reported_per_player(self) -> None:
        player = self.users.add("p@example.com")
        self.orders.fail_on_create = True

        result = self._split([player.email])

        self.assertEqual(result.results[0].error_code, "store_error")

    def test_lookup_failure_does_not_abort_the_split(self) -> None:
        players = [self.users.add(f"p{i}@example.com") for i in range(3)]
        self.users.fail_resolve_for = {"p1@example.com"}

        result = self._split([p.email for p in players])

        self.assertEqual(len(result.results), 3)
        self.assertEqual(result.results[1].error_code, "store_error")
        self.assertIsNone(result.results[1].booking_id)
        self.assertTrue(result.results[0].ok and result.results[2].ok)
        self.assertEqual(len(self.orders.orders), 2)

    def test_unexpected_failure_is_reported_per_player(self) -> None:
        players = [self.users.add(f"p{i}@example.com") for i in range(2)]

        with mock.patch.object(self.gateway, "create_customer", side_effect=[RuntimeError("boom"), "cus_ok"]):
            result = self._split([p.email for p in players])

        failed = result.results[0]
        self.assertEqual(failed.error_code, "internal_error")
        self.assertEqual(failed.error, "Unexpected error")
        self.assertIsNotNone(failed.booking_id)
        self.assertTrue(result.results[1].ok)

    def test_duplicate_identifier_fails_only_the_repeat(self) -> None:
        player = self.users.add("twice@example.com")

        result = self._split([player.email, player.email])

        self.assertTrue(result.results[0].ok)
        self.assertEqual(result.results[1].error_code, "already_booked")

    def test_empty_player_list(self) -> None:
        with self.assertRaises(InvalidInputError):
            self._split([])

    def test_group_larger_than_remaining_spots(self) -> None:
        players = [self.users.add(f"p{i}@example.com") for i in range(7)]

        with self.assertRaisesMessage(CapacityError, "Not enough spots. Need 7, available: 6"):
            self._split([p.email for p in players])

        self.assertEqual(self.gateway.intents, [])
        self.assertEqual(self.reservations.bookings, {})

    def test_closed_session(self) -> None:
        closed = self.reservations.add_session(2500, 6, STARTS_AT, status=SessionStatus.CANCELLED)

        with self.assertRaises(CapacityError):
            self._split(["host@example.com"], session_id=closed.id)

    def test_unknown_session(self) -> None:

        with self.assertRaises(NotFoundError):
            self._split(["host@example.com"], session_id=uuid4())

    def test_response_shape(self) -> None:
        player = self.users.add("shape@example.com")

        body = self._split([player.email]).to_response()

        self.assertEqual(set(body), {'splitGroupId', 'perPersonCents', 'results'})
        self.assertEqual(set(body['results'][0]), {'identifier', 'clientSecret', 'orderId', 'bookingId'})
