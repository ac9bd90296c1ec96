"""Integration tests for the cancellation endpoint."""

from __future__ import annotations

from unittest import mock

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.finances.models import Order
from apps.finances.tests.fakes import FakeGateway
from apps.scheduling.models import Session
from apps.scheduling.tests.factories import make_booking, make_session, make_user
from apps.users.models import CustomUser


class CancelBookingAPITests(APITestCase):
    def setUp(self) -> None:
        self.player = make_user("player@example.com")
        self.gateway = FakeGateway()
        patcher = mock.patch("apps.finances.providers.get_payment_gateway", return_value=self.gateway)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client.force_authenticate(self.player)
        self.url = reverse("booking-cancel")

    def _paid_booking(self, hours_from_now: float, spots: int = 1) -> Booking:
        session = make_session(hours_from_now=hours_from_now, price_cents=5000, spots=spots)
        booking = make_booking(session, self.player)
        Order.objects.create(
            booking=booking,
            user=self.player,
            amount_cents=5000,
            stripe_payment_intent_id=f"pi_{booking.pk.hex[:8]}",
            status=Order.Status.PAID,
        )
        return booking

    def _cancel(self, booking: Booking):
        return self.client.post(self.url, {"booking_id": str(booking.pk)}, format="json")

    def test_refund_tiers_by_time_to_start(self) -> None:
        for hours, amount, percent in ((49, 5000, 100), (14, 2500, 50), (6, 0, 0)):
            with self.subTest(hours=hours):
                booking = self._paid_booking(hours)

                response = self._cancel(booking)

                self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
                self.assertEqual(response.data, {
                    "refundAmount": amount,
                    "refundPercent": percent,
                    "bookingStatus": "cancelled",
                })
        self.assertEqual([r["amount_cents"] for r in self.gateway.refunds], [5000, 2500])

    def test_full_refund_updates_order_and_releases_spot(self) -> None:
        booking = self._paid_booking(49, spots=1)
        booking.session.status = Session.Status.FULL
        booking.session.save(update_fields=["status"])

        self._cancel(booking)

        booking.refresh_from_db()
        booking.session.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CANCELLED)
        self.assertIsNotNone(booking.cancelled_at)
        self.assertEqual(booking.orders.get().status, Order.Status.REFUNDED)
        self.assertEqual(booking.session.spots_remaining, 1)
        self.assertEqual(booking.session.status, Session.Status.OPEN)

    def test_cancelling_twice_is_rejected(self) -> None:
        booking = self._paid_booking(49)
        self._cancel(booking)

        response = self._cancel(booking)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "already_cancelled")
        self.assertEqual(len(self.gateway.refunds), 1)

    def test_other_player_gets_403(self) -> None:
        booking = self._paid_booking(49)
        self.client.force_authenticate(make_user("other@example.com"))

        response = self._cancel(booking)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "forbidden")

    def test_admin_can_cancel(self) -> None:
        booking = self._paid_booking(49)
        self.client.force_authenticate(make_user("admin@example.com", role=CustomUser.RoleChoices.ADMIN))

        response = self._cancel(booking)

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

    def test_unknown_booking_gets_404(self) -> None:
        response = self.client.post(
            self.url, {"booking_id": "00000000-0000-0000-0000-000000000000"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_malformed_booking_id_gets_400(self) -> None:
        response = self.client.post(self.url, {"booking_id": "not-a-uuid"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_gateway_refund_failure_returns_500_and_keeps_booking(self) -> None:
        booking = self._paid_booking(49)
        self.gateway.fail_refund = True

        response = self._cancel(booking)

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data["code"], "refund_failed")
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)

    def test_requires_authentication(self) -> None:
        booking = self._paid_booking(49)
        self.client.force_authenticate(None)

        response = self._cancel(booking)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
