from __future__ import annotations

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.finances.models import Order
from apps.scheduling.tests.factories import make_booking, make_session, make_user
from apps.users.models import CustomUser


class BookingReadAPITests(APITestCase):
    def setUp(self) -> None:
        self.session = make_session(title="Morning kings")
        self.player = make_user("player@example.com")
        self.other = make_user("other@example.com")
        self.own = make_booking(self.session, self.player)
        self.foreign = make_booking(self.session, self.other)
        Order.objects.create(
            booking=self.own, user=self.player, amount_cents=5000, status=Order.Status.PAID,
            stripe_payment_intent_id="pi_own",
        )
        self.list_url = reverse("booking-list")

    def _ids(self, response) -> set[str]:
        rows = response.data["results"] if isinstance(response.data, dict) else response.data
        return {str(row["id"]) for row in rows}

    def test_player_sees_only_own_bookings(self) -> None:
        self.client.force_authenticate(self.player)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._ids(response), {str(self.own.pk)})

    def test_detail_includes_session_and_order_state(self) -> None:
        self.client.force_authenticate(self.player)

        response = self.client.get(reverse("booking-detail", args=[self.own.pk]))

        self.assertEqual(response.data["session_title"], "Morning kings")
        self.assertEqual(response.data["order_status"], "paid")

    def test_foreign_booking_is_hidden(self) -> None:
        self.client.force_authenticate(self.player)

        response = self.client.get(reverse("booking-detail", args=[self.foreign.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_sees_everything(self) -> None:
        self.client.force_authenticate(make_user("admin@example.com", role=CustomUser.RoleChoices.ADMIN))

        response = self.client.get(self.list_url)

        self.assertEqual(self._ids(response), {str(self.own.pk), str(self.foreign.pk)})

    def test_orders_endpoint_lists_own_orders(self) -> None:
        self.client.force_authenticate(self.other)

        response = self.client.get(reverse("order-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._ids(response), set())
