"""URL routing for the booking domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import BookingViewSet, CancelBookingView, CheckoutView

router = DefaultRouter()
router.register(r"", BookingViewSet, basename="booking")

urlpatterns = [
    path("cancel/", CancelBookingView.as_view(), name="booking-cancel"),
    path("checkout/", CheckoutView.as_view(), name="booking-checkout"),
    path("", include(router.urls)),
]
