"""URL routing for the finance domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import MembershipViewSet, OrderViewSet, SplitPaymentView, SubscribeView

router = DefaultRouter()
router.register(r"orders", OrderViewSet, basename="order")
router.register(r"memberships", MembershipViewSet, basename="membership")

urlpatterns = [
    path("split-payments/", SplitPaymentView.as_view(), name="split-payment"),
    path("memberships/subscribe/", SubscribeView.as_view(), name="membership-subscribe"),
    path("", include(router.urls)),
]
