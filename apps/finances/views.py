"""API views for payments.

Split payments and membership subscriptions are thin DRF views over the
use cases in ``application``. Domain errors raised there are rendered by
``shared.infrastructure.exception_handler``. The gateway webhook is a plain
csrf-exempt Django view because it must see the raw, unparsed body.
"""

from __future__ import annotations

import structlog
from django.http import HttpResponse, JsonResponse  # type: ignore
from django.views.decorators.csrf import csrf_exempt  # type: ignore
from django.views.decorators.http import require_http_methods  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.domain.errors import DomainError

from . import providers
from .application.split_payment import SplitPaymentCommand
from .application.subscriptions import SubscribeCommand
from .domain.entities import MembershipTier
from .models import Membership, Order
from .serializers import MembershipSerializer, OrderSerializer, SplitPaymentSerializer, SubscribeSerializer

logger = structlog.get_logger(__name__)


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    """Orders of the current user. Admins see every order."""

    queryset = Order.objects.select_related("booking").all()
    serializer_class = OrderSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if user.is_admin():
            return qs
        return qs.filter(user=user)


class MembershipViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Membership.objects.all()
    serializer_class = MembershipSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return super().get_queryset().filter(user=self.request.user)


class SplitPaymentView(APIView):
    """
    Split a session's price across several players.

    Always 200 once the session can take the whole group; per-player
    failures are reported in the ``results`` list.
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        serializer = SplitPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        handler = providers.build_split_payment_handler()
        result = handler.handle(SplitPaymentCommand(
            session_id=data["session_id"],
            participant_identifiers=data["player_identifiers"],
            organizer_id=data.get("host_user_id") or request.user.pk,
        ))
        return Response(result.to_response(), status=status.HTTP_200_OK)


class SubscribeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        serializer = SubscribeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = providers.build_subscribe_handler()
        result = handler.handle(SubscribeCommand(
            user_id=request.user.pk,
            tier=MembershipTier(serializer.validated_data["tier"]),
        ))
        return Response(result.to_response(), status=status.HTTP_200_OK)


@csrf_exempt
@require_http_methods(["POST", "OPTIONS"])
def payment_webhook(request):
    """Receive signed payment gateway events."""
    if request.method == "OPTIONS":
        return HttpResponse("ok")

    signature = request.headers.get("Stripe-Signature")
    try:
        result = providers.build_webhook_router().handle(request.body, signature)
    except DomainError as exc:
        logger.warning("webhook.rejected", code=exc.code.value, error=exc.message)
        return JsonResponse(exc.to_dict(), status=exc.http_status)

    return JsonResponse(result.to_response(), status=result.http_status)
