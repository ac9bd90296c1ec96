"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.finances import providers
from apps.finances.application.checkout import CheckoutCommand

from .application.cancellation import CancelBookingCommand
from .models import Booking
from .serializers import BookingSerializer, CancelBookingSerializer, CheckoutSerializer


class IsBookingOwnerOrAdmin(permissions.BasePermission):
    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        return user.is_admin() or obj.user_id == user.pk


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """Bookings of the current user. Admins see every booking."""

    queryset = Booking.objects.select_related("session").prefetch_related("orders").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingOwnerOrAdmin]

    def get_queryset(self):  # type: ignore
        return super().get_queryset().visible_to(self.request.user)


class CancelBookingView(APIView):
    """Cancel a booking and refund according to how close the session is."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        serializer = CancelBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = providers.build_cancel_handler()
        result = handler.handle(CancelBookingCommand(
            booking_id=serializer.validated_data["booking_id"],
            requested_by=request.user.pk,
        ))
        return Response(result.to_response(), status=status.HTTP_200_OK)


class CheckoutView(APIView):
    """Reserve a spot for the caller (and guests) and open a payment."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = providers.build_checkout_handler()
        result = handler.handle(CheckoutCommand(
            session_id=serializer.validated_data["session_id"],
            user_id=request.user.pk,
            guests=serializer.validated_data["guests"],
        ))
        return Response(result.to_response(), status=status.HTTP_200_OK)
