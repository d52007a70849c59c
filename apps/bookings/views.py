"""API views for the booking domain."""

from __future__ import annotations

import logging

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from . import services
from .models import Booking
from .serializers import BookingCreateSerializer, BookingSerializer, BookingStatusSerializer

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = (
    (services.BookingNotFoundError, status.HTTP_404_NOT_FOUND),
    (services.UnauthorizedBookingActionError, status.HTTP_403_FORBIDDEN),
    (services.PartnerUnavailableError, status.HTTP_400_BAD_REQUEST),
    (services.InvalidBookingWindowError, status.HTTP_400_BAD_REQUEST),
    (services.BookingConflictError, status.HTTP_409_CONFLICT),
    (services.InvalidBookingTransitionError, status.HTTP_409_CONFLICT),
)


def booking_error_response(exc: services.BookingError) -> Response:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return Response({"detail": str(exc)}, status=status_code)
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def _is_staff(user) -> bool:  # type: ignore
    if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
        return True
    return hasattr(user, "is_platform_admin") and user.is_platform_admin()


def _partner_id(user):  # type: ignore
    profile = getattr(user, "partner_profile", None)
    return profile.pk if profile is not None else None


class IsBookingStakeholder(permissions.BasePermission):
    """Clients, the owning partner and platform admins may access a booking."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if _is_staff(user):
            return True
        if obj.partner_id == _partner_id(user):
            return True
        return obj.client_id == user.id


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Create, list and manage bookings."""

    queryset = Booking.objects.select_related("client", "partner", "parking_spot").all()
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_fields = ["status", "partner", "parking_spot"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "change_status":
            return BookingStatusSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if _is_staff(user):
            return qs
        partner_id = _partner_id(user)
        if partner_id is not None:
            return qs.filter(partner_id=partner_id) | qs.filter(client=user)
        return qs.filter(client=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = serializer.save()
        except services.BookingError as exc:
            return booking_error_response(exc)
        read_serializer = BookingSerializer(booking, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        try:
            booking = services.cancel_booking(pk, request.user.id)
        except services.BookingError as exc:
            return booking_error_response(exc)
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="status", url_name="status")
    def change_status(self, request, pk=None):  # type: ignore
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = services.get_booking_by_id(pk)
        if booking is None:
            return Response({"detail": "Booking not found."}, status=status.HTTP_404_NOT_FOUND)
        user = request.user
        if not _is_staff(user) and booking.partner_id != _partner_id(user):
            return Response(status=status.HTTP_403_FORBIDDEN)

        try:
            booking = services.update_booking_status(booking.pk, serializer.validated_data["status"])
        except services.BookingError as exc:
            return booking_error_response(exc)
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)
