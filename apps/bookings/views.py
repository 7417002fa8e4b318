"""API views for the booking domain."""

from __future__ import annotations

from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus

from .application.command_handlers import AcceptBookingCommand, CancelBookingCommand, CreateBookingCommand
from .models import Booking
from .serializers import BookingCancelSerializer, BookingCreateSerializer, BookingSerializer
from .services import BookingError


def booking_error_response(exc: BookingError) -> Response:
    data: dict = {"detail": exc.message}
    if exc.errors:
        data["errors"] = exc.errors
    return Response(data, status=exc.status_code)


class IsBookingStakeholder(permissions.BasePermission):
    """Арендатор, владелец объявления и администраторы имеют доступ к бронированию."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        if hasattr(user, "is_platform_superuser") and user.is_platform_superuser():
            return True
        return user.id in (obj.taker_id, obj.owner_id)


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Viewset для создания и управления бронированиями."""

    queryset = Booking.objects.select_related("listing", "listing_type", "owner", "taker").all()
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_fields = ["status", "listing", "listing_type"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "cancel":
            return BookingCancelSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        if hasattr(user, "is_platform_superuser") and user.is_platform_superuser():
            return qs
        return qs.filter(Q(taker=user) | Q(owner=user))

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        command = CreateBookingCommand(
            taker_id=request.user.id,
            listing_id=data["listing"],
            listing_type_id=data["listing_type"],
            start_date=data.get("start_date"),
            nb_time_units=data.get("nb_time_units"),
            quantity=data["quantity"],
        )
        try:
            booking = message_bus.handle_command(command)
        except BookingError as exc:
            return booking_error_response(exc)

        read_serializer = BookingSerializer(booking, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = message_bus.handle_command(
                CancelBookingCommand(
                    booking_id=booking.id,
                    cancelled_by=request.user.id,
                    reason=serializer.validated_data["reason"],
                )
            )
        except BookingError as exc:
            return booking_error_response(exc)
        return Response({"status": booking.status}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        try:
            booking = message_bus.handle_command(
                AcceptBookingCommand(booking_id=booking.id, accepted_by=request.user.id)
            )
        except BookingError as exc:
            return booking_error_response(exc)
        return Response(
            {"status": booking.status, "accepted_date": booking.accepted_date},
            status=status.HTTP_200_OK,
        )
