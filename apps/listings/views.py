"""Listing API views."""

from __future__ import annotations

from django.db.models import Q  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from django.utils import timezone  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.services import describe_listing_availability

from .filters import ListingAvailabilityFilterSet, ListingFilterSet
from .models import Listing, ListingAvailability, ListingType
from .serializers import (
    AvailabilityQuerySerializer,
    ListingAvailabilitySerializer,
    ListingAvailabilityWriteSerializer,
    ListingSerializer,
    ListingTypeSerializer,
)


def _is_platform_staff(user) -> bool:
    if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
        return True
    return hasattr(user, "is_platform_superuser") and user.is_platform_superuser()


class IsListingOwnerOrAdmin(permissions.BasePermission):
    """Позволяет управлять объявлением и его календарём владельцу и персоналу."""

    def has_object_permission(self, request, view, obj):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if _is_platform_staff(user):
            return True
        listing = obj.listing if isinstance(obj, ListingAvailability) else obj
        return listing.owner_id == user.id


class ListingTypeViewSet(viewsets.ReadOnlyModelViewSet):
    """Типы объявлений, доступные для бронирования."""

    queryset = ListingType.objects.filter(is_active=True)
    serializer_class = ListingTypeSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None


class ListingViewSet(viewsets.ReadOnlyModelViewSet):
    """Просмотр объявлений и их календаря доступности."""

    queryset = Listing.objects.select_related("owner").prefetch_related("listing_types")
    serializer_class = ListingSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ListingFilterSet
    ordering_fields = ["created_at", "quantity", "title"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if not user.is_authenticated:
            return qs.filter(validated=True)
        if _is_platform_staff(user):
            return qs
        # Владелец видит свои объявления до проверки
        return qs.filter(Q(validated=True) | Q(owner=user))

    @action(detail=True, methods=["get"], url_path="availability")
    def availability(self, request, pk=None):  # type: ignore
        listing: Listing = self.get_object()
        query = AvailabilityQuerySerializer(data=request.query_params, context={"listing": listing})
        query.is_valid(raise_exception=True)
        data = query.validated_data
        payload = describe_listing_availability(
            listing,
            data["listing_type"],
            data["period"],
            data["quantity"],
            timezone.now(),
        )
        return Response(payload, status=status.HTTP_200_OK)


class ListingCalendarMixin:
    """Вспомогательный миксин для получения объявления и проверки прав."""

    listing_lookup_url_kwarg = "listing_id"
    permission_classes = [permissions.IsAuthenticated, IsListingOwnerOrAdmin]

    def initial(self, request, *args, **kwargs):  # type: ignore
        super().initial(request, *args, **kwargs)
        listing_id = kwargs.get(self.listing_lookup_url_kwarg)
        self.listing_object = get_object_or_404(Listing, pk=listing_id)
        self.check_object_permissions(request, self.listing_object)

    def get_listing(self) -> Listing:
        return self.listing_object


class ListingAvailabilityViewSet(ListingCalendarMixin, viewsets.ModelViewSet):
    """Управление заявленной владельцем доступностью: периоды и отдельные даты."""

    serializer_class = ListingAvailabilitySerializer
    queryset = ListingAvailability.objects.select_related("listing", "created_by").all()
    filter_backends = [DjangoFilterBackend]
    filterset_class = ListingAvailabilityFilterSet

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return ListingAvailabilityWriteSerializer
        return ListingAvailabilitySerializer

    def get_queryset(self):  # type: ignore
        return super().get_queryset().filter(listing=self.get_listing()).order_by("start_date", "pk")

    def perform_create(self, serializer):  # type: ignore
        serializer.save(listing=self.get_listing(), created_by=self.request.user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        read_serializer = ListingAvailabilitySerializer(
            serializer.instance,
            context=self.get_serializer_context(),
        )
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    def update(self, request, *args, **kwargs):  # type: ignore
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.perform_update(serializer)
        read_serializer = ListingAvailabilitySerializer(
            serializer.instance,
            context=self.get_serializer_context(),
        )
        return Response(read_serializer.data, status=status.HTTP_200_OK)
