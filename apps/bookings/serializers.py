"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import MAX_TIME_UNITS, Booking


class BookingCreateSerializer(serializers.Serializer):
    """Запрос арендатора на бронирование.

    Объявление и тип передаются идентификаторами: их существование проверяет
    сценарий создания брони, чтобы отвечать 404 на неизвестные объекты.
    """

    listing = serializers.IntegerField(min_value=1)
    listing_type = serializers.IntegerField(min_value=1)
    start_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    nb_time_units = serializers.IntegerField(
        min_value=1, max_value=MAX_TIME_UNITS, required=False, allow_null=True, default=None
    )
    quantity = serializers.IntegerField(min_value=1, default=1)


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    """Детальный сериализатор бронирования."""

    listing_id = serializers.ReadOnlyField(source="listing.id")
    listing_title = serializers.ReadOnlyField(source="listing.title")
    listing_type_id = serializers.ReadOnlyField(source="listing_type.id")
    owner_id = serializers.ReadOnlyField(source="owner.id")
    taker_id = serializers.ReadOnlyField(source="taker.id")
    status_display = serializers.ReadOnlyField(source="get_status_display")

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "listing_id",
            "listing_title",
            "listing_type_id",
            "owner_id",
            "taker_id",
            "start_date",
            "end_date",
            "nb_time_units",
            "time_unit",
            "quantity",
            "status",
            "status_display",
            "auto_acceptance",
            "accepted_date",
            "expires_at",
            "cancelled_at",
            "cancellation_source",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
