"""Serializers for listings, listing types and declared availability."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.models import MAX_TIME_UNITS
from apps.bookings.services import BookingValidationError, build_range_period
from shared.domain.value_objects import BookingPeriod

from .models import Listing, ListingAvailability, ListingType


class ListingTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ListingType
        fields = [
            "id",
            "name",
            "time_mode",
            "availability_mode",
            "time_availability",
            "time_unit",
            "min_duration",
            "max_duration",
            "start_date_min_delta",
            "start_date_max_delta",
            "is_active",
        ]


class ListingSerializer(serializers.ModelSerializer):
    owner = serializers.ReadOnlyField(source="owner_id")
    listing_types = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "owner",
            "title",
            "description",
            "listing_types",
            "quantity",
            "validated",
            "locked",
            "auto_booking_acceptance",
            "recurring_dates_pattern",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ListingAvailabilitySerializer(serializers.ModelSerializer):
    listing = serializers.ReadOnlyField(source="listing_id")
    created_by = serializers.ReadOnlyField(source="created_by_id")
    type_display = serializers.ReadOnlyField(source="get_type_display")

    class Meta:
        model = ListingAvailability
        fields = [
            "id",
            "listing",
            "type",
            "type_display",
            "start_date",
            "end_date",
            "available",
            "quantity",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ListingAvailabilityWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = ListingAvailability
        fields = [
            "type",
            "start_date",
            "end_date",
            "available",
            "quantity",
        ]

    def validate(self, attrs):  # type: ignore
        instance = self.instance
        availability_type = attrs.get("type", getattr(instance, "type", ListingAvailability.Type.PERIOD))
        start = attrs.get("start_date", getattr(instance, "start_date", None))
        end = attrs.get("end_date", getattr(instance, "end_date", None))

        if availability_type == ListingAvailability.Type.DATE:
            if end is not None:
                raise serializers.ValidationError({"end_date": "Для отдельной даты дата окончания не указывается."})
            return attrs

        if end is None:
            raise serializers.ValidationError({"end_date": "Для периода нужна дата окончания."})
        if start and end <= start:
            raise serializers.ValidationError("Дата окончания должна быть позже даты начала.")
        return attrs


class AvailabilityQuerySerializer(serializers.Serializer):
    """Параметры запроса календаря доступности объявления."""

    listing_type = serializers.PrimaryKeyRelatedField(queryset=ListingType.objects.filter(is_active=True))
    start_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    nb_time_units = serializers.IntegerField(
        min_value=1, max_value=MAX_TIME_UNITS, required=False, allow_null=True, default=None
    )
    quantity = serializers.IntegerField(min_value=1, default=1)

    def validate_listing_type(self, value: ListingType) -> ListingType:
        listing = self.context.get("listing")
        if listing is not None and not listing.listing_types.filter(pk=value.pk).exists():
            raise serializers.ValidationError("Объявление не предлагает этот тип бронирования.")
        return value

    def validate(self, attrs):  # type: ignore
        listing_type: ListingType = attrs["listing_type"]
        start_date = attrs.get("start_date")
        nb_time_units = attrs.get("nb_time_units")

        attrs["period"] = None
        if start_date is None or listing_type.time_mode == ListingType.TimeMode.NONE:
            return attrs

        if listing_type.time_mode == ListingType.TimeMode.FLEXIBLE:
            if nb_time_units is None:
                raise serializers.ValidationError({"nb_time_units": "Укажите продолжительность брони."})
            try:
                attrs["period"] = build_range_period(start_date, nb_time_units, listing_type)
            except BookingValidationError as exc:
                raise serializers.ValidationError({"nb_time_units": exc.message}) from exc
        else:
            attrs["period"] = BookingPeriod(start_date)
        return attrs
