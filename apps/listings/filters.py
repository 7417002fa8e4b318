"""FilterSet definitions for listings and their availability windows."""

from __future__ import annotations

import django_filters  # type: ignore
from django.db.models import Q  # type: ignore

from .models import Listing, ListingAvailability


class ListingFilterSet(django_filters.FilterSet):
    """FilterSet for Listing used by the public list endpoint."""

    owner = django_filters.NumberFilter(field_name="owner_id", lookup_expr="exact")
    listing_type = django_filters.NumberFilter(field_name="listing_types__id", lookup_expr="exact", distinct=True)
    quantity_min = django_filters.NumberFilter(field_name="quantity", lookup_expr="gte")

    class Meta:
        model = Listing
        fields = ["owner", "listing_type"]


class ListingAvailabilityFilterSet(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(field_name="type", choices=ListingAvailability.Type.choices)
    available = django_filters.BooleanFilter(field_name="available")
    # Windows ending after / starting before the given instants
    start = django_filters.IsoDateTimeFilter(method="filter_start")
    end = django_filters.IsoDateTimeFilter(field_name="start_date", lookup_expr="lte")

    class Meta:
        model = ListingAvailability
        fields = ["type", "available"]

    def filter_start(self, queryset, name, value):  # type: ignore
        return queryset.filter(
            Q(end_date__gte=value)
            | Q(end_date__isnull=True, start_date__gte=value)
        )
