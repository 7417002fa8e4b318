"""Admin registrations for listings domain."""

from __future__ import annotations

from django.contrib import admin

from .models import Listing, ListingAvailability, ListingType


class ListingAvailabilityInline(admin.TabularInline):
    model = ListingAvailability
    extra = 0
    fields = ("type", "start_date", "end_date", "available", "quantity")


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "owner",
        "quantity",
        "validated",
        "locked",
        "auto_booking_acceptance",
        "created_at",
    )
    list_filter = ("validated", "locked", "auto_booking_acceptance", "listing_types")
    search_fields = ("title", "owner__email")
    inlines = (ListingAvailabilityInline,)
    filter_horizontal = ("listing_types",)
    readonly_fields = ("created_at", "updated_at")


@admin.register(ListingType)
class ListingTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "time_mode", "availability_mode", "time_availability", "time_unit", "is_active")
    list_filter = ("time_mode", "availability_mode", "time_availability", "is_active")
    search_fields = ("name",)


@admin.register(ListingAvailability)
class ListingAvailabilityAdmin(admin.ModelAdmin):
    list_display = ("listing", "type", "start_date", "end_date", "available", "quantity")
    list_filter = ("type", "available")
    search_fields = ("listing__title",)
