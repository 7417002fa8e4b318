"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "listing",
        "listing_type",
        "taker",
        "status",
        "quantity",
        "start_date",
        "end_date",
        "created_at",
    )
    list_filter = ("status", "listing_type", "auto_acceptance", "start_date")
    search_fields = ("booking_code", "listing__title", "taker__email", "owner__email")
    readonly_fields = (
        "booking_code",
        "accepted_date",
        "expires_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    )
