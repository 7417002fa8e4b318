"""Booking domain models for the rental marketplace."""

from __future__ import annotations

import secrets

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


# Upper bound of Booking.nb_time_units (PositiveSmallIntegerField)
MAX_TIME_UNITS = 32767


class Booking(models.Model):
    """Бронирование объявления арендатором."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Ожидает подтверждения владельцем")
        ACCEPTED = "accepted", _("Подтверждено")
        CANCELLED = "cancelled", _("Отменено")
        EXPIRED = "expired", _("Истекло")

    # Брони в этих статусах занимают единицы объявления
    ACTIVE_STATUSES = (Status.PENDING, Status.ACCEPTED)

    class CancellationSource(models.TextChoices):
        TAKER = "taker", _("Арендатор")
        OWNER = "owner", _("Владелец")
        SYSTEM = "system", _("Система")

    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    listing_type = models.ForeignKey(
        "listings.ListingType",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owned_bookings",
    )
    taker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Пусто для брони на предопределённую дату."),
    )
    nb_time_units = models.PositiveSmallIntegerField(null=True, blank=True)
    time_unit = models.CharField(max_length=10, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    auto_acceptance = models.BooleanField(default=False)
    accepted_date = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Время, после которого неподтверждённая бронь истекает."),
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_source = models.CharField(
        max_length=20,
        choices=CancellationSource.choices,
        blank=True,
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Бронирование")
        verbose_name_plural = _("Бронирования")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__isnull=True) | models.Q(end_date__gt=models.F("start_date")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["listing", "status", "start_date"], name="booking_listing_status_idx"),
            models.Index(fields=["status", "expires_at"], name="booking_status_expires_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} for {self.listing_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_code:
            self.booking_code = self.generate_booking_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(4).upper()

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    def mark_accepted(self, accepted_at=None) -> None:
        self.status = self.Status.ACCEPTED
        self.accepted_date = accepted_at or timezone.now()
        self.expires_at = None
        self.save(update_fields=["status", "accepted_date", "expires_at", "updated_at"])

    def mark_cancelled(self, source: str, reason: str = "") -> None:
        self.status = self.Status.CANCELLED
        self.cancellation_source = source
        self.cancellation_reason = reason
        self.cancelled_at = timezone.now()
        self.save(
            update_fields=["status", "cancellation_source", "cancellation_reason", "cancelled_at", "updated_at"]
        )

    def mark_expired(self, now=None) -> None:
        self.status = self.Status.EXPIRED
        self.cancellation_source = self.CancellationSource.SYSTEM
        self.cancellation_reason = "Время ожидания подтверждения истекло"
        self.cancelled_at = now or timezone.now()
        self.save(
            update_fields=["status", "cancellation_source", "cancellation_reason", "cancelled_at", "updated_at"]
        )

    def should_expire(self, now=None) -> bool:
        now = now or timezone.now()
        return bool(self.expires_at and now >= self.expires_at and self.status == self.Status.PENDING)
