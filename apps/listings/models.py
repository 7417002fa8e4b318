"""Listing domain models for the rental marketplace.

Объявления (listings), типы объявлений, определяющие режим времени и
правила доступности, и заявленные владельцем периоды/даты доступности.
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ListingType(models.Model):
    """Тип объявления: режим бронирования по времени и правила количества."""

    class TimeMode(models.TextChoices):
        NONE = "none", _("Без дат")
        FLEXIBLE = "flexible", _("Произвольный период")
        PREDEFINED = "predefined", _("Предопределённые даты")

    class AvailabilityMode(models.TextChoices):
        NONE = "none", _("Без ограничений")
        UNIQUE = "unique", _("Единственный экземпляр")
        STOCK = "stock", _("Склад (несколько единиц)")

    class TimeAvailability(models.TextChoices):
        NONE = "none", _("Без календаря владельца")
        AVAILABLE = "available", _("Доступно по умолчанию")
        UNAVAILABLE = "unavailable", _("Недоступно по умолчанию")

    class TimeUnit(models.TextChoices):
        DAY = "day", _("День")
        HOUR = "hour", _("Час")

    name = models.CharField(max_length=100, unique=True)
    time_mode = models.CharField(max_length=20, choices=TimeMode.choices, default=TimeMode.FLEXIBLE)
    availability_mode = models.CharField(
        max_length=20,
        choices=AvailabilityMode.choices,
        default=AvailabilityMode.STOCK,
    )
    time_availability = models.CharField(
        max_length=20,
        choices=TimeAvailability.choices,
        default=TimeAvailability.NONE,
    )
    time_unit = models.CharField(max_length=10, choices=TimeUnit.choices, default=TimeUnit.DAY)
    min_duration = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text=_("Минимальное количество единиц времени в брони."),
    )
    max_duration = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text=_("Максимальное количество единиц времени в брони."),
    )
    start_date_min_delta = models.PositiveSmallIntegerField(
        default=0,
        help_text=_("За сколько дней минимум нужно бронировать (0 — с сегодняшнего дня)."),
    )
    start_date_max_delta = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text=_("На сколько дней вперёд можно бронировать."),
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Тип объявления")
        verbose_name_plural = _("Типы объявлений")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(min_duration__isnull=True)
                    | models.Q(max_duration__isnull=True)
                    | models.Q(max_duration__gte=models.F("min_duration"))
                ),
                name="listing_type_min_max_duration_valid",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    @property
    def time_unit_delta(self) -> timedelta:
        if self.time_unit == self.TimeUnit.HOUR:
            return timedelta(hours=1)
        return timedelta(days=1)


class Listing(models.Model):
    """Объявление: сдаваемый в аренду объект или партия одинаковых объектов."""

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    listing_types = models.ManyToManyField(ListingType, blank=True, related_name="listings")
    quantity = models.PositiveIntegerField(
        default=1,
        help_text=_("Сколько единиц можно забронировать одновременно."),
    )
    validated = models.BooleanField(
        default=False,
        help_text=_("Объявление проверено администратором."),
    )
    locked = models.BooleanField(default=False)
    auto_booking_acceptance = models.BooleanField(default=False)
    recurring_dates_pattern = models.TextField(
        blank=True,
        help_text=_("Правило повторения дат в формате RFC 5545 (DTSTART + RRULE)."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Объявление")
        verbose_name_plural = _("Объявления")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "validated"], name="listing_owner_validated_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    def is_bookable(self) -> bool:
        return not self.locked and self.quantity > 0

    def get_max_quantity(self, listing_type: ListingType) -> int | None:
        """Потолок одновременно бронируемых единиц, None означает отсутствие ограничений."""
        if listing_type.availability_mode == ListingType.AvailabilityMode.NONE:
            return None
        if listing_type.availability_mode == ListingType.AvailabilityMode.UNIQUE:
            return 1
        return self.quantity


class ListingAvailability(models.Model):
    """Заявленная владельцем доступность: период или отдельная дата."""

    class Type(models.TextChoices):
        PERIOD = "period", _("Период")
        DATE = "date", _("Дата")

    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name="availabilities",
    )
    type = models.CharField(max_length=10, choices=Type.choices, default=Type.PERIOD)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField(null=True, blank=True)
    available = models.BooleanField(
        default=True,
        help_text=_("True освобождает единицы на период, False блокирует их."),
    )
    quantity = models.PositiveIntegerField(default=1)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_listing_availabilities",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Доступность объявления")
        verbose_name_plural = _("Доступность объявлений")
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(type="date", end_date__isnull=True)
                    | models.Q(type="period", end_date__gt=models.F("start_date"))
                ),
                name="listing_availability_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["listing", "type", "start_date"], name="listing_avail_lookup_idx"),
        ]

    def __str__(self) -> str:
        if self.end_date is None:
            return f"{self.listing.title}: {self.start_date:%d.%m.%Y}"
        return f"{self.listing.title}: {self.start_date:%d.%m.%Y} — {self.end_date:%d.%m.%Y}"
