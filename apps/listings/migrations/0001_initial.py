import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ListingType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                (
                    "time_mode",
                    models.CharField(
                        choices=[
                            ("none", "Без дат"),
                            ("flexible", "Произвольный период"),
                            ("predefined", "Предопределённые даты"),
                        ],
                        default="flexible",
                        max_length=20,
                    ),
                ),
                (
                    "availability_mode",
                    models.CharField(
                        choices=[
                            ("none", "Без ограничений"),
                            ("unique", "Единственный экземпляр"),
                            ("stock", "Склад (несколько единиц)"),
                        ],
                        default="stock",
                        max_length=20,
                    ),
                ),
                (
                    "time_availability",
                    models.CharField(
                        choices=[
                            ("none", "Без календаря владельца"),
                            ("available", "Доступно по умолчанию"),
                            ("unavailable", "Недоступно по умолчанию"),
                        ],
                        default="none",
                        max_length=20,
                    ),
                ),
                (
                    "time_unit",
                    models.CharField(choices=[("day", "День"), ("hour", "Час")], default="day", max_length=10),
                ),
                (
                    "min_duration",
                    models.PositiveSmallIntegerField(
                        blank=True, help_text="Минимальное количество единиц времени в брони.", null=True
                    ),
                ),
                (
                    "max_duration",
                    models.PositiveSmallIntegerField(
                        blank=True, help_text="Максимальное количество единиц времени в брони.", null=True
                    ),
                ),
                (
                    "start_date_min_delta",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="За сколько дней минимум нужно бронировать (0 — с сегодняшнего дня).",
                    ),
                ),
                (
                    "start_date_max_delta",
                    models.PositiveSmallIntegerField(
                        blank=True, help_text="На сколько дней вперёд можно бронировать.", null=True
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name": "Тип объявления",
                "verbose_name_plural": "Типы объявлений",
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(min_duration__isnull=True)
                            | models.Q(max_duration__isnull=True)
                            | models.Q(max_duration__gte=models.F("min_duration"))
                        ),
                        name="listing_type_min_max_duration_valid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Listing",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        default=1, help_text="Сколько единиц можно забронировать одновременно."
                    ),
                ),
                (
                    "validated",
                    models.BooleanField(default=False, help_text="Объявление проверено администратором."),
                ),
                ("locked", models.BooleanField(default=False)),
                ("auto_booking_acceptance", models.BooleanField(default=False)),
                (
                    "recurring_dates_pattern",
                    models.TextField(
                        blank=True, help_text="Правило повторения дат в формате RFC 5545 (DTSTART + RRULE)."
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "listing_types",
                    models.ManyToManyField(blank=True, related_name="listings", to="listings.listingtype"),
                ),
            ],
            options={
                "verbose_name": "Объявление",
                "verbose_name_plural": "Объявления",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["owner", "validated"], name="listing_owner_validated_idx")],
            },
        ),
        migrations.CreateModel(
            name="ListingAvailability",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[("period", "Период"), ("date", "Дата")], default="period", max_length=10
                    ),
                ),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                (
                    "available",
                    models.BooleanField(
                        default=True, help_text="True освобождает единицы на период, False блокирует их."
                    ),
                ),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_listing_availabilities",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="availabilities",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Доступность объявления",
                "verbose_name_plural": "Доступность объявлений",
                "ordering": ["start_date"],
                "indexes": [
                    models.Index(fields=["listing", "type", "start_date"], name="listing_avail_lookup_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(type="date", end_date__isnull=True)
                            | models.Q(type="period", end_date__gt=models.F("start_date"))
                        ),
                        name="listing_availability_valid_dates",
                    ),
                ],
            },
        ),
    ]
