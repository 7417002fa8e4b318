import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("listings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_code", models.CharField(editable=False, max_length=12, unique=True)),
                ("start_date", models.DateTimeField(blank=True, null=True)),
                (
                    "end_date",
                    models.DateTimeField(
                        blank=True, help_text="Пусто для брони на предопределённую дату.", null=True
                    ),
                ),
                ("nb_time_units", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("time_unit", models.CharField(blank=True, max_length=10)),
                ("quantity", models.PositiveIntegerField(default=1)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Ожидает подтверждения владельцем"),
                            ("accepted", "Подтверждено"),
                            ("cancelled", "Отменено"),
                            ("expired", "Истекло"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("auto_acceptance", models.BooleanField(default=False)),
                ("accepted_date", models.DateTimeField(blank=True, null=True)),
                (
                    "expires_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Время, после которого неподтверждённая бронь истекает.",
                        null=True,
                    ),
                ),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "cancellation_source",
                    models.CharField(
                        blank=True,
                        choices=[("taker", "Арендатор"), ("owner", "Владелец"), ("system", "Система")],
                        max_length=20,
                    ),
                ),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to="listings.listing",
                    ),
                ),
                (
                    "listing_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="listings.listingtype",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="owned_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "taker",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Бронирование",
                "verbose_name_plural": "Бронирования",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["listing", "status", "start_date"], name="booking_listing_status_idx"),
                    models.Index(fields=["status", "expires_at"], name="booking_status_expires_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_date__isnull=True) | models.Q(end_date__gt=models.F("start_date")),
                        name="booking_valid_dates",
                    ),
                ],
            },
        ),
    ]
