"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.listings.models import Listing, ListingAvailability, ListingType
from apps.users.models import CustomUser


def midnight_in(days: int) -> datetime:
    today = timezone.now().replace(hour=0, minute=0, second=0, microsecond=0)
    return today + timedelta(days=days)


class BookingAPITests(APITestCase):
    """Covers создание, конфликты, подтверждение и отмену бронирований."""

    def setUp(self) -> None:
        self.taker = CustomUser.objects.create_user(
            email="taker@example.com",
            password="TakerPass123",
            role=CustomUser.RoleChoices.GUEST,
        )
        self.other_taker = CustomUser.objects.create_user(
            email="second@example.com",
            password="SecondPass123",
        )
        self.owner = CustomUser.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=CustomUser.RoleChoices.OWNER,
        )
        self.daily = ListingType.objects.create(
            name="Посуточно",
            time_mode=ListingType.TimeMode.FLEXIBLE,
            availability_mode=ListingType.AvailabilityMode.UNIQUE,
            time_unit=ListingType.TimeUnit.DAY,
            min_duration=1,
            max_duration=14,
        )
        self.listing = Listing.objects.create(
            owner=self.owner,
            title="Современная квартира",
            description="Просторная квартира в центре города.",
            quantity=1,
            validated=True,
        )
        self.listing.listing_types.add(self.daily)
        self.client.force_authenticate(self.taker)
        self.list_url = reverse("booking-list")

    def _payload(self, start: datetime, nb_time_units: int, **extra) -> dict:
        payload = {
            "listing": self.listing.id,
            "listing_type": self.daily.id,
            "start_date": start.isoformat(),
            "nb_time_units": nb_time_units,
        }
        payload.update(extra)
        return payload

    def test_taker_can_create_booking(self) -> None:
        start = midnight_in(2)

        response = self.client.post(self.list_url, self._payload(start, 3), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        booking = Booking.objects.get()
        self.assertEqual(booking.taker, self.taker)
        self.assertEqual(booking.owner, self.owner)
        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertEqual(booking.end_date, start + timedelta(days=3))
        self.assertEqual(booking.quantity, 1)
        self.assertIsNotNone(booking.expires_at)
        self.assertEqual(response.data["booking_code"], booking.booking_code)

    def test_auto_acceptance_accepts_immediately(self) -> None:
        self.listing.auto_booking_acceptance = True
        self.listing.save()

        response = self.client.post(self.list_url, self._payload(midnight_in(2), 1), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        booking = Booking.objects.get()
        self.assertEqual(booking.status, Booking.Status.ACCEPTED)
        self.assertIsNotNone(booking.accepted_date)
        self.assertIsNone(booking.expires_at)

    def test_prevent_double_booking_on_overlap(self) -> None:
        start = midnight_in(3)
        first = self.client.post(self.list_url, self._payload(start, 2), format="json")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)

        self.client.force_authenticate(self.other_taker)
        conflict = self.client.post(self.list_url, self._payload(start + timedelta(days=1), 2), format="json")

        self.assertEqual(conflict.status_code, status.HTTP_400_BAD_REQUEST, conflict.data)
        self.assertIn("Объект недоступен", conflict.data["detail"])
        self.assertEqual(Booking.objects.count(), 1)

    def test_back_to_back_bookings_are_allowed(self) -> None:
        start = midnight_in(3)
        first = self.client.post(self.list_url, self._payload(start, 2), format="json")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)

        second = self.client.post(self.list_url, self._payload(start + timedelta(days=2), 2), format="json")

        self.assertEqual(second.status_code, status.HTTP_201_CREATED, second.data)
        self.assertEqual(Booking.objects.count(), 2)

    def test_cancelled_booking_frees_dates(self) -> None:
        start = midnight_in(3)
        first = self.client.post(self.list_url, self._payload(start, 2), format="json")
        cancel_url = reverse("booking-cancel", args=[first.data["id"]])
        self.client.post(cancel_url, {"reason": "Изменились планы"}, format="json")

        again = self.client.post(self.list_url, self._payload(start, 2), format="json")

        self.assertEqual(again.status_code, status.HTTP_201_CREATED, again.data)

    def test_owner_blocked_period_prevents_booking(self) -> None:
        self.daily.time_availability = ListingType.TimeAvailability.UNAVAILABLE
        self.daily.save()
        blocked_start = midnight_in(5)
        ListingAvailability.objects.create(
            listing=self.listing,
            type=ListingAvailability.Type.PERIOD,
            start_date=blocked_start,
            end_date=blocked_start + timedelta(days=2),
            available=False,
            quantity=1,
        )

        response = self.client.post(self.list_url, self._payload(blocked_start, 2), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertIn("Объект недоступен", response.data["detail"])

    def test_quantity_above_unique_stock_is_rejected(self) -> None:
        response = self.client.post(
            self.list_url,
            self._payload(midnight_in(2), 1, quantity=2),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertFalse(Booking.objects.exists())

    def test_invalid_dates_return_every_error(self) -> None:
        yesterday = midnight_in(-1)

        response = self.client.post(self.list_url, self._payload(yesterday, 30), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(len(response.data["errors"]), 2)

    def test_oversized_duration_is_rejected(self) -> None:
        self.daily.max_duration = None
        self.daily.save()

        response = self.client.post(self.list_url, self._payload(midnight_in(2), 10**9), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertIn("nb_time_units", response.data)
        self.assertFalse(Booking.objects.exists())

    def test_owner_cannot_book_own_listing(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(self.list_url, self._payload(midnight_in(2), 1), format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, response.data)

    def test_unknown_listing_returns_404(self) -> None:
        payload = self._payload(midnight_in(2), 1)
        payload["listing"] = self.listing.id + 1000

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)

    def test_unvalidated_listing_is_rejected(self) -> None:
        self.listing.validated = False
        self.listing.save()

        response = self.client.post(self.list_url, self._payload(midnight_in(2), 1), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_anonymous_user_cannot_book(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.post(self.list_url, self._payload(midnight_in(2), 1), format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_predefined_date_booking(self) -> None:
        concert = ListingType.objects.create(
            name="Концерт",
            time_mode=ListingType.TimeMode.PREDEFINED,
            availability_mode=ListingType.AvailabilityMode.STOCK,
        )
        self.listing.listing_types.add(concert)
        self.listing.quantity = 3
        self.listing.save()
        show = midnight_in(10) + timedelta(hours=19)
        ListingAvailability.objects.create(
            listing=self.listing,
            type=ListingAvailability.Type.DATE,
            start_date=show,
            quantity=3,
        )
        payload = {
            "listing": self.listing.id,
            "listing_type": concert.id,
            "start_date": show.isoformat(),
            "quantity": 2,
        }

        created = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        booking = Booking.objects.get()
        self.assertIsNone(booking.end_date)
        self.assertIsNone(booking.nb_time_units)
        self.assertEqual(booking.quantity, 2)

        self.client.force_authenticate(self.other_taker)
        sold_out = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(sold_out.status_code, status.HTTP_400_BAD_REQUEST, sold_out.data)

        payload["start_date"] = (show + timedelta(days=1)).isoformat()
        undeclared = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(undeclared.status_code, status.HTTP_400_BAD_REQUEST, undeclared.data)
        self.assertIn("предопределённых", undeclared.data["detail"])

    def test_taker_can_cancel_booking(self) -> None:
        response = self.client.post(self.list_url, self._payload(midnight_in(3), 2), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

        cancel_url = reverse("booking-cancel", args=[response.data["id"]])
        cancel_response = self.client.post(cancel_url, {"reason": "Изменились планы"}, format="json")

        self.assertEqual(cancel_response.status_code, status.HTTP_200_OK, cancel_response.data)
        booking = Booking.objects.get(pk=response.data["id"])
        self.assertEqual(booking.status, Booking.Status.CANCELLED)
        self.assertEqual(booking.cancellation_source, Booking.CancellationSource.TAKER)
        self.assertEqual(booking.cancellation_reason, "Изменились планы")

        repeat = self.client.post(cancel_url, {}, format="json")
        self.assertEqual(repeat.status_code, status.HTTP_400_BAD_REQUEST, repeat.data)

    def test_owner_accepts_pending_booking(self) -> None:
        response = self.client.post(self.list_url, self._payload(midnight_in(3), 2), format="json")
        accept_url = reverse("booking-accept", args=[response.data["id"]])

        taker_attempt = self.client.post(accept_url, format="json")
        self.assertEqual(taker_attempt.status_code, status.HTTP_403_FORBIDDEN, taker_attempt.data)

        self.client.force_authenticate(self.owner)
        accepted = self.client.post(accept_url, format="json")

        self.assertEqual(accepted.status_code, status.HTTP_200_OK, accepted.data)
        booking = Booking.objects.get(pk=response.data["id"])
        self.assertEqual(booking.status, Booking.Status.ACCEPTED)
        self.assertIsNone(booking.expires_at)

    def test_owner_can_cancel_booking(self) -> None:
        response = self.client.post(self.list_url, self._payload(midnight_in(3), 2), format="json")

        self.client.force_authenticate(self.owner)
        cancel_url = reverse("booking-cancel", args=[response.data["id"]])
        cancel_response = self.client.post(cancel_url, {}, format="json")

        self.assertEqual(cancel_response.status_code, status.HTTP_200_OK, cancel_response.data)
        booking = Booking.objects.get(pk=response.data["id"])
        self.assertEqual(booking.cancellation_source, Booking.CancellationSource.OWNER)

    def test_list_shows_only_own_bookings(self) -> None:
        mine = self.client.post(self.list_url, self._payload(midnight_in(2), 1), format="json")
        self.client.force_authenticate(self.other_taker)
        self.client.post(self.list_url, self._payload(midnight_in(5), 1), format="json")

        self.client.force_authenticate(self.taker)
        taker_list = self.client.get(self.list_url)
        self.assertEqual(taker_list.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in taker_list.data], [mine.data["id"]])

        self.client.force_authenticate(self.owner)
        owner_list = self.client.get(self.list_url)
        self.assertEqual(len(owner_list.data), 2)

        self.client.force_authenticate(self.other_taker)
        detail = self.client.get(reverse("booking-detail", args=[mine.data["id"]]))
        self.assertEqual(detail.status_code, status.HTTP_404_NOT_FOUND)
