"""URL routing for the listings domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import ListingAvailabilityViewSet, ListingTypeViewSet, ListingViewSet

router = SimpleRouter()
router.register(r"types", ListingTypeViewSet, basename="listing-type")
router.register(r"", ListingViewSet, basename="listing")

availability_list = ListingAvailabilityViewSet.as_view({"get": "list", "post": "create"})
availability_detail = ListingAvailabilityViewSet.as_view(
    {"patch": "partial_update", "put": "update", "delete": "destroy", "get": "retrieve"}
)

urlpatterns = [
    # Owner-declared availability
    path(
        "<int:listing_id>/availabilities/",
        availability_list,
        name="listing-availability-list",
    ),
    path(
        "<int:listing_id>/availabilities/<int:pk>/",
        availability_detail,
        name="listing-availability-detail",
    ),
    path("", include(router.urls)),
]
