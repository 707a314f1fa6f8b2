from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import (
    AttendanceViewSet,
    BookingViewSet,
    BranchViewSet,
    CouponViewSet,
    ServiceViewSet,
    SiteSettingsView,
    StaffViewSet,
    health,
)

router = DefaultRouter()
router.register(r"bookings", BookingViewSet, basename="bookings")
router.register(r"services", ServiceViewSet, basename="services")
router.register(r"staff", StaffViewSet, basename="staff")
router.register(r"branches", BranchViewSet, basename="branches")
router.register(r"coupons", CouponViewSet, basename="coupons")
router.register(r"attendance", AttendanceViewSet, basename="attendance")

urlpatterns = [
    *router.urls,
    path("settings/", SiteSettingsView.as_view(), name="settings"),
    path("health/", health, name="health"),
]
