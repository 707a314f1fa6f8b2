import threading
import time
from datetime import datetime, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, TransactionTestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.request import Request
from rest_framework.test import APIClient, APIRequestFactory

from .dates import parse_day
from .events import booking_created
from .models import (
    Attendance,
    AttendanceStatus,
    Booking,
    BookingStatus,
    Branch,
    Coupon,
    DiscountType,
    Lifecycle,
    PriceType,
    Service,
    SiteSettings,
    Staff,
)
from .services import absent_staff_ids, resolve_service, upsert_attendance, validate_coupon
from .throttles import BookingRateThrottle, ReportsRateThrottle
from .whatsapp import format_booking_message, whatsapp_link


def make_coupon(**overrides):
    now = timezone.now()
    data = {
        "code": "SAVE20",
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": Decimal("20"),
        "valid_from": now - timedelta(days=1),
        "valid_to": now + timedelta(days=1),
    }
    data.update(overrides)
    return Coupon.objects.create(**data)


def make_staff(name, branch="Indiranagar", categories=None, **extra):
    return Staff.objects.create(
        name=name,
        role="Stylist",
        branch=branch,
        categories=categories or ["Haircare"],
        **extra,
    )


class PublicAPITestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()


class AdminAPITestCase(PublicAPITestCase):
    def setUp(self):
        super().setUp()
        user_model = get_user_model()
        self.admin = user_model.objects.create_user(
            username="front-desk",
            password="pass1234",
            is_staff=True,
        )
        self.client.force_authenticate(self.admin)


class CouponEngineTests(TestCase):
    def test_valid_inside_window(self):
        coupon = make_coupon()
        self.assertTrue(coupon.is_valid())

    def test_invalid_before_valid_from(self):
        now = timezone.now()
        coupon = make_coupon(valid_from=now + timedelta(hours=1), valid_to=now + timedelta(days=2))
        self.assertFalse(coupon.is_valid())

    def test_invalid_after_valid_to(self):
        now = timezone.now()
        coupon = make_coupon(valid_from=now - timedelta(days=3), valid_to=now - timedelta(days=1))
        self.assertFalse(coupon.is_valid())

    def test_invalid_when_inactive(self):
        coupon = make_coupon(is_active=False)
        self.assertFalse(coupon.is_valid())

    def test_usage_cap(self):
        coupon = make_coupon(max_uses=2, used_count=2)
        self.assertFalse(coupon.is_valid())
        coupon.used_count = 1
        self.assertTrue(coupon.is_valid())

    def test_unlimited_when_no_cap(self):
        coupon = make_coupon(max_uses=None, used_count=500)
        self.assertTrue(coupon.is_valid())

    def test_percentage_discount(self):
        coupon = make_coupon()
        self.assertEqual(coupon.calculate_discount(1000), Decimal("200"))

    def test_fixed_discount_is_capped_at_price(self):
        coupon = make_coupon(code="FLAT500", discount_type=DiscountType.FIXED, discount_value=Decimal("500"))
        self.assertEqual(coupon.calculate_discount(300), Decimal("300"))
        self.assertEqual(coupon.calculate_discount(800), Decimal("500"))

    def test_invalid_coupon_gives_no_discount(self):
        coupon = make_coupon(is_active=False)
        self.assertEqual(coupon.calculate_discount(1000), Decimal("0"))

    def test_code_is_stored_uppercase(self):
        coupon = make_coupon(code=" summer10 ")
        self.assertEqual(coupon.code, "SUMMER10")

    def test_validate_coupon_normalises_code(self):
        make_coupon()
        result = validate_coupon("save20", 1000)
        self.assertTrue(result["valid"])
        self.assertEqual(result["discount"], Decimal("200"))
        self.assertEqual(result["finalPrice"], Decimal("800"))


class ServiceCatalogTests(TestCase):
    def test_category_resolves_to_fixed_price_service(self):
        Service.objects.create(
            category="Haircare",
            name="Classic Cut",
            price_type=PriceType.FIXED,
            price_amount=Decimal("500"),
        )
        resolved = resolve_service("Haircare")
        self.assertEqual(resolved.name, "Classic Cut")
        self.assertEqual(resolved.amount, 50000)

    def test_first_match_is_by_name(self):
        Service.objects.create(category="Haircare", name="Trim", price_type=PriceType.FIXED, price_amount=Decimal("200"))
        Service.objects.create(category="Haircare", name="Blow Dry", price_type=PriceType.FIXED, price_amount=Decimal("300"))
        resolved = resolve_service("Haircare")
        self.assertEqual(resolved.name, "Blow Dry")
        self.assertEqual(resolved.amount, 30000)

    def test_inactive_services_are_skipped(self):
        Service.objects.create(
            category="Haircare",
            name="Classic Cut",
            price_type=PriceType.FIXED,
            price_amount=Decimal("500"),
            is_active=False,
        )
        resolved = resolve_service("Haircare")
        self.assertIsNone(resolved.service)
        self.assertEqual(resolved.name, "Haircare")
        self.assertEqual(resolved.amount, 0)

    def test_unknown_sub_service_keeps_requested_name(self):
        Service.objects.create(category="Skincare", name="Facial")
        resolved = resolve_service("Skincare", "Gold Facial")
        self.assertIsNone(resolved.service)
        self.assertEqual(resolved.name, "Gold Facial")
        self.assertEqual(resolved.amount, 0)

    def test_varies_price_is_quoted_later(self):
        Service.objects.create(category="Skincare", name="Facial", price_type=PriceType.VARIES)
        resolved = resolve_service("Skincare", "Facial")
        self.assertEqual(resolved.name, "Facial")
        self.assertEqual(resolved.amount, 0)

    def test_fixed_price_requires_amount(self):
        with self.assertRaises(ValidationError):
            Service.objects.create(category="Haircare", name="Cut", price_type=PriceType.FIXED)

    def test_lifecycle_follows_active_flag(self):
        service = Service.objects.create(category="Haircare", name="Cut")
        self.assertEqual(service.lifecycle, Lifecycle.ACTIVE)
        service.deactivate()
        service.refresh_from_db()
        self.assertEqual(service.lifecycle, Lifecycle.INACTIVE)


class BookingCreateApiTests(PublicAPITestCase):
    def setUp(self):
        super().setUp()
        Service.objects.create(
            category="Haircare",
            name="Classic Cut",
            price_type=PriceType.FIXED,
            price_amount=Decimal("500"),
        )
        self.payload = {
            "name": "Asha",
            "phone": "9876543210",
            "branch": "Indiranagar",
            "service": "Haircare",
            "date": "2025-03-05T10:00:00",
        }

    def test_create_resolves_service_and_amount(self):
        response = self.client.post(reverse("bookings-list"), data=self.payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["service"], "Classic Cut")
        self.assertEqual(response.data["serviceCategory"], "Haircare")
        self.assertEqual(response.data["subService"], "")
        self.assertEqual(response.data["amount"], 50000)
        self.assertEqual(response.data["status"], BookingStatus.PENDING)

    def test_client_amount_is_ignored(self):
        response = self.client.post(
            reverse("bookings-list"),
            data={**self.payload, "amount": 1, "couponCode": "SAVE20"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Booking.objects.get().amount, 50000)

    def test_sub_service_without_match_is_stored_verbatim(self):
        response = self.client.post(
            reverse("bookings-list"),
            data={**self.payload, "subService": "Keratin"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["service"], "Keratin")
        self.assertEqual(response.data["subService"], "Keratin")
        self.assertEqual(response.data["amount"], 0)

    def test_missing_service_is_rejected(self):
        payload = dict(self.payload)
        payload.pop("service")
        response = self.client.post(reverse("bookings-list"), data=payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Service is required")
        self.assertFalse(Booking.objects.exists())

    def test_new_booking_is_broadcast_after_commit(self):
        received = []
        delivered = threading.Event()

        def listener(sender, booking, **kwargs):
            received.append(booking.pk)
            delivered.set()

        booking_created.connect(listener, weak=False)
        self.addCleanup(booking_created.disconnect, listener)

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            response = self.client.post(reverse("bookings-list"), data=self.payload, format="json")
        self.assertFalse(delivered.is_set())

        for callback in callbacks:
            callback()
        self.assertTrue(delivered.wait(timeout=5))
        self.assertEqual(received, [response.data["id"]])

    def test_failing_listener_does_not_affect_response(self):
        def listener(sender, booking, **kwargs):
            raise RuntimeError("dashboard offline")

        booking_created.connect(listener, weak=False)
        self.addCleanup(booking_created.disconnect, listener)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(reverse("bookings-list"), data=self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Booking.objects.count(), 1)

    def test_listing_requires_admin(self):
        response = self.client.get(reverse("bookings-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn("message", response.data)


class BookingBroadcastTimingTests(TransactionTestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.payload = {
            "name": "Asha",
            "phone": "9876543210",
            "branch": "Indiranagar",
            "service": "Haircare",
            "date": "2025-03-05T10:00:00",
        }

    def test_slow_listener_does_not_delay_response(self):
        release = threading.Event()
        finished = threading.Event()

        def listener(sender, booking, **kwargs):
            release.wait(timeout=5)
            finished.set()

        booking_created.connect(listener, weak=False)
        self.addCleanup(booking_created.disconnect, listener)

        started = time.monotonic()
        response = self.client.post(reverse("bookings-list"), data=self.payload, format="json")
        elapsed = time.monotonic() - started

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertLess(elapsed, 1)
        self.assertFalse(finished.is_set())

        release.set()
        self.assertTrue(finished.wait(timeout=5))


class BookingAdminApiTests(AdminAPITestCase):
    def setUp(self):
        super().setUp()
        local = timezone.get_current_timezone()
        self.first = Booking.objects.create(
            name="Asha",
            phone="9876543210",
            branch="Indiranagar",
            service="Classic Cut",
            service_category="Haircare",
            date=datetime(2025, 3, 5, 10, 0, tzinfo=local),
            amount=50000,
        )
        self.second = Booking.objects.create(
            name="Ravi",
            phone="9000000000",
            branch="Koramangala",
            service="Facial",
            service_category="Skincare",
            date=datetime(2025, 3, 9, 18, 0, tzinfo=local),
            status=BookingStatus.CONFIRMED,
        )
        Branch.objects.create(name="Indiranagar", whatsapp_number="919876500000")

    def test_list_filters(self):
        response = self.client.get(reverse("bookings-list"), data={"branch": "Koramangala"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b["id"] for b in response.data], [self.second.id])

        response = self.client.get(reverse("bookings-list"), data={"status": "pending"})
        self.assertEqual([b["id"] for b in response.data], [self.first.id])

    def test_list_date_range_is_inclusive_of_whole_days(self):
        response = self.client.get(
            reverse("bookings-list"),
            data={"startDate": "2025-03-05", "endDate": "2025-03-05"},
        )
        self.assertEqual([b["id"] for b in response.data], [self.first.id])

    def test_list_rejects_bad_dates(self):
        response = self.client.get(reverse("bookings-list"), data={"startDate": "not-a-date"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_status_transition(self):
        response = self.client.patch(
            reverse("bookings-detail", kwargs={"pk": self.second.id}),
            data={"status": "pending"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.second.refresh_from_db()
        self.assertEqual(self.second.status, BookingStatus.PENDING)

    def test_patch_rejects_unknown_status(self):
        response = self.client.patch(
            reverse("bookings-detail", kwargs={"pk": self.first.id}),
            data={"status": "archived"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("message", response.data)

    def test_retrieve_missing_booking(self):
        response = self.client.get(reverse("bookings-detail", kwargs={"pk": 9999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "Booking not found")

    def test_delete(self):
        response = self.client.delete(reverse("bookings-detail", kwargs={"pk": self.first.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["message"], "Booking deleted")
        self.assertFalse(Booking.objects.filter(pk=self.first.id).exists())

    def test_analytics(self):
        response = self.client.get(reverse("bookings-analytics"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["totals"], {"total": 2, "pending": 1, "confirmed": 1})
        self.assertEqual(len(response.data["byService"]), 2)
        self.assertEqual(len(response.data["byBranch"]), 2)
        self.assertEqual(sum(row["count"] for row in response.data["overTime"]), 2)

    def test_whatsapp_confirmation_link(self):
        response = self.client.get(reverse("bookings-whatsapp", kwargs={"pk": self.first.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("is confirmed!", response.data["message"])
        self.assertTrue(response.data["whatsappLink"].startswith("https://wa.me/919876500000?text=Hi%20Asha%2C"))

    def test_whatsapp_cancellation_link(self):
        response = self.client.get(
            reverse("bookings-whatsapp", kwargs={"pk": self.first.id}),
            data={"isCancellation": "true"},
        )
        self.assertIn("has been cancelled", response.data["message"])

    def test_whatsapp_requires_known_branch(self):
        response = self.client.get(reverse("bookings-whatsapp", kwargs={"pk": self.second.id}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "Branch not found")

    def test_whatsapp_qr_returns_png(self):
        response = self.client.get(reverse("bookings-whatsapp-qr", kwargs={"pk": self.first.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "image/png")

    def test_non_admin_user_is_forbidden(self):
        user = get_user_model().objects.create_user(username="guest", password="pass1234")
        self.client.force_authenticate(user)
        response = self.client.get(reverse("bookings-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class NotificationFormatterTests(TestCase):
    def make_booking(self, **overrides):
        data = {
            "name": "Asha",
            "phone": "9876543210",
            "branch": "Indiranagar",
            "service": "Classic Cut",
            "service_category": "Haircare",
            "date": datetime(2025, 3, 5, 10, 0, tzinfo=timezone.get_current_timezone()),
        }
        data.update(overrides)
        return Booking(**data)

    def test_confirmation_message(self):
        booking = self.make_booking(sub_service="Classic Cut", expert="Meera")
        message = format_booking_message(booking, "919876500000")
        self.assertIn("Your appointment for Haircare - Classic Cut on 5 Mar 2025 at Indiranagar is confirmed!", message)
        self.assertIn("Expert: Meera", message)

    def test_confirmation_without_expert(self):
        message = format_booking_message(self.make_booking(), "919876500000")
        self.assertNotIn("Expert:", message)
        self.assertIn("for Haircare on 5 Mar 2025", message)

    def test_service_line_falls_back_to_service_name(self):
        booking = self.make_booking(service_category="", sub_service="Fringe")
        message = format_booking_message(booking, "919876500000")
        self.assertIn("for Classic Cut - Fringe on", message)

    def test_cancellation_message(self):
        message = format_booking_message(self.make_booking(), "919876500000", is_cancellation=True)
        self.assertIn("has been cancelled", message)
        self.assertIn("reschedule", message)

    def test_link_encodes_message(self):
        link = whatsapp_link("919876500000", "Hi Asha,\nSee you!")
        self.assertEqual(link, "https://wa.me/919876500000?text=Hi%20Asha%2C%0ASee%20you!")


class AttendanceLedgerTests(TestCase):
    def setUp(self):
        self.staff = make_staff("Meera")

    def test_upsert_is_idempotent_per_day(self):
        upsert_attendance([{"staffId": self.staff.id, "date": "2025-01-10", "status": "present"}])
        upsert_attendance([{"staffId": self.staff.id, "date": "2025-01-10T09:30:00+05:30", "status": "absent"}])
        records = Attendance.objects.filter(staff=self.staff)
        self.assertEqual(records.count(), 1)
        self.assertEqual(records.get().status, AttendanceStatus.ABSENT)

    def test_records_fail_independently(self):
        results, errors = upsert_attendance(
            [
                {"staffId": self.staff.id, "date": "2025-01-10", "status": "late"},
                {"staffId": 9999, "date": "2025-01-10", "status": "present"},
                {"staffId": self.staff.id, "date": "someday", "status": "present"},
                {"staffId": self.staff.id, "date": "2025-01-11", "status": "present"},
            ]
        )
        self.assertEqual(len(results), 1)
        self.assertEqual(len(errors), 3)
        self.assertEqual(errors[0]["error"], 'Status must be "present" or "absent"')

    def test_absent_staff_ids(self):
        other = make_staff("Ravi")
        Attendance.objects.create(staff=self.staff, date=parse_day("2025-01-10"), status=AttendanceStatus.ABSENT)
        Attendance.objects.create(staff=other, date=parse_day("2025-01-10"), status=AttendanceStatus.PRESENT)
        self.assertEqual(absent_staff_ids("2025-01-10"), {self.staff.id})
        self.assertEqual(absent_staff_ids("2025-01-11"), set())


class AttendanceApiTests(AdminAPITestCase):
    def setUp(self):
        super().setUp()
        self.staff = make_staff("Meera")

    def test_bulk_upsert_partial_success(self):
        response = self.client.post(
            reverse("attendance-list"),
            data={
                "records": [
                    {"staffId": self.staff.id, "date": "2025-01-10", "status": "present"},
                    {"staffId": "bad"},
                ]
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["success"], 1)
        self.assertEqual(response.data["failed"], 1)
        self.assertEqual(len(response.data["results"]), 1)
        self.assertEqual(
            response.data["errors"],
            [{"record": {"staffId": "bad"}, "error": "Missing required fields: staffId, date, status"}],
        )

    def test_bulk_upsert_all_failed(self):
        response = self.client.post(
            reverse("attendance-list"),
            data={"records": [{"staffId": self.staff.id}]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "All records failed")
        self.assertEqual(len(response.data["errors"]), 1)

    def test_records_array_required(self):
        response = self.client.post(reverse("attendance-list"), data={"records": []}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Records array is required")

    def test_successful_batch_omits_errors(self):
        response = self.client.post(
            reverse("attendance-list"),
            data={"records": [{"staffId": self.staff.id, "date": "2025-01-10", "status": "absent", "notes": "sick"}]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn("errors", response.data)
        self.assertEqual(response.data["results"][0]["notes"], "sick")

    def test_list_filters(self):
        other = make_staff("Ravi")
        Attendance.objects.create(staff=self.staff, date=parse_day("2025-01-10"), status=AttendanceStatus.ABSENT)
        Attendance.objects.create(staff=other, date=parse_day("2025-01-10"))
        Attendance.objects.create(staff=self.staff, date=parse_day("2025-01-12"))

        response = self.client.get(reverse("attendance-list"), data={"date": "2025-01-10"})
        self.assertEqual(len(response.data), 2)

        response = self.client.get(reverse("attendance-list"), data={"status": "absent"})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["staff"]["name"], "Meera")

        response = self.client.get(
            reverse("attendance-list"),
            data={"staffId": self.staff.id, "startDate": "2025-01-11", "endDate": "2025-01-12"},
        )
        self.assertEqual([r["date"] for r in response.data], ["2025-01-12"])

    def test_by_staff_and_by_date(self):
        Attendance.objects.create(staff=self.staff, date=parse_day("2025-01-10"))
        Attendance.objects.create(staff=self.staff, date=parse_day("2025-01-11"))

        response = self.client.get(reverse("attendance-by-staff", kwargs={"staff_id": self.staff.id}))
        self.assertEqual([r["date"] for r in response.data], ["2025-01-11", "2025-01-10"])

        response = self.client.get(reverse("attendance-by-date", kwargs={"day": "2025-01-11"}))
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["staffId"], self.staff.id)

    def test_delete(self):
        record = Attendance.objects.create(staff=self.staff, date=parse_day("2025-01-10"))
        response = self.client.delete(reverse("attendance-detail", kwargs={"pk": record.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["message"], "Attendance record deleted")

        response = self.client.delete(reverse("attendance-detail", kwargs={"pk": record.id}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "Attendance record not found")


class StaffApiTests(PublicAPITestCase):
    def setUp(self):
        super().setUp()
        self.absent = make_staff("Anu")
        self.unrecorded = make_staff("Bala")
        self.present = make_staff("Chitra")
        self.colourist = make_staff("Dev", branch="Koramangala", categories=["Hair Colour"])
        day = parse_day("2025-01-10")
        Attendance.objects.create(staff=self.absent, date=day, status=AttendanceStatus.ABSENT)
        Attendance.objects.create(staff=self.present, date=day, status=AttendanceStatus.PRESENT)

    def test_exclude_absent_on_date(self):
        response = self.client.get(reverse("staff-list"), data={"excludeAbsentOnDate": "2025-01-10"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = {member["name"] for member in response.data}
        self.assertNotIn("Anu", names)
        self.assertIn("Bala", names)
        self.assertIn("Chitra", names)

    def test_filters_by_branch_and_category(self):
        response = self.client.get(reverse("staff-list"), data={"branch": "Indiranagar", "category": "Haircare"})
        self.assertEqual([m["name"] for m in response.data], ["Anu", "Bala", "Chitra"])

        response = self.client.get(reverse("staff-list"), data={"category": "Hair Colour"})
        self.assertEqual([m["name"] for m in response.data], ["Dev"])

    def test_soft_delete_and_branch_change(self):
        user = get_user_model().objects.create_user(username="owner", password="pass1234", is_staff=True)
        self.client.force_authenticate(user)

        response = self.client.delete(reverse("staff-detail", kwargs={"pk": self.unrecorded.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["isActive"])
        self.assertTrue(Staff.objects.filter(pk=self.unrecorded.id).exists())

        response = self.client.patch(
            reverse("staff-change-branch", kwargs={"pk": self.present.id}),
            data={"branch": "Koramangala"},
            format="json",
        )
        self.assertEqual(response.data["branch"], "Koramangala")

        response = self.client.patch(reverse("staff-change-branch", kwargs={"pk": self.present.id}), data={}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Branch is required")

    def test_create_rejects_non_image_upload(self):
        user = get_user_model().objects.create_user(username="owner", password="pass1234", is_staff=True)
        self.client.force_authenticate(user)
        response = self.client.post(
            reverse("staff-list"),
            data={
                "name": "Esha",
                "role": "Therapist",
                "branch": "Indiranagar",
                "category": ["Skincare"],
                "image": SimpleUploadedFile("notes.txt", b"not an image", content_type="text/plain"),
            },
            format="multipart",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Staff.objects.filter(name="Esha").exists())

    def test_create_requires_admin(self):
        response = self.client.post(
            reverse("staff-list"),
            data={"name": "Esha", "role": "Therapist", "branch": "Indiranagar", "category": ["Skincare"]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CouponApiTests(PublicAPITestCase):
    def test_validate_applies_percentage(self):
        make_coupon()
        response = self.client.post(
            reverse("coupons-validate"),
            data={"code": "SAVE20", "price": 1000},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["valid"])
        self.assertEqual(response.data["discount"], 200)
        self.assertEqual(response.data["finalPrice"], 800)
        self.assertEqual(response.data["originalPrice"], 1000)
        self.assertEqual(response.data["coupon"]["code"], "SAVE20")

    def test_validate_expired_coupon(self):
        now = timezone.now()
        make_coupon(valid_from=now - timedelta(days=10), valid_to=now - timedelta(days=1))
        response = self.client.post(
            reverse("coupons-validate"),
            data={"code": "SAVE20", "price": 1000},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {"message": "Coupon is not valid", "valid": False})

    def test_validate_unknown_coupon(self):
        response = self.client.post(
            reverse("coupons-validate"),
            data={"code": "NOPE", "price": 1000},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "Coupon not found")

    def test_validate_requires_code_and_price(self):
        response = self.client.post(reverse("coupons-validate"), data={"code": "SAVE20"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Code and price are required")

    def test_lookup_by_code_is_case_insensitive(self):
        make_coupon()
        response = self.client.get(reverse("coupons-list"), data={"code": "save20"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["valid"])
        self.assertEqual(response.data["code"], "SAVE20")

    def test_lookup_exhausted_coupon(self):
        make_coupon(max_uses=1, used_count=1)
        response = self.client.get(reverse("coupons-list"), data={"code": "SAVE20"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["valid"])

    def test_public_list_only_shows_usable_coupons(self):
        make_coupon()
        make_coupon(code="OFF", is_active=False)
        response = self.client.get(reverse("coupons-list"))
        self.assertEqual([c["code"] for c in response.data], ["SAVE20"])

    def test_validate_does_not_consume_coupon(self):
        coupon = make_coupon(max_uses=1)
        self.client.post(reverse("coupons-validate"), data={"code": "SAVE20", "price": 1000}, format="json")
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 0)


class CouponAdminApiTests(AdminAPITestCase):
    def test_create_normalises_code_and_rejects_duplicates(self):
        payload = {
            "code": "welcome",
            "discountType": "fixed",
            "discountValue": "150",
            "validTo": (timezone.now() + timedelta(days=30)).isoformat(),
        }
        response = self.client.post(reverse("coupons-list"), data=payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["code"], "WELCOME")
        self.assertEqual(response.data["usedCount"], 0)

        response = self.client.post(reverse("coupons-list"), data=payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Coupon code already exists")

    def test_all_lists_every_coupon(self):
        make_coupon()
        make_coupon(code="OFF", is_active=False)
        response = self.client.get(reverse("coupons-list-all"))
        self.assertEqual(len(response.data), 2)

    def test_update_and_delete(self):
        coupon = make_coupon()
        response = self.client.put(
            reverse("coupons-detail", kwargs={"pk": coupon.id}),
            data={"isActive": False},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["isActive"])

        response = self.client.delete(reverse("coupons-detail", kwargs={"pk": coupon.id}))
        self.assertEqual(response.data["message"], "Coupon deleted successfully")
        self.assertFalse(Coupon.objects.exists())


class ServiceApiTests(AdminAPITestCase):
    def test_fixed_price_requires_amount(self):
        response = self.client.post(
            reverse("services-list"),
            data={"category": "Haircare", "name": "Cut", "priceType": "fixed"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Price amount is required when price type is fixed")

    def test_public_list_and_categories(self):
        Service.objects.create(category="Skincare", name="Facial", branch="Koramangala")
        Service.objects.create(category="Haircare", name="Cut")
        Service.objects.create(category="Haircare", name="Spa", branch="Whitefield")

        self.client.force_authenticate(None)
        response = self.client.get(reverse("services-list"), data={"branch": "Koramangala"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s["name"] for s in response.data], ["Cut", "Facial"])

        response = self.client.get(reverse("services-categories"))
        self.assertEqual(response.data, ["Haircare", "Skincare"])

    def test_delete(self):
        service = Service.objects.create(category="Haircare", name="Cut")
        response = self.client.delete(reverse("services-detail", kwargs={"pk": service.id}))
        self.assertEqual(response.data["message"], "Service deleted successfully")

        response = self.client.delete(reverse("services-detail", kwargs={"pk": service.id}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "Service not found")


class BranchApiTests(AdminAPITestCase):
    def test_duplicate_name_is_rejected(self):
        payload = {"name": "Indiranagar", "whatsappNumber": "919876500000"}
        response = self.client.post(reverse("branches-list"), data=payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(reverse("branches-list"), data=payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Branch name already exists")

    def test_whatsapp_number_is_required(self):
        response = self.client.post(reverse("branches-list"), data={"name": "Jayanagar"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("whatsappNumber", response.data["errors"])

    def test_public_list_filters_active(self):
        Branch.objects.create(name="Indiranagar", whatsapp_number="1")
        Branch.objects.create(name="Closed", whatsapp_number="2", is_active=False)
        self.client.force_authenticate(None)
        response = self.client.get(reverse("branches-list"), data={"isActive": "true"})
        self.assertEqual([b["name"] for b in response.data], ["Indiranagar"])


class SiteSettingsApiTests(AdminAPITestCase):
    def test_settings_created_on_first_read(self):
        SiteSettings.objects.all().delete()
        self.client.force_authenticate(None)
        response = self.client.get(reverse("settings"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["announcementText"], "")
        self.assertFalse(response.data["isAnnouncementActive"])
        self.assertEqual(SiteSettings.objects.count(), 1)

    def test_admin_updates_announcement(self):
        response = self.client.put(
            reverse("settings"),
            data={"announcementText": "Diwali offers live", "isAnnouncementActive": True},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        settings = SiteSettings.get_solo()
        self.assertEqual(settings.announcement_text, "Diwali offers live")
        self.assertTrue(settings.is_announcement_active)

    def test_update_requires_admin(self):
        self.client.force_authenticate(None)
        response = self.client.put(reverse("settings"), data={"announcementText": "x"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class HealthApiTests(PublicAPITestCase):
    def test_health(self):
        response = self.client.get(reverse("health"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "OK")


class AttendanceRecordValidationTests(TestCase):
    def setUp(self):
        self.staff = make_staff("Meera")

    def test_fractional_staff_id_is_rejected(self):
        results, errors = upsert_attendance(
            [{"staffId": self.staff.id + 0.5, "date": "2025-01-10", "status": "absent"}]
        )
        self.assertEqual(results, [])
        self.assertEqual(errors[0]["error"], f"Invalid staffId: {self.staff.id + 0.5}")
        self.assertFalse(Attendance.objects.exists())
        self.assertEqual(absent_staff_ids("2025-01-10"), set())

    def test_boolean_staff_id_is_rejected(self):
        results, errors = upsert_attendance([{"staffId": True, "date": "2025-01-10", "status": "absent"}])
        self.assertEqual(results, [])
        self.assertEqual(len(errors), 1)

    def test_digit_string_staff_id_is_accepted(self):
        results, errors = upsert_attendance(
            [{"staffId": str(self.staff.id), "date": "2025-01-10", "status": "present"}]
        )
        self.assertEqual(errors, [])
        self.assertEqual(results[0].staff, self.staff)

    def test_non_string_notes_are_rejected(self):
        results, errors = upsert_attendance(
            [{"staffId": self.staff.id, "date": "2025-01-10", "status": "present", "notes": {"x": 1}}]
        )
        self.assertEqual(results, [])
        self.assertEqual(errors[0]["error"], "Notes must be a string")
        self.assertFalse(Attendance.objects.exists())


class AttendanceFilterValidationTests(AdminAPITestCase):
    def test_non_numeric_staff_id_is_reported_on_its_own_field(self):
        response = self.client.get(reverse("attendance-list"), data={"staffId": "abc"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("staffId", response.data["errors"])
        self.assertNotIn("date", response.data["errors"])

    def test_bad_date_is_still_reported_on_date(self):
        response = self.client.get(reverse("attendance-list"), data={"date": "someday"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("date", response.data["errors"])


class CouponPriceInputTests(PublicAPITestCase):
    def test_price_with_extra_decimals_is_accepted(self):
        make_coupon()
        response = self.client.post(
            reverse("coupons-validate"),
            data={"code": "SAVE20", "price": 99.999},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["originalPrice"], Decimal("99.999"))
        self.assertEqual(response.data["discount"], Decimal("19.9998"))
        self.assertEqual(response.data["finalPrice"], Decimal("79.9992"))


class ClientRateThrottleTests(TestCase):
    def make_request(self, user):
        request = Request(APIRequestFactory().post("/api/bookings/", REMOTE_ADDR="10.0.0.7"))
        request.user = user
        return request

    def test_anonymous_clients_are_keyed_by_address(self):
        key = BookingRateThrottle().get_cache_key(self.make_request(AnonymousUser()), None)
        self.assertEqual(key, "throttle_bookings_addr-10.0.0.7")

    def test_signed_in_admins_are_keyed_by_account(self):
        admin = get_user_model().objects.create_user(username="owner", password="pass1234", is_staff=True)
        key = ReportsRateThrottle().get_cache_key(self.make_request(admin), None)
        self.assertEqual(key, f"throttle_reports_user-{admin.pk}")
