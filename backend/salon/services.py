import logging
from datetime import timedelta
from decimal import Decimal
from typing import NamedTuple

from django.db import IntegrityError, models, transaction
from django.db.models.functions import TruncDate
from django.utils import timezone

from .dates import end_of_day, parse_day, start_of_day
from .events import publish_booking_created
from .models import (
    Attendance,
    AttendanceStatus,
    Booking,
    BookingStatus,
    Coupon,
    Service,
    Staff,
)

logger = logging.getLogger(__name__)

MISSING_ATTENDANCE_FIELDS = "Missing required fields: staffId, date, status"
INVALID_ATTENDANCE_STATUS = 'Status must be "present" or "absent"'
INVALID_ATTENDANCE_NOTES = "Notes must be a string"
OVER_TIME_WINDOW_DAYS = 30


class CouponNotFound(Exception):
    pass


class CouponInvalid(Exception):
    def __init__(self, coupon):
        super().__init__("Coupon is not valid")
        self.coupon = coupon


class InvalidStaffId(ValueError):
    pass


class ResolvedService(NamedTuple):
    service: Service | None
    name: str
    amount: int


def resolve_service(category: str, sub_service: str | None = None) -> ResolvedService:
    """Map a requested category (and optional sub-service) onto the catalog.

    Returns the matched active service, the name to store on the booking and
    the booking amount in minor units. Without a sub-service the first active
    service of the category by name wins.
    """
    candidates = Service.objects.filter(category=category, is_active=True)
    if sub_service:
        service = candidates.filter(name=sub_service).order_by("id").first()
    else:
        service = candidates.order_by("name", "id").first()

    if service is None:
        return ResolvedService(None, sub_service or category, 0)

    amount = 0
    if service.has_fixed_price:
        amount = int((service.price_amount * 100).to_integral_value())
    return ResolvedService(service, service.name, amount)


@transaction.atomic
def create_booking(
    *,
    name: str,
    phone: str,
    branch: str,
    category: str,
    date,
    sub_service: str = "",
    expert: str = "",
    notes: str = "",
    coupon_code: str | None = None,
) -> Booking:
    resolved = resolve_service(category, sub_service or None)
    if coupon_code:
        # accepted from the booking form, not applied to the stored amount
        logger.debug("Booking for %s submitted with coupon %s", phone, coupon_code)

    booking = Booking.objects.create(
        name=name,
        phone=phone,
        branch=branch,
        service=resolved.name,
        service_category=category,
        sub_service=sub_service or "",
        expert=expert or "",
        date=date,
        amount=resolved.amount,
        notes=notes or "",
    )
    publish_booking_created(booking)
    return booking


def filter_bookings(queryset, status=None, branch=None, service=None, start=None, end=None):
    if status:
        queryset = queryset.filter(status=status)
    if branch:
        queryset = queryset.filter(branch=branch)
    if service:
        queryset = queryset.filter(service=service)
    if start:
        queryset = queryset.filter(date__gte=start_of_day(parse_day(start)))
    if end:
        queryset = queryset.filter(date__lte=end_of_day(parse_day(end)))
    return queryset


def _grouped_counts(bookings, field: str, by_count: bool = True) -> list[dict]:
    rows = bookings.values(field).annotate(count=models.Count("id"))
    rows = rows.order_by("-count", field) if by_count else rows.order_by(field)
    return [{field: row[field], "count": row["count"]} for row in rows]


def booking_analytics(start=None, end=None) -> dict:
    bookings = filter_bookings(Booking.objects.all(), start=start, end=end)

    since = timezone.now() - timedelta(days=OVER_TIME_WINDOW_DAYS)
    over_time = (
        bookings.filter(created_at__gte=since)
        .annotate(day=TruncDate("created_at"))
        .values("day")
        .annotate(count=models.Count("id"))
        .order_by("day")
    )

    return {
        "byService": _grouped_counts(bookings, "service"),
        "byBranch": _grouped_counts(bookings, "branch"),
        "byStatus": _grouped_counts(bookings, "status", by_count=False),
        "overTime": [
            {"date": row["day"].isoformat() if row["day"] else None, "count": row["count"]}
            for row in over_time
        ],
        "totals": {
            "total": bookings.count(),
            "pending": bookings.filter(status=BookingStatus.PENDING).count(),
            "confirmed": bookings.filter(status=BookingStatus.CONFIRMED).count(),
        },
    }


def find_coupon(code: str) -> Coupon:
    coupon = Coupon.objects.filter(code=code.strip().upper()).first()
    if coupon is None:
        raise CouponNotFound(code)
    return coupon


def check_coupon(code: str, now=None) -> Coupon:
    coupon = find_coupon(code)
    if not coupon.is_valid(now=now):
        logger.info("Rejected coupon %s (inactive, outside window or used up)", coupon.code)
        raise CouponInvalid(coupon)
    return coupon


def validate_coupon(code: str, price, now=None) -> dict:
    """Look up ``code`` and price it against ``price`` (same currency unit in and out)."""
    coupon = check_coupon(code, now=now)
    price = Decimal(str(price))
    discount = coupon.calculate_discount(price, now=now)
    return {
        "valid": True,
        "coupon": coupon,
        "discount": discount,
        "finalPrice": price - discount,
        "originalPrice": price,
    }


def parse_staff_id(value) -> int:
    """Accept an integer or a string of digits; floats and booleans are rejected."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidStaffId(f"Invalid staffId: {value}")


def _upsert_attendance_record(record) -> Attendance:
    staff_id = record.get("staffId")
    day_value = record.get("date")
    status = record.get("status")
    notes = record.get("notes")

    if not (staff_id and day_value and status):
        raise ValueError(MISSING_ATTENDANCE_FIELDS)
    if status not in AttendanceStatus.values:
        raise ValueError(INVALID_ATTENDANCE_STATUS)
    if notes is not None and not isinstance(notes, str):
        raise ValueError(INVALID_ATTENDANCE_NOTES)

    staff_pk = parse_staff_id(staff_id)
    day = parse_day(day_value)
    staff = Staff.objects.filter(pk=staff_pk).first()
    if staff is None:
        raise ValueError(f"Staff not found: {staff_id}")

    with transaction.atomic():
        attendance, _ = Attendance.objects.update_or_create(
            staff=staff,
            date=day,
            defaults={"status": status, "notes": notes or ""},
        )
    return attendance


def upsert_attendance(records) -> tuple[list[Attendance], list[dict]]:
    """Apply each record independently, keyed on (staff, local day)."""
    results = []
    errors = []
    for record in records:
        if not isinstance(record, dict):
            errors.append({"record": record, "error": MISSING_ATTENDANCE_FIELDS})
            continue
        try:
            results.append(_upsert_attendance_record(record))
        except (ValueError, IntegrityError) as exc:
            errors.append({"record": record, "error": str(exc)})

    logger.info("Attendance batch: %s saved, %s failed", len(results), len(errors))
    return results, errors


def filter_attendance(queryset, day=None, staff_id=None, start=None, end=None, status=None):
    if day:
        queryset = queryset.filter(date=parse_day(day))
    if staff_id:
        queryset = queryset.filter(staff_id=parse_staff_id(staff_id))
    if status:
        queryset = queryset.filter(status=status)
    if start:
        queryset = queryset.filter(date__gte=parse_day(start))
    if end:
        queryset = queryset.filter(date__lte=parse_day(end))
    return queryset


def absent_staff_ids(day) -> set[int]:
    """Staff explicitly marked absent on ``day``; no record means present."""
    return set(
        Attendance.objects.filter(date=parse_day(day), status=AttendanceStatus.ABSENT).values_list(
            "staff_id", flat=True
        )
    )

