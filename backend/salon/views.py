import io

import qrcode
from django.http import Http404, HttpResponse
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from users.permissions import IsSalonAdmin

from . import services
from .models import ALL_BRANCHES, Attendance, Booking, Branch, Coupon, Service, SiteSettings, Staff
from .serializers import (
    AttendanceSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BranchSerializer,
    CouponSerializer,
    CouponValidateSerializer,
    ServiceSerializer,
    SiteSettingsSerializer,
    StaffBranchSerializer,
    StaffSerializer,
)
from .throttles import BookingRateThrottle, CouponRateThrottle, ReportsRateThrottle
from .whatsapp import format_booking_message, whatsapp_link

BOOKING_LIST_LIMIT = 1000
STAFF_ATTENDANCE_LIMIT = 100


def _flag(value):
    if value is None:
        return None
    return value in {"1", "true", "True", "yes"}


def _limit(value, maximum):
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return maximum
    return max(1, min(limit, maximum))


class SalonViewSetMixin:
    """Admin-only unless the action is listed in ``public_actions``."""

    public_actions: set[str] = set()
    not_found_message = "Not found"
    lookup_value_regex = r"\d+"

    def get_permissions(self):
        if self.action in self.public_actions:
            return [AllowAny()]
        return [IsSalonAdmin()]

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            raise NotFound(self.not_found_message)

    def update(self, request, *args, **kwargs):
        # PUT carries only the edited fields from the admin forms
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)


class BookingViewSet(SalonViewSetMixin, viewsets.ModelViewSet):
    queryset = Booking.objects.all()
    serializer_class = BookingSerializer
    public_actions = {"create"}
    not_found_message = "Booking not found"
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_throttles(self):
        if self.action == "create":
            return [BookingRateThrottle()]
        if self.action == "analytics":
            return [ReportsRateThrottle()]
        return super().get_throttles()

    def list(self, request, *args, **kwargs):
        params = request.query_params
        try:
            bookings = services.filter_bookings(
                self.get_queryset(),
                status=params.get("status"),
                branch=params.get("branch"),
                service=params.get("service"),
                start=params.get("startDate"),
                end=params.get("endDate"),
            )
        except ValueError as exc:
            raise ValidationError({"date": str(exc)})
        bookings = bookings.order_by("-created_at")[: _limit(params.get("limit"), BOOKING_LIST_LIMIT)]
        return Response(self.get_serializer(bookings, many=True).data)

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = services.create_booking(**serializer.to_booking_kwargs())
        return Response(self.get_serializer(booking).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        self.get_object().delete()
        return Response({"message": "Booking deleted"})

    @action(detail=False, methods=["get"], url_path="analytics")
    def analytics(self, request):
        try:
            data = services.booking_analytics(
                start=request.query_params.get("startDate"),
                end=request.query_params.get("endDate"),
            )
        except ValueError as exc:
            raise ValidationError({"date": str(exc)})
        return Response(data)

    def _whatsapp_message(self, request):
        booking = self.get_object()
        branch = Branch.objects.filter(name=booking.branch).first()
        if branch is None:
            raise NotFound("Branch not found")
        is_cancellation = request.query_params.get("isCancellation") == "true"
        message = format_booking_message(booking, branch.whatsapp_number, is_cancellation)
        return message, whatsapp_link(branch.whatsapp_number, message)

    @action(detail=True, methods=["get"], url_path="whatsapp")
    def whatsapp(self, request, pk=None):
        message, link = self._whatsapp_message(request)
        return Response({"whatsappLink": link, "message": message})

    @action(detail=True, methods=["get"], url_path="whatsapp/qr", url_name="whatsapp-qr")
    def whatsapp_qr(self, request, pk=None):
        _, link = self._whatsapp_message(request)
        img = qrcode.make(link)
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return HttpResponse(buffer.getvalue(), content_type="image/png")


class ServiceViewSet(SalonViewSetMixin, viewsets.ModelViewSet):
    queryset = Service.objects.all()
    serializer_class = ServiceSerializer
    public_actions = {"list", "categories"}
    not_found_message = "Service not found"
    http_method_names = ["get", "post", "put", "delete", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action != "list":
            return qs
        params = self.request.query_params
        if params.get("category"):
            qs = qs.filter(category=params["category"])
        is_active = _flag(params.get("isActive"))
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        if params.get("branch"):
            qs = qs.filter(branch__in=[ALL_BRANCHES, params["branch"]])
        return qs.order_by("category", "name")

    def destroy(self, request, *args, **kwargs):
        self.get_object().delete()
        return Response({"message": "Service deleted successfully"})

    @action(detail=False, methods=["get"], url_path="categories")
    def categories(self, request):
        names = Service.objects.order_by("category").values_list("category", flat=True).distinct()
        return Response(list(names))


class StaffViewSet(SalonViewSetMixin, viewsets.ModelViewSet):
    queryset = Staff.objects.all()
    serializer_class = StaffSerializer
    public_actions = {"list"}
    not_found_message = "Staff not found"
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def list(self, request, *args, **kwargs):
        params = request.query_params
        qs = self.get_queryset()
        if params.get("branch"):
            qs = qs.filter(branch=params["branch"])
        is_active = _flag(params.get("isActive"))
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        staff = list(qs.order_by("branch", "name"))

        categories = params.getlist("category")
        if categories:
            staff = [member for member in staff if any(member.serves(c) for c in categories)]

        absent_on = params.get("excludeAbsentOnDate")
        if absent_on:
            try:
                absent = services.absent_staff_ids(absent_on)
            except ValueError as exc:
                raise ValidationError({"excludeAbsentOnDate": str(exc)})
            staff = [member for member in staff if member.pk not in absent]

        return Response(self.get_serializer(staff, many=True).data)

    def destroy(self, request, *args, **kwargs):
        member = self.get_object()
        member.deactivate()
        return Response(self.get_serializer(member).data)

    @action(detail=True, methods=["patch"], url_path="branch")
    def change_branch(self, request, pk=None):
        member = self.get_object()
        serializer = StaffBranchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        member.branch = serializer.validated_data["branch"]
        member.save(update_fields=["branch", "updated_at"])
        return Response(self.get_serializer(member).data)


class BranchViewSet(SalonViewSetMixin, viewsets.ModelViewSet):
    queryset = Branch.objects.all()
    serializer_class = BranchSerializer
    public_actions = {"list"}
    not_found_message = "Branch not found"
    http_method_names = ["get", "post", "put", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == "list":
            is_active = _flag(self.request.query_params.get("isActive"))
            if is_active is not None:
                qs = qs.filter(is_active=is_active)
        return qs.order_by("name")


class CouponViewSet(SalonViewSetMixin, viewsets.ModelViewSet):
    queryset = Coupon.objects.all()
    serializer_class = CouponSerializer
    public_actions = {"list", "validate"}
    not_found_message = "Coupon not found"
    http_method_names = ["get", "post", "put", "delete", "head", "options"]

    def get_throttles(self):
        if self.action in self.public_actions:
            return [CouponRateThrottle()]
        return super().get_throttles()

    def list(self, request, *args, **kwargs):
        code = request.query_params.get("code")
        if code:
            try:
                coupon = services.check_coupon(code)
            except services.CouponNotFound:
                return Response({"message": "Coupon not found"}, status=status.HTTP_404_NOT_FOUND)
            except services.CouponInvalid:
                return Response(
                    {"message": "Coupon is not valid", "valid": False},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            return Response({**self.get_serializer(coupon).data, "valid": True})

        coupons = [coupon for coupon in self.get_queryset().filter(is_active=True) if coupon.is_valid()]
        return Response(self.get_serializer(coupons, many=True).data)

    @action(detail=False, methods=["post"], url_path="validate")
    def validate(self, request):
        serializer = CouponValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = services.validate_coupon(
                serializer.validated_data["code"],
                serializer.validated_data["price"],
            )
        except services.CouponNotFound:
            return Response({"message": "Coupon not found"}, status=status.HTTP_404_NOT_FOUND)
        except services.CouponInvalid:
            return Response(
                {"message": "Coupon is not valid", "valid": False},
                status=status.HTTP_400_BAD_REQUEST,
            )
        result["coupon"] = self.get_serializer(result["coupon"]).data
        return Response(result)

    @action(detail=False, methods=["get"], url_path="all")
    def list_all(self, request):
        return Response(self.get_serializer(self.get_queryset(), many=True).data)

    def destroy(self, request, *args, **kwargs):
        self.get_object().delete()
        return Response({"message": "Coupon deleted successfully"})


class AttendanceViewSet(
    SalonViewSetMixin,
    mixins.ListModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Attendance.objects.select_related("staff")
    serializer_class = AttendanceSerializer
    not_found_message = "Attendance record not found"

    def _filtered(self, queryset, **filters):
        try:
            return services.filter_attendance(queryset, **filters)
        except services.InvalidStaffId as exc:
            raise ValidationError({"staffId": str(exc)})
        except ValueError as exc:
            raise ValidationError({"date": str(exc)})

    def create(self, request, *args, **kwargs):
        records = request.data.get("records") if isinstance(request.data, dict) else None
        if not isinstance(records, list) or not records:
            return Response({"message": "Records array is required"}, status=status.HTTP_400_BAD_REQUEST)

        results, errors = services.upsert_attendance(records)
        if errors and not results:
            return Response(
                {"message": "All records failed", "errors": errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = {
            "success": len(results),
            "failed": len(errors),
            "results": self.get_serializer(results, many=True).data,
        }
        if errors:
            data["errors"] = errors
        return Response(data, status=status.HTTP_201_CREATED)

    def list(self, request, *args, **kwargs):
        params = request.query_params
        records = self._filtered(
            self.get_queryset(),
            day=params.get("date"),
            staff_id=params.get("staffId"),
            start=params.get("startDate"),
            end=params.get("endDate"),
            status=params.get("status"),
        )
        return Response(self.get_serializer(records.order_by("-date", "-created_at"), many=True).data)

    @action(detail=False, methods=["get"], url_path=r"staff/(?P<staff_id>\d+)", url_name="by-staff")
    def by_staff(self, request, staff_id=None):
        params = request.query_params
        records = self._filtered(
            self.get_queryset(),
            staff_id=staff_id,
            start=params.get("startDate"),
            end=params.get("endDate"),
            status=params.get("status"),
        )
        records = records.order_by("-date")[:STAFF_ATTENDANCE_LIMIT]
        return Response(self.get_serializer(records, many=True).data)

    @action(detail=False, methods=["get"], url_path=r"date/(?P<day>[^/]+)", url_name="by-date")
    def by_date(self, request, day=None):
        records = self._filtered(self.get_queryset(), day=day)
        return Response(self.get_serializer(records.order_by("-created_at"), many=True).data)

    def destroy(self, request, *args, **kwargs):
        self.get_object().delete()
        return Response({"message": "Attendance record deleted"})


class SiteSettingsView(APIView):
    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsSalonAdmin()]

    def get(self, request):
        return Response(SiteSettingsSerializer(SiteSettings.get_solo()).data)

    def put(self, request):
        serializer = SiteSettingsSerializer(SiteSettings.get_solo(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):
    return Response({"status": "OK", "message": "Server is running"})
