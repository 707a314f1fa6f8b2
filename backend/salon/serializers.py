from decimal import Decimal

from django.conf import settings
from rest_framework import serializers
from rest_framework.validators import UniqueValidator

from .models import (
    Attendance,
    Booking,
    Branch,
    Coupon,
    DiscountType,
    PriceType,
    Service,
    SiteSettings,
    Staff,
)


class TimeStampedSerializer(serializers.ModelSerializer):
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)


class BranchSerializer(TimeStampedSerializer):
    whatsappNumber = serializers.CharField(source="whatsapp_number", max_length=30)
    isActive = serializers.BooleanField(source="is_active", required=False)

    class Meta:
        model = Branch
        fields = [
            "id",
            "name",
            "address",
            "phone",
            "whatsappNumber",
            "isActive",
            "createdAt",
            "updatedAt",
        ]
        extra_kwargs = {
            "name": {
                "validators": [
                    UniqueValidator(queryset=Branch.objects.all(), message="Branch name already exists")
                ]
            },
        }


class ServiceSerializer(TimeStampedSerializer):
    priceType = serializers.ChoiceField(source="price_type", choices=PriceType.choices, required=False)
    priceAmount = serializers.DecimalField(
        source="price_amount",
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0"),
        required=False,
        allow_null=True,
    )
    originalPrice = serializers.DecimalField(
        source="original_price",
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0"),
        required=False,
        allow_null=True,
    )
    discountedPrice = serializers.DecimalField(
        source="discounted_price",
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0"),
        required=False,
        allow_null=True,
    )
    isActive = serializers.BooleanField(source="is_active", required=False)

    class Meta:
        model = Service
        fields = [
            "id",
            "category",
            "name",
            "description",
            "price",
            "priceType",
            "priceAmount",
            "originalPrice",
            "discountedPrice",
            "isActive",
            "branch",
            "createdAt",
            "updatedAt",
        ]

    def validate(self, attrs):
        price_type = attrs.get("price_type", getattr(self.instance, "price_type", PriceType.VARIES))
        price_amount = attrs.get("price_amount", getattr(self.instance, "price_amount", None))
        if price_type == PriceType.FIXED and (price_amount is None or price_amount <= 0):
            raise serializers.ValidationError(
                {"priceAmount": "Price amount is required when price type is fixed"}
            )
        return attrs


class StaffSerializer(TimeStampedSerializer):
    category = serializers.ListField(
        source="categories",
        child=serializers.CharField(max_length=120),
        allow_empty=False,
    )
    isActive = serializers.BooleanField(source="is_active", required=False)
    image = serializers.ImageField(required=False, allow_null=True)

    class Meta:
        model = Staff
        fields = [
            "id",
            "name",
            "role",
            "branch",
            "category",
            "description",
            "image",
            "rating",
            "phone",
            "isActive",
            "createdAt",
            "updatedAt",
        ]

    def validate_image(self, image):
        if not image:
            return image
        if image.size > settings.STAFF_IMAGE_MAX_BYTES:
            raise serializers.ValidationError("Image must be 5MB or smaller")
        content_type = getattr(image, "content_type", "") or ""
        if not content_type.startswith("image/"):
            raise serializers.ValidationError("Only image files are allowed!")
        return image


class StaffBranchSerializer(serializers.Serializer):
    branch = serializers.CharField(
        max_length=120,
        error_messages={"required": "Branch is required", "blank": "Branch is required"},
    )


class StaffSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ["id", "name", "role", "branch"]


class AttendanceSerializer(TimeStampedSerializer):
    staffId = serializers.PrimaryKeyRelatedField(source="staff", read_only=True)
    staff = StaffSummarySerializer(read_only=True)

    class Meta:
        model = Attendance
        fields = ["id", "staffId", "staff", "date", "status", "notes", "createdAt", "updatedAt"]


class BookingSerializer(TimeStampedSerializer):
    serviceCategory = serializers.CharField(
        source="service_category", max_length=120, required=False, allow_blank=True
    )
    subService = serializers.CharField(
        source="sub_service", max_length=160, required=False, allow_blank=True
    )

    class Meta:
        model = Booking
        fields = [
            "id",
            "name",
            "phone",
            "branch",
            "service",
            "serviceCategory",
            "subService",
            "expert",
            "date",
            "status",
            "amount",
            "notes",
            "createdAt",
            "updatedAt",
        ]


class BookingCreateSerializer(serializers.Serializer):
    """Public booking form; ``service`` carries the chosen category."""

    name = serializers.CharField(max_length=120)
    phone = serializers.CharField(max_length=30)
    branch = serializers.CharField(max_length=120)
    service = serializers.CharField(
        max_length=120,
        error_messages={"required": "Service is required", "blank": "Service is required"},
    )
    subService = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    expert = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    date = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    couponCode = serializers.CharField(max_length=40, required=False, allow_blank=True, allow_null=True)

    def to_booking_kwargs(self) -> dict:
        data = self.validated_data
        return {
            "name": data["name"],
            "phone": data["phone"],
            "branch": data["branch"],
            "category": data["service"],
            "sub_service": data.get("subService", ""),
            "expert": data.get("expert", ""),
            "date": data["date"],
            "notes": data.get("notes", ""),
            "coupon_code": data.get("couponCode"),
        }


class CouponSerializer(TimeStampedSerializer):
    code = serializers.CharField(max_length=40)
    discountType = serializers.ChoiceField(
        source="discount_type", choices=DiscountType.choices, required=False
    )
    discountValue = serializers.DecimalField(
        source="discount_value", max_digits=10, decimal_places=2, min_value=Decimal("0")
    )
    isActive = serializers.BooleanField(source="is_active", required=False)
    validFrom = serializers.DateTimeField(source="valid_from", required=False)
    validTo = serializers.DateTimeField(source="valid_to")
    maxUses = serializers.IntegerField(source="max_uses", min_value=0, required=False, allow_null=True)
    usedCount = serializers.IntegerField(source="used_count", read_only=True)

    class Meta:
        model = Coupon
        fields = [
            "id",
            "code",
            "discountType",
            "discountValue",
            "isActive",
            "validFrom",
            "validTo",
            "maxUses",
            "usedCount",
            "description",
            "createdAt",
            "updatedAt",
        ]

    def validate_code(self, value):
        code = value.strip().upper()
        duplicates = Coupon.objects.filter(code=code)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError("Coupon code already exists")
        return code


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField(
        error_messages={
            "required": "Code and price are required",
            "blank": "Code and price are required",
            "null": "Code and price are required",
        },
    )
    price = serializers.DecimalField(
        max_digits=None,
        decimal_places=None,
        error_messages={
            "required": "Code and price are required",
            "null": "Code and price are required",
        },
    )

    def validate_price(self, value):
        if not value:
            raise serializers.ValidationError("Code and price are required")
        return value


class SiteSettingsSerializer(TimeStampedSerializer):
    announcementText = serializers.CharField(
        source="announcement_text", max_length=500, required=False, allow_blank=True
    )
    isAnnouncementActive = serializers.BooleanField(source="is_announcement_active", required=False)

    class Meta:
        model = SiteSettings
        fields = ["announcementText", "isAnnouncementActive", "createdAt", "updatedAt"]
