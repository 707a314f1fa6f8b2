from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

ALL_BRANCHES = "All Branches"


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Lifecycle(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class ActivatableModel(TimeStampedModel):
    """Soft-scoped entity: inactive rows still exist, deletion is a separate operation."""

    is_active = models.BooleanField(default=True)

    class Meta:
        abstract = True

    @property
    def lifecycle(self) -> str:
        return Lifecycle.ACTIVE if self.is_active else Lifecycle.INACTIVE

    def deactivate(self) -> None:
        if self.is_active:
            self.is_active = False
            self.save(update_fields=["is_active", "updated_at"])


class Branch(ActivatableModel):
    name = models.CharField(max_length=120, unique=True)
    address = models.CharField(max_length=255, blank=True, default="")
    phone = models.CharField(max_length=30, blank=True, default="")
    whatsapp_number = models.CharField(max_length=30)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class PriceType(models.TextChoices):
    FIXED = "fixed", "Fixed"
    VARIES = "varies", "Varies"
    CONSULTATION = "consultation", "Consultation"


class Service(ActivatableModel):
    category = models.CharField(max_length=120)
    name = models.CharField(max_length=160)
    description = models.TextField(blank=True, default="")
    price = models.CharField(max_length=60, blank=True, default="Varies")
    price_type = models.CharField(
        max_length=20,
        choices=PriceType.choices,
        default=PriceType.VARIES,
    )
    price_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
    )
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
    )
    discounted_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
    )
    branch = models.CharField(max_length=120, blank=True, default=ALL_BRANCHES)

    class Meta:
        indexes = [
            models.Index(fields=["category", "is_active"], name="salon_servi_categor_2a6f0d_idx"),
            models.Index(fields=["name"], name="salon_servi_name_9e3c4b_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.category} - {self.name}"

    @property
    def has_fixed_price(self) -> bool:
        return self.price_type == PriceType.FIXED and bool(self.price_amount) and self.price_amount > 0

    def clean(self):
        super().clean()
        if self.price_type == PriceType.FIXED and (self.price_amount is None or self.price_amount <= 0):
            raise ValidationError(
                {"price_amount": "Price amount is required when price type is fixed"}
            )

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)


class Staff(ActivatableModel):
    name = models.CharField(max_length=120)
    role = models.CharField(max_length=120)
    branch = models.CharField(max_length=120)
    categories = models.JSONField(default=list, blank=True)
    description = models.TextField(blank=True, default="")
    image = models.ImageField(upload_to="staff/", blank=True, default="")
    rating = models.DecimalField(
        max_digits=2,
        decimal_places=1,
        default=Decimal("5.0"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("5"))],
    )
    phone = models.CharField(max_length=30, blank=True, default="")

    class Meta:
        ordering = ["branch", "name"]
        verbose_name_plural = "staff"
        indexes = [models.Index(fields=["branch", "is_active"], name="salon_staff_branch_7d21aa_idx")]

    def __str__(self) -> str:
        return f"{self.name} ({self.branch})"

    def serves(self, category: str) -> bool:
        return category in (self.categories or [])


class BookingStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    CANCELLED = "cancelled", "Cancelled"
    COMPLETED = "completed", "Completed"


class Booking(TimeStampedModel):
    name = models.CharField(max_length=120)
    phone = models.CharField(max_length=30)
    branch = models.CharField(max_length=120)
    service = models.CharField(max_length=160)
    service_category = models.CharField(max_length=120, blank=True, default="")
    sub_service = models.CharField(max_length=160, blank=True, default="")
    expert = models.CharField(max_length=120, blank=True, default="")
    date = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING,
    )
    # minor currency units
    amount = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["phone", "date"], name="salon_booki_phone_5d0a7c_idx"),
            models.Index(fields=["status"], name="salon_booki_status_0e2b0f_idx"),
            models.Index(fields=["branch"], name="salon_booki_branch_8c1d3e_idx"),
            models.Index(fields=["-created_at"], name="salon_booki_created_4f9a21_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.service} ({self.status})"

    @property
    def service_display(self) -> str:
        if self.service_category and self.sub_service:
            return f"{self.service_category} - {self.sub_service}"
        if self.sub_service:
            return f"{self.service} - {self.sub_service}"
        return self.service_category or self.service


class AttendanceStatus(models.TextChoices):
    PRESENT = "present", "Present"
    ABSENT = "absent", "Absent"


class Attendance(TimeStampedModel):
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name="attendance")
    date = models.DateField()
    status = models.CharField(
        max_length=10,
        choices=AttendanceStatus.choices,
        default=AttendanceStatus.PRESENT,
    )
    notes = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-date", "-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["staff", "date"], name="unique_attendance_per_staff_day")
        ]
        indexes = [models.Index(fields=["date"], name="salon_atten_date_3b8f19_idx")]

    def __str__(self) -> str:
        return f"{self.staff.name} {self.date} {self.status}"


class DiscountType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed"


class Coupon(ActivatableModel):
    code = models.CharField(max_length=40, unique=True)
    discount_type = models.CharField(
        max_length=20,
        choices=DiscountType.choices,
        default=DiscountType.PERCENTAGE,
    )
    discount_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    valid_from = models.DateTimeField(default=timezone.now)
    valid_to = models.DateTimeField()
    max_uses = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_active", "valid_from", "valid_to"], name="salon_coupo_is_acti_6b7e52_idx")
        ]

    def __str__(self) -> str:
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    def is_valid(self, now=None) -> bool:
        now = now or timezone.now()
        return (
            self.is_active
            and self.valid_from <= now <= self.valid_to
            and (self.max_uses is None or self.used_count < self.max_uses)
        )

    def calculate_discount(self, price, now=None) -> Decimal:
        if not self.is_valid(now=now):
            return Decimal("0")
        price = Decimal(str(price))
        if self.discount_type == DiscountType.PERCENTAGE:
            return price * self.discount_value / 100
        return min(self.discount_value, price)


class SiteSettings(TimeStampedModel):
    announcement_text = models.CharField(max_length=500, blank=True, default="")
    is_announcement_active = models.BooleanField(default=False)

    class Meta:
        verbose_name_plural = "site settings"

    def __str__(self) -> str:
        return "Site Settings"

    @classmethod
    def get_solo(cls) -> "SiteSettings":
        obj, _ = cls.objects.get_or_create(id=1)
        return obj
