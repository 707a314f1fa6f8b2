from django.contrib import admin

from .models import Attendance, Booking, Branch, Coupon, Service, SiteSettings, Staff


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "whatsapp_number", "is_active")
    search_fields = ("name", "address")
    list_filter = ("is_active",)


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("category", "name", "price_type", "price_amount", "branch", "is_active")
    search_fields = ("category", "name")
    list_filter = ("category", "price_type", "is_active")


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ("name", "role", "branch", "rating", "is_active")
    search_fields = ("name", "role", "phone")
    list_filter = ("branch", "is_active")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "branch", "service", "date", "status", "amount", "created_at")
    search_fields = ("name", "phone", "service")
    list_filter = ("status", "branch")


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ("staff", "date", "status")
    list_filter = ("status", "date")
    search_fields = ("staff__name",)


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ("code", "discount_type", "discount_value", "valid_from", "valid_to", "used_count", "is_active")
    search_fields = ("code",)
    list_filter = ("discount_type", "is_active")


@admin.register(SiteSettings)
class SiteSettingsAdmin(admin.ModelAdmin):
    list_display = ("announcement_text", "is_announcement_active", "updated_at")
