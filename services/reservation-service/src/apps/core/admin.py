from django.contrib import admin
from .models import (
    Booking,
    BookingHistory,
    Business,
    BusinessHoliday,
    BusinessHour,
    DispatchRequest,
    PricingRule,
    Resource,
    Service,
    WaitlistEntry,
)


class BusinessHourInline(admin.TabularInline):
    model = BusinessHour
    extra = 0


class BusinessHolidayInline(admin.TabularInline):
    model = BusinessHoliday
    extra = 0


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'status', 'onboarding_status', 'timezone']
    list_filter = ['status', 'onboarding_status']
    inlines = [BusinessHourInline, BusinessHolidayInline]


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'type', 'business', 'is_active']
    list_filter = ['type', 'is_active']


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'business', 'duration_minutes', 'price_cents', 'is_active']


class BookingHistoryInline(admin.TabularInline):
    model = BookingHistory
    extra = 0
    can_delete = False
    readonly_fields = ['field', 'old_value', 'new_value', 'changed_by', 'reason', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'business', 'resource', 'status', 'start_at', 'end_at']
    list_filter = ['status', 'source']
    inlines = [BookingHistoryInline]


@admin.register(PricingRule)
class PricingRuleAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'service', 'modifier_type', 'price_modifier', 'priority', 'is_active']


@admin.register(WaitlistEntry)
class WaitlistEntryAdmin(admin.ModelAdmin):
    list_display = ['id', 'business', 'customer', 'priority', 'status', 'response_deadline']
    list_filter = ['status', 'priority']


@admin.register(DispatchRequest)
class DispatchRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'kind', 'label', 'status', 'scheduled_at', 'attempts']
    list_filter = ['kind', 'status']
