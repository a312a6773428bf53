# services/reservation-service/src/apps/api/views/filters.py
"""
API Filters

Django Filter classes for reservation API.
"""

import django_filters

from apps.core.models import Booking, PricingRule, WaitlistEntry


class BookingFilter(django_filters.FilterSet):
    """Filter for booking queries."""

    status = django_filters.ChoiceFilter(
        choices=Booking.Status.choices
    )
    status_in = django_filters.BaseInFilter(
        field_name='status'
    )
    source = django_filters.ChoiceFilter(
        choices=Booking.Source.choices
    )

    # Time range
    start_from = django_filters.IsoDateTimeFilter(
        field_name='start_at',
        lookup_expr='gte'
    )
    start_to = django_filters.IsoDateTimeFilter(
        field_name='start_at',
        lookup_expr='lt'
    )

    resource_id = django_filters.UUIDFilter()
    service_id = django_filters.UUIDFilter()
    customer_id = django_filters.UUIDFilter()

    holding = django_filters.BooleanFilter(
        method='filter_holding'
    )

    class Meta:
        model = Booking
        fields = ['status', 'source', 'resource_id', 'service_id', 'customer_id']

    def filter_holding(self, queryset, name, value):
        """Bookings that currently hold their slot."""
        if value:
            return queryset.filter(status__in=Booking.HOLDING_STATUSES)
        return queryset.exclude(status__in=Booking.HOLDING_STATUSES)


class WaitlistFilter(django_filters.FilterSet):
    """Filter for waitlist queries."""

    status = django_filters.ChoiceFilter(
        choices=WaitlistEntry.Status.choices
    )
    priority = django_filters.ChoiceFilter(
        choices=WaitlistEntry.Priority.choices
    )
    customer_id = django_filters.UUIDFilter()
    preferred_date = django_filters.DateFilter()

    is_open = django_filters.BooleanFilter(
        method='filter_is_open'
    )

    class Meta:
        model = WaitlistEntry
        fields = ['status', 'priority', 'customer_id', 'preferred_date']

    def filter_is_open(self, queryset, name, value):
        if value:
            return queryset.filter(status__in=WaitlistEntry.OPEN_STATUSES)
        return queryset.exclude(status__in=WaitlistEntry.OPEN_STATUSES)


class PricingRuleFilter(django_filters.FilterSet):
    """Filter for pricing rule queries."""

    modifier_type = django_filters.ChoiceFilter(
        choices=PricingRule.ModifierType.choices
    )
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = PricingRule
        fields = ['modifier_type', 'is_active', 'priority']
