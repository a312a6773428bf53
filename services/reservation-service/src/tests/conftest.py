# services/reservation-service/src/tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for reservation service tests.
"""

import uuid
from datetime import datetime, date, time, timedelta, timezone as dt_timezone

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def clear_cache():
    """Availability results are cached; start every test cold."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Provide API client for testing."""
    return APIClient()


@pytest.fixture
def user_id():
    """Provide a test user ID."""
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id):
    """Provide caller headers for API requests."""
    return {
        'HTTP_X_USER_ID': str(user_id),
    }


@pytest.fixture
def next_monday():
    """A Monday at least a week ahead, so reminder offsets lie in the future."""
    today = timezone.now().date()
    return today + timedelta(days=(0 - today.weekday()) % 7 + 7)


@pytest.fixture
def at():
    """Build an aware UTC datetime on a date."""
    def _at(day: date, hour: int, minute: int = 0) -> datetime:
        return datetime.combine(day, time(hour, minute), tzinfo=dt_timezone.utc)

    return _at


@pytest.fixture
def create_business():
    """Factory fixture for creating businesses, open 09:00-17:00 every day by default."""
    from apps.core.models import Business, BusinessHour

    def _create_business(with_hours=True, **kwargs):
        defaults = {
            'name': 'Test Studio',
            'timezone': 'UTC',
            'status': Business.Status.APPROVED,
            'onboarding_status': Business.OnboardingStatus.LIVE,
        }
        defaults.update(kwargs)

        business = Business.objects.create(**defaults)
        if with_hours:
            for day in range(7):
                BusinessHour.objects.create(
                    business=business,
                    day_of_week=day,
                    open_time=time(9, 0),
                    close_time=time(17, 0),
                )
        return business

    return _create_business


@pytest.fixture
def business(create_business):
    return create_business()


@pytest.fixture
def create_resource(business):
    """Factory fixture for creating resources."""
    from apps.core.models import Resource

    def _create_resource(**kwargs):
        defaults = {
            'business': business,
            'type': Resource.Type.ROOM,
            'name': 'Room 1',
        }
        defaults.update(kwargs)

        return Resource.objects.create(**defaults)

    return _create_resource


@pytest.fixture
def resource(create_resource):
    return create_resource()


@pytest.fixture
def create_service(business):
    """Factory fixture for creating services, optionally linked to resources."""
    from apps.core.models import Service, ServiceResource

    def _create_service(resources=(), **kwargs):
        defaults = {
            'business': business,
            'name': 'Massage',
            'duration_minutes': 60,
        }
        defaults.update(kwargs)

        service = Service.objects.create(**defaults)
        for linked in resources:
            ServiceResource.objects.create(service=service, resource=linked)
        return service

    return _create_service


@pytest.fixture
def service(create_service):
    return create_service()


@pytest.fixture
def create_customer(business):
    """Factory fixture for creating customers."""
    from apps.core.models import Customer

    def _create_customer(**kwargs):
        defaults = {
            'business': business,
            'name': 'Test Customer',
            'email': 'customer@example.com',
        }
        defaults.update(kwargs)

        return Customer.objects.create(**defaults)

    return _create_customer


@pytest.fixture
def customer(create_customer):
    return create_customer()


@pytest.fixture
def create_booking(business, next_monday, at):
    """Factory fixture for creating bookings directly, bypassing the checks."""
    from apps.core.models import Booking

    def _create_booking(**kwargs):
        defaults = {
            'business': business,
            'status': Booking.Status.CONFIRMED,
            'start_at': at(next_monday, 10),
            'end_at': at(next_monday, 11),
        }
        defaults.update(kwargs)

        return Booking.objects.create(**defaults)

    return _create_booking


@pytest.fixture
def create_pricing_rule(service):
    """Factory fixture for creating pricing rules."""
    from apps.core.models import PricingRule

    def _create_rule(**kwargs):
        defaults = {
            'service': service,
            'name': 'Test Rule',
            'price_modifier': 10,
            'modifier_type': PricingRule.ModifierType.PERCENTAGE,
        }
        defaults.update(kwargs)

        return PricingRule.objects.create(**defaults)

    return _create_rule


@pytest.fixture
def create_waitlist_entry(business, customer):
    """Factory fixture for creating waitlist entries."""
    from apps.core.models import WaitlistEntry

    def _create_entry(**kwargs):
        defaults = {
            'business': business,
            'customer': customer,
            'status': WaitlistEntry.Status.ACTIVE,
            'response_deadline': timezone.now() + timedelta(hours=24),
        }
        defaults.update(kwargs)

        return WaitlistEntry.objects.create(**defaults)

    return _create_entry
