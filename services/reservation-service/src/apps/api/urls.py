# services/reservation-service/src/apps/api/urls.py
"""
Reservation API URL Configuration
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    # Availability
    AvailabilityView,
    AvailableResourcesView,
    # Booking
    BookingViewSet,
    # Pricing
    PricingRuleViewSet,
    PricePreviewView,
    # Waitlist
    WaitlistEntryViewSet,
)

app_name = 'api'

router = DefaultRouter()
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'waitlist', WaitlistEntryViewSet, basename='waitlist')
router.register(r'pricing-rules', PricingRuleViewSet, basename='pricing-rule')

urlpatterns = [
    path('', include(router.urls)),

    # Availability
    path(
        'businesses/<uuid:business_id>/availability/',
        AvailabilityView.as_view(),
        name='availability'
    ),
    path(
        'businesses/<uuid:business_id>/resources/available/',
        AvailableResourcesView.as_view(),
        name='available-resources'
    ),

    # Pricing
    path(
        'services/<uuid:service_id>/price-preview/',
        PricePreviewView.as_view(),
        name='price-preview'
    ),
]
