# services/reservation-service/src/tests/unit/test_conflicts.py
"""
Unit Tests for Conflict Detection and Resource Allocation
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.core.models import Booking
from apps.core.services import (
    ConflictDetector,
    ConflictScope,
    NoAvailableResourceError,
    ResourceAllocator,
)
from apps.core.services.conflict_service import intervals_overlap


@pytest.mark.django_db
class TestConflictDetector:
    """Tests for ConflictDetector."""

    def setup_method(self):
        self.detector = ConflictDetector()

    def test_intervals_overlap(self, next_monday, at):
        assert intervals_overlap(at(next_monday, 9), at(next_monday, 10), at(next_monday, 9, 30), at(next_monday, 11))
        assert not intervals_overlap(at(next_monday, 9), at(next_monday, 10), at(next_monday, 10), at(next_monday, 11))

    def test_buffers_of_requested_service(self, resource, create_service, create_booking, next_monday, at):
        service = create_service(buffer_before=10, buffer_after=5, resources=[resource])
        create_booking(resource=resource)  # ends 11:00
        scope = ConflictScope.for_resource(resource)

        assert not self.detector.is_available(
            scope, at(next_monday, 11, 4), at(next_monday, 12, 4), service=service
        )
        assert self.detector.is_available(
            scope, at(next_monday, 11, 5), at(next_monday, 12, 5), service=service
        )

    def test_buffer_before_blocks_preceding_slot(self, resource, create_service, create_booking, next_monday, at):
        service = create_service(buffer_before=10, resources=[resource])
        create_booking(resource=resource)  # starts 10:00
        scope = ConflictScope.for_resource(resource)

        assert not self.detector.is_available(
            scope, at(next_monday, 9), at(next_monday, 9, 55), service=service
        )
        assert self.detector.is_available(
            scope, at(next_monday, 8, 50), at(next_monday, 9, 50), service=service
        )

    def test_released_bookings_do_not_conflict(self, resource, create_booking, next_monday, at):
        create_booking(resource=resource, status=Booking.Status.CANCELLED)
        create_booking(resource=resource, status=Booking.Status.EXPIRED)

        assert self.detector.is_available(
            ConflictScope.for_resource(resource), at(next_monday, 10), at(next_monday, 11)
        )

    def test_exclude_booking(self, resource, create_booking, next_monday, at):
        booking = create_booking(resource=resource)

        assert self.detector.is_available(
            ConflictScope.for_resource(resource), at(next_monday, 10), at(next_monday, 11),
            exclude_booking_id=booking.id,
        )

    def test_service_scope_covers_linked_resources(self, create_resource, create_service, create_booking, next_monday, at):
        room = create_resource()
        service = create_service(resources=[room])
        create_booking(resource=room)  # booked without the service

        conflicts = self.detector.find_conflicts(
            ConflictScope.for_service(service), at(next_monday, 10, 30), at(next_monday, 11, 30)
        )

        assert len(conflicts) == 1

    def test_business_scope(self, business, create_business, create_booking, next_monday, at):
        other = create_business(name='Other')
        create_booking(business=other)

        assert self.detector.is_available(
            ConflictScope.for_business(business), at(next_monday, 10), at(next_monday, 11)
        )
        assert not self.detector.is_available(
            ConflictScope.for_business(other), at(next_monday, 10), at(next_monday, 11)
        )

    def test_empty_scope_rejected(self, next_monday, at):
        with pytest.raises(ValueError):
            ConflictScope().filter(Booking.objects.all())


@pytest.mark.django_db
class TestResourceAllocator:
    """Tests for ResourceAllocator."""

    def setup_method(self):
        self.allocator = ResourceAllocator()

    @pytest.fixture
    def rooms(self, create_resource):
        now = timezone.now()
        first = create_resource(name='Room 1', created_at=now - timedelta(minutes=2))
        second = create_resource(name='Room 2', created_at=now - timedelta(minutes=1))
        return first, second

    def test_first_free_in_creation_order(self, rooms, create_service, next_monday, at):
        first, second = rooms
        service = create_service(resources=[second, first])

        assert self.allocator.allocate(service, at(next_monday, 10), at(next_monday, 11)) == first

    def test_skips_busy_resource(self, rooms, create_service, create_booking, next_monday, at):
        first, second = rooms
        service = create_service(resources=[first, second])
        create_booking(resource=first)

        assert self.allocator.allocate(service, at(next_monday, 10), at(next_monday, 11)) == second
        assert self.allocator.available_resources(
            service, at(next_monday, 10), at(next_monday, 11)
        ) == [second]

    def test_skips_inactive_resource(self, rooms, create_service, next_monday, at):
        first, second = rooms
        first.is_active = False
        first.save()
        service = create_service(resources=[first, second])

        assert self.allocator.allocate(service, at(next_monday, 10), at(next_monday, 11)) == second

    def test_no_available_resource(self, rooms, create_service, create_booking, next_monday, at):
        first, second = rooms
        service = create_service(resources=[first, second])
        create_booking(resource=first)
        create_booking(resource=second)

        with pytest.raises(NoAvailableResourceError):
            self.allocator.allocate(service, at(next_monday, 10), at(next_monday, 11))
