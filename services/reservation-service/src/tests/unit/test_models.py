# services/reservation-service/src/tests/unit/test_models.py
"""
Unit Tests for Reservation Models

Tests for model methods and lifecycle rules.
"""

from datetime import date, time, timedelta

import pytest
from django.utils import timezone

from apps.core.models import (
    Booking,
    BookingHistory,
    BusinessHoliday,
    BusinessHour,
    DayHours,
    DispatchRequest,
    PricingRule,
    Resource,
    StaffException,
    StaffWorkingHour,
    WaitlistEntry,
    day_of_week,
)


class TestDayHours:
    """Tests for opening hour primitives."""

    def test_day_of_week_starts_on_sunday(self):
        assert day_of_week(date(2025, 1, 5)) == 0  # Sunday
        assert day_of_week(date(2025, 1, 6)) == 1  # Monday
        assert day_of_week(date(2025, 1, 11)) == 6  # Saturday

    def test_inverted_window_is_closed(self):
        assert DayHours.window(time(17, 0), time(9, 0)).closed is True
        assert DayHours.window(time(9, 0), time(9, 0)).closed is True

    def test_to_dict(self):
        assert DayHours.closed_day().to_dict() == {'closed': True}
        assert DayHours.window(time(9, 0), time(17, 30)).to_dict() == {
            'open': '09:00',
            'close': '17:30',
        }


@pytest.mark.django_db
class TestBusinessModel:
    """Tests for Business model."""

    def test_is_operational_requires_approved_and_live(self, create_business):
        assert create_business().is_operational is True
        assert create_business(status='pending').is_operational is False
        assert create_business(onboarding_status='paused').is_operational is False

    def test_resolve_weekly_hours(self, business, next_monday):
        hours = business.resolve_hours(next_monday)

        assert hours.closed is False
        assert hours.open == time(9, 0)
        assert hours.close == time(17, 0)

    def test_holiday_closes_day(self, business, next_monday):
        BusinessHoliday.objects.create(business=business, date=next_monday, reason='Holiday')

        assert business.resolve_hours(next_monday).closed is True

    def test_missing_weekly_row_is_closed(self, create_business, next_monday):
        business = create_business(with_hours=False)

        assert business.resolve_hours(next_monday).closed is True

    def test_closed_weekly_row(self, business, next_monday):
        BusinessHour.objects.filter(business=business, day_of_week=1).update(is_closed=True)

        assert business.resolve_hours(next_monday).closed is True


@pytest.mark.django_db
class TestResourceHours:
    """Tests for per-type hours resolution."""

    @pytest.fixture
    def staff(self, create_resource):
        staff = create_resource(type=Resource.Type.STAFF, name='Alex')
        StaffWorkingHour.objects.create(
            resource=staff, day_of_week=1, start_time=time(10, 0), end_time=time(14, 0)
        )
        return staff

    def test_room_follows_business_hours(self, resource, next_monday):
        hours = resource.resolve_hours(next_monday)

        assert (hours.open, hours.close) == (time(9, 0), time(17, 0))

    def test_staff_follows_working_hours(self, staff, next_monday):
        hours = staff.resolve_hours(next_monday)

        assert (hours.open, hours.close) == (time(10, 0), time(14, 0))

    def test_staff_without_working_hours_is_off(self, staff, next_monday):
        assert staff.resolve_hours(next_monday + timedelta(days=1)).closed is True

    def test_day_off_exception(self, staff, next_monday):
        StaffException.objects.create(resource=staff, date=next_monday, is_working=False)

        assert staff.resolve_hours(next_monday).closed is True

    def test_working_exception_with_hours_overrides(self, staff, next_monday):
        StaffException.objects.create(
            resource=staff, date=next_monday, is_working=True,
            start_time=time(12, 0), end_time=time(18, 0),
        )
        hours = staff.resolve_hours(next_monday)

        assert (hours.open, hours.close) == (time(12, 0), time(18, 0))

    def test_working_exception_without_hours_keeps_weekly(self, staff, next_monday):
        StaffException.objects.create(resource=staff, date=next_monday, is_working=True)
        hours = staff.resolve_hours(next_monday)

        assert (hours.open, hours.close) == (time(10, 0), time(14, 0))

    def test_business_holiday_closes_staff(self, staff, business, next_monday):
        BusinessHoliday.objects.create(business=business, date=next_monday)

        assert staff.resolve_hours(next_monday).closed is True


@pytest.mark.django_db
class TestBookingModel:
    """Tests for Booking model."""

    def test_transition_table(self, create_booking):
        booking = create_booking(status=Booking.Status.PENDING_PAYMENT)

        assert booking.can_transition_to(Booking.Status.CONFIRMED)
        assert booking.can_transition_to(Booking.Status.CANCELLED)
        assert not booking.can_transition_to(Booking.Status.COMPLETED)

    def test_terminal_statuses(self, create_booking):
        for status in (Booking.Status.COMPLETED, Booking.Status.CANCELLED,
                       Booking.Status.NO_SHOW, Booking.Status.EXPIRED):
            booking = create_booking(status=status)
            assert booking.is_terminal
            assert not booking.is_holding

    def test_overlapping_ignores_released_bookings(self, create_booking, next_monday, at):
        create_booking(status=Booking.Status.CANCELLED)
        held = create_booking(
            status=Booking.Status.PENDING,
            start_at=at(next_monday, 12),
            end_at=at(next_monday, 13),
        )

        found = Booking.overlapping(at(next_monday, 9), at(next_monday, 17))

        assert list(found) == [held]

    def test_overlapping_is_half_open(self, create_booking, next_monday, at):
        create_booking()  # 10:00-11:00

        assert not Booking.overlapping(at(next_monday, 11), at(next_monday, 12)).exists()
        assert not Booking.overlapping(at(next_monday, 9), at(next_monday, 10)).exists()
        assert Booking.overlapping(at(next_monday, 10, 59), at(next_monday, 12)).exists()

    def test_overlapping_applies_buffers(self, create_booking, next_monday, at):
        create_booking()  # 10:00-11:00

        assert Booking.overlapping(
            at(next_monday, 11, 4), at(next_monday, 12), buffer_after=5
        ).exists()
        assert Booking.overlapping(
            at(next_monday, 9), at(next_monday, 9, 55), buffer_before=10
        ).exists()


@pytest.mark.django_db
class TestBookingHistoryModel:
    """Tests for the append-only history log."""

    def test_record_serializes_values(self, create_booking, user_id):
        booking = create_booking()
        row = BookingHistory.record(
            booking, 'start_at', booking.start_at, None, changed_by=user_id, reason='Moved'
        )

        assert row.old_value == booking.start_at.isoformat()
        assert row.new_value is None
        assert row.changed_by == user_id

    def test_rows_cannot_be_modified(self, create_booking):
        row = BookingHistory.record(create_booking(), 'status', None, 'confirmed')

        row.reason = 'rewritten'
        with pytest.raises(ValueError):
            row.save()
        with pytest.raises(ValueError):
            row.delete()


@pytest.mark.django_db
class TestPricingRuleModel:
    """Tests for PricingRule conditions."""

    def test_applies_to_day_of_week(self, create_pricing_rule):
        rule = create_pricing_rule(day_of_week=[1, 2, 3, 4, 5])

        assert rule.applies_to(date(2025, 1, 6), time(10, 0))  # Monday
        assert not rule.applies_to(date(2025, 1, 5), time(10, 0))  # Sunday

    def test_time_window_is_half_open(self, create_pricing_rule):
        rule = create_pricing_rule(start_time=time(9, 0), end_time=time(12, 0))

        assert rule.applies_to(date(2025, 1, 6), time(9, 0))
        assert rule.applies_to(date(2025, 1, 6), time(11, 59))
        assert not rule.applies_to(date(2025, 1, 6), time(12, 0))

    def test_date_range_is_inclusive(self, create_pricing_rule):
        rule = create_pricing_rule(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))

        assert rule.applies_to(date(2025, 1, 31), time(10, 0))
        assert not rule.applies_to(date(2025, 2, 1), time(10, 0))

    def test_modifier_for(self, create_pricing_rule):
        percentage = create_pricing_rule(price_modifier=-15)
        fixed = create_pricing_rule(
            price_modifier=-100, modifier_type=PricingRule.ModifierType.FIXED
        )

        assert percentage.modifier_for(999) == -150
        assert fixed.modifier_for(999) == -100


@pytest.mark.django_db
class TestWaitlistEntryModel:
    """Tests for WaitlistEntry transitions."""

    def test_mark_notified(self, create_waitlist_entry):
        entry = create_waitlist_entry()
        now = timezone.now()

        entry.mark_notified(24, now=now)

        assert entry.status == WaitlistEntry.Status.NOTIFIED
        assert entry.notification_count == 1
        assert entry.notified_at == now
        assert entry.response_deadline == now + timedelta(hours=24)

    def test_convert_requires_notified(self, create_waitlist_entry):
        entry = create_waitlist_entry()

        with pytest.raises(ValueError):
            entry.mark_converted()

    def test_cancel_only_open(self, create_waitlist_entry):
        entry = create_waitlist_entry(status=WaitlistEntry.Status.EXPIRED)

        with pytest.raises(ValueError):
            entry.mark_cancelled()

    def test_by_priority(self, create_waitlist_entry, create_customer):
        low = create_waitlist_entry(priority='low', customer=create_customer(name='A'))
        vip = create_waitlist_entry(priority='vip', customer=create_customer(name='B'))
        normal = create_waitlist_entry(priority='normal', customer=create_customer(name='C'))
        high = create_waitlist_entry(priority='high', customer=create_customer(name='D'))

        assert list(WaitlistEntry.by_priority()) == [vip, high, normal, low]


@pytest.mark.django_db
class TestDispatchRequestModel:
    """Tests for DispatchRequest bookkeeping."""

    def test_due(self, business):
        now = timezone.now()
        due = DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.BOOKING_CONFIRMATION, business=business,
            scheduled_at=now - timedelta(minutes=1),
        )
        DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.BOOKING_CONFIRMATION, business=business,
            scheduled_at=now + timedelta(hours=1),
        )
        DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.BOOKING_CONFIRMATION, business=business,
            scheduled_at=now - timedelta(minutes=1), attempts=5,
            status=DispatchRequest.Status.FAILED,
        )

        assert list(DispatchRequest.due(now)) == [due]

    def test_mark_failed_then_sent(self, business):
        request = DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.BOOKING_CONFIRMATION, business=business,
        )

        request.mark_failed('timeout')
        assert request.status == DispatchRequest.Status.FAILED
        assert request.last_error == 'timeout'

        request.mark_sent()
        assert request.status == DispatchRequest.Status.SENT
        assert request.attempts == 2
        assert request.last_error is None
