"""
Lifecycle Controller Tests

Tests: booking creation rules, the status state machine, idempotent
rejection of illegal transitions and the decline-reason invariant
"""
from datetime import datetime, timedelta, timezone

import pytest

from conftest import T0, add_restaurant, booking_request
from tablebook.errors import InvalidTransition, NotFound, ValidationError
from tablebook.lifecycle import AUTO_DECLINE_REASON, TRANSITIONS, sources_of
from tablebook.models import Restaurant
from tablebook.schemas import TERMINAL_STATUSES, BookingStatus, Decision, TableStatus


class TestCreateBooking:
    """Test suite for guest booking requests"""

    def test_new_booking_is_pending(self, make_booking, clock, restaurant_id):
        booking = make_booking()

        assert booking.status == BookingStatus.PENDING
        assert booking.restaurant_id == restaurant_id
        assert booking.created_at == clock.now
        assert booking.decline_reason is None
        assert booking.seat_capacity == 4
        assert booking.table_label == "Window"
        assert len(booking.booking_reference) == 7

    def test_party_larger_than_table_is_rejected(self, lifecycle, store, restaurant_id):
        with pytest.raises(ValidationError, match="up to 4 guests"):
            lifecycle.create_booking(restaurant_id, booking_request(guest_count=6))

        assert store.get(restaurant_id) == []

    def test_party_equal_to_capacity_is_accepted(self, make_booking):
        assert make_booking(guest_count=4).guest_count == 4

    def test_unknown_table_is_rejected(self, lifecycle, restaurant_id):
        with pytest.raises(ValidationError):
            lifecycle.create_booking(restaurant_id, booking_request(table_id="w1"))

    def test_unknown_restaurant(self, lifecycle):
        with pytest.raises(NotFound):
            lifecycle.create_booking(4242, booking_request())

    @pytest.mark.parametrize("field", ["guest_name", "guest_phone"])
    def test_blank_guest_details_are_rejected(self, lifecycle, restaurant_id, field):
        with pytest.raises(ValidationError):
            lifecycle.create_booking(restaurant_id, booking_request(**{field: "   "}))

    def test_non_positive_party_is_rejected(self, lifecycle, restaurant_id):
        with pytest.raises(ValidationError):
            lifecycle.create_booking(restaurant_id, booking_request(guest_count=0))

    def test_overlapping_requests_are_both_stored(self, make_booking, store, restaurant_id):
        slot = T0 + timedelta(hours=1)
        make_booking(date_time=slot)
        make_booking(date_time=slot)

        assert len(store.get(restaurant_id)) == 2

    def test_capacity_captured_at_creation(self, make_booking, session_factory, restaurant_id, lifecycle):
        booking = make_booking(guest_count=4)

        with session_factory() as db:
            restaurant = db.get(Restaurant, restaurant_id)
            restaurant.layout = [{"id": "T", "type": "table", "seats": 2, "label": "T"}]
            db.commit()

        stored = lifecycle.get_booking(booking.id)
        assert stored.seat_capacity == 4
        assert stored.guest_count == 4
        with pytest.raises(ValidationError):
            lifecycle.create_booking(restaurant_id, booking_request(guest_count=4))


class TestSlotTimezone:
    """Test suite for normalizing the requested slot to UTC"""

    def test_naive_slot_is_restaurant_local(self, lifecycle, session_factory):
        rid = add_restaurant(session_factory, name="Berlin", timezone="Europe/Berlin")
        booking = lifecycle.create_booking(
            rid, booking_request(date_time=datetime(2025, 6, 1, 19, 0))
        )
        assert booking.date_time == datetime(2025, 6, 1, 17, 0, tzinfo=timezone.utc)

    def test_offset_slot_is_converted(self, lifecycle, session_factory):
        rid = add_restaurant(session_factory, name="Berlin", timezone="Europe/Berlin")
        slot = datetime(2025, 6, 1, 19, 0, tzinfo=timezone(timedelta(hours=3)))
        booking = lifecycle.create_booking(rid, booking_request(date_time=slot))
        assert booking.date_time == datetime(2025, 6, 1, 16, 0, tzinfo=timezone.utc)

    def test_utc_restaurant_keeps_wall_clock(self, make_booking):
        booking = make_booking(date_time=datetime(2025, 6, 1, 19, 0))
        assert booking.date_time == datetime(2025, 6, 1, 19, 0, tzinfo=timezone.utc)


class TestTransitions:
    """Test suite for the booking state machine"""

    def test_confirm(self, make_booking, lifecycle):
        booking = lifecycle.confirm(make_booking().id)
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.decline_reason is None

    def test_confirm_twice_is_rejected_without_change(self, make_booking, lifecycle):
        booking = make_booking()
        lifecycle.decide(booking.id, Decision.CONFIRM)

        with pytest.raises(InvalidTransition) as exc_info:
            lifecycle.decide(booking.id, Decision.CONFIRM)

        assert exc_info.value.booking.status == BookingStatus.CONFIRMED
        assert lifecycle.get_booking(booking.id).status == BookingStatus.CONFIRMED

    def test_decline_with_reason(self, make_booking, lifecycle):
        booking = lifecycle.decide(make_booking().id, Decision.DECLINE, "  Kitchen closed ")
        assert booking.status == BookingStatus.DECLINED
        assert booking.decline_reason == "Kitchen closed"

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_decline_needs_reason(self, make_booking, lifecycle, reason):
        booking = make_booking()
        with pytest.raises(ValidationError):
            lifecycle.decline(booking.id, reason)
        assert lifecycle.get_booking(booking.id).status == BookingStatus.PENDING

    def test_decline_after_confirm_is_rejected(self, make_booking, lifecycle):
        booking = make_booking()
        lifecycle.confirm(booking.id)
        with pytest.raises(InvalidTransition):
            lifecycle.decline(booking.id, "Changed my mind")
        stored = lifecycle.get_booking(booking.id)
        assert stored.status == BookingStatus.CONFIRMED
        assert stored.decline_reason is None

    @pytest.mark.parametrize("reason", [None, ""])
    def test_decline_without_reason_after_confirm_reports_current_state(
        self, make_booking, lifecycle, reason
    ):
        booking = make_booking()
        lifecycle.confirm(booking.id)

        with pytest.raises(InvalidTransition) as exc_info:
            lifecycle.decide(booking.id, Decision.DECLINE, reason)

        assert exc_info.value.booking.status == BookingStatus.CONFIRMED
        assert lifecycle.get_booking(booking.id).status == BookingStatus.CONFIRMED

    def test_decline_without_reason_after_decline(self, make_booking, lifecycle):
        booking = make_booking()
        lifecycle.decline(booking.id, "Full")

        with pytest.raises(InvalidTransition) as exc_info:
            lifecycle.decline(booking.id, "  ")

        assert exc_info.value.booking.decline_reason == "Full"

    def test_declined_is_terminal(self, make_booking, lifecycle):
        booking = make_booking()
        lifecycle.decline(booking.id, "Full")
        for action in (lifecycle.confirm, lifecycle.mark_occupied, lifecycle.complete):
            with pytest.raises(InvalidTransition):
                action(booking.id)
        assert lifecycle.get_booking(booking.id).decline_reason == "Full"

    def test_occupy_requires_confirmation(self, make_booking, lifecycle):
        booking = make_booking()
        with pytest.raises(InvalidTransition):
            lifecycle.mark_occupied(booking.id)

        lifecycle.confirm(booking.id)
        assert lifecycle.mark_occupied(booking.id).status == BookingStatus.OCCUPIED

    def test_complete_only_after_service_window(self, make_booking, lifecycle, clock):
        booking = make_booking(date_time=T0 + timedelta(minutes=30))
        lifecycle.confirm(booking.id)
        lifecycle.mark_occupied(booking.id)

        clock.advance(minutes=90)
        with pytest.raises(InvalidTransition):
            lifecycle.complete(booking.id)

        clock.advance(minutes=60)
        completed = lifecycle.complete(booking.id)
        assert completed.status == BookingStatus.COMPLETED

        with pytest.raises(InvalidTransition):
            lifecycle.complete(booking.id)

    def test_unknown_booking(self, lifecycle):
        with pytest.raises(NotFound):
            lifecycle.confirm(99999)

    def test_booking_of_other_restaurant_is_not_found(self, make_booking, lifecycle, session_factory):
        other = add_restaurant(session_factory, name="Elsewhere")
        booking = make_booking()
        with pytest.raises(NotFound):
            lifecycle.confirm(booking.id, restaurant_id=other)
        assert lifecycle.get_booking(booking.id).status == BookingStatus.PENDING

    def test_sources_of_targets(self):
        assert sources_of(BookingStatus.CONFIRMED) == {BookingStatus.PENDING}
        assert sources_of(BookingStatus.DECLINED) == {BookingStatus.PENDING}
        assert sources_of(BookingStatus.OCCUPIED) == {BookingStatus.CONFIRMED}
        assert sources_of(BookingStatus.COMPLETED) == {BookingStatus.CONFIRMED, BookingStatus.OCCUPIED}
        assert sources_of(BookingStatus.PENDING) == set()

    def test_every_status_has_transitions_and_terminal_ones_have_none(self):
        assert set(TRANSITIONS) == set(BookingStatus)
        for status in TERMINAL_STATUSES:
            assert TRANSITIONS[status] == frozenset()
        for status in set(BookingStatus) - TERMINAL_STATUSES:
            assert TRANSITIONS[status]


class TestExpire:
    """Test suite for the timeout transition"""

    def test_not_before_timeout(self, make_booking, lifecycle, clock):
        booking = make_booking()
        clock.advance(minutes=2, seconds=59)
        with pytest.raises(InvalidTransition):
            lifecycle.expire(booking.id)
        assert lifecycle.get_booking(booking.id).status == BookingStatus.PENDING

    def test_at_timeout(self, make_booking, lifecycle, clock):
        booking = make_booking()
        clock.advance(minutes=3)
        expired = lifecycle.expire(booking.id)
        assert expired.status == BookingStatus.DECLINED
        assert expired.decline_reason == AUTO_DECLINE_REASON

    def test_staff_answer_wins_over_timeout(self, make_booking, lifecycle, clock):
        booking = make_booking()
        lifecycle.confirm(booking.id)
        clock.advance(minutes=5)
        with pytest.raises(InvalidTransition):
            lifecycle.expire(booking.id)
        assert lifecycle.get_booking(booking.id).status == BookingStatus.CONFIRMED

    def test_seconds_left(self, make_booking, lifecycle, clock):
        booking = make_booking()
        assert lifecycle.seconds_left(booking) == 180
        clock.advance(seconds=100)
        assert lifecycle.seconds_left(booking) == 80
        clock.advance(minutes=10)
        assert lifecycle.seconds_left(booking) == 0


def test_decline_reason_present_only_when_declined(make_booking, lifecycle, store, clock, restaurant_id):
    confirmed = make_booking()
    declined = make_booking()
    seated = make_booking(date_time=T0 - timedelta(minutes=1))
    make_booking()
    expired = make_booking()

    lifecycle.confirm(confirmed.id)
    lifecycle.decline(declined.id, "No staff tonight")
    lifecycle.confirm(seated.id)
    lifecycle.mark_occupied(seated.id)
    clock.advance(minutes=4)
    lifecycle.expire(expired.id)

    for booking in store.get(restaurant_id):
        assert (booking.decline_reason is not None) == (booking.status == BookingStatus.DECLINED)


def test_resolve_availability_reads_current_bookings(make_booking, lifecycle, clock, restaurant_id):
    assert lifecycle.resolve_availability(restaurant_id) == {
        "T": TableStatus.AVAILABLE,
        "t2": TableStatus.AVAILABLE,
    }

    make_booking(date_time=T0 - timedelta(minutes=1))
    booked = make_booking(table_id="t2", date_time=T0 + timedelta(minutes=30))
    lifecycle.confirm(booked.id)

    assert lifecycle.resolve_availability(restaurant_id) == {
        "T": TableStatus.PENDING,
        "t2": TableStatus.BOOKED,
    }


def test_resolve_availability_unknown_restaurant(lifecycle):
    with pytest.raises(NotFound):
        lifecycle.resolve_availability(4242)


class TestNaiveInstants:
    """Instants without an offset are taken as UTC"""

    def test_resolve_availability(self, make_booking, lifecycle, restaurant_id):
        booked = make_booking(table_id="t2", date_time=T0 + timedelta(minutes=30))
        lifecycle.confirm(booked.id)

        statuses = lifecycle.resolve_availability(restaurant_id, T0.replace(tzinfo=None))

        assert statuses == {"T": TableStatus.AVAILABLE, "t2": TableStatus.BOOKED}

    def test_seconds_left(self, make_booking, lifecycle):
        booking = make_booking()
        naive = (T0 + timedelta(seconds=30)).replace(tzinfo=None)
        assert lifecycle.seconds_left(booking, naive) == 150

    def test_expire_and_complete(self, make_booking, lifecycle):
        pending = make_booking()
        seated = make_booking(date_time=T0)
        lifecycle.confirm(seated.id)
        later = (T0 + timedelta(hours=2)).replace(tzinfo=None)

        assert lifecycle.is_expired(pending, later)
        assert lifecycle.expire(pending.id, later).status == BookingStatus.DECLINED
        assert lifecycle.is_finished(lifecycle.get_booking(seated.id), later)
        assert lifecycle.complete(seated.id, now=later).status == BookingStatus.COMPLETED

    def test_local_instant_uses_restaurant_zone(self, lifecycle, session_factory):
        rid = add_restaurant(session_factory, name="Moscow", timezone="Europe/Moscow")
        at = lifecycle.local_instant(rid, datetime(2025, 6, 1, 21, 0))
        assert at == T0
        assert lifecycle.local_instant(rid, None) == T0
