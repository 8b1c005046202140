"""Tests for reservation services."""
from datetime import date, timedelta

import pytest
from django.utils import timezone

from django_stays.exceptions import (
    Cancelled,
    DateConflictError,
    InsufficientBalance,
    MembershipNotFound,
    NotCancellable,
    PastDateError,
    PenaltyBlockError,
    ReservationNotFound,
    RulesNotFound,
    StayLengthError,
    YearOutOfRange,
)
from django_stays.models import BalanceEntry, OccupiedInterval, Reservation
from django_stays.penalties import issue_penalty
from django_stays.possession import submit_checkin, submit_checkout
from django_stays.rules import PropertyRules
from django_stays.services import (
    available_nights_for,
    cancel_reservation,
    completed_reservations,
    list_reservations,
    request_reservation,
    upcoming_reservations,
    validate_stay,
)
from django_stays.signals import reservation_cancelled, reservation_confirmed
from tests.conftest import PROPERTY


class TestValidateStay:
    """Pure validation of the assembled request."""

    rules = PropertyRules(property_id=PROPERTY, min_stay_nights=2, max_stay_nights=5)
    today = date(2025, 10, 1)

    def test_returns_nights(self):
        assert validate_stay(self.rules, date(2025, 10, 3), date(2025, 10, 6), self.today) == 3

    def test_start_today_is_allowed(self):
        assert validate_stay(self.rules, self.today, date(2025, 10, 3), self.today) == 2

    def test_past_date_checked_first(self):
        with pytest.raises(PastDateError):
            validate_stay(self.rules, date(2025, 9, 30), date(2025, 9, 30), self.today)

    def test_too_short(self):
        with pytest.raises(StayLengthError) as exc_info:
            validate_stay(self.rules, date(2025, 10, 3), date(2025, 10, 4), self.today)
        assert exc_info.value.nights == 1

    def test_end_before_start_is_a_length_error(self):
        with pytest.raises(StayLengthError):
            validate_stay(self.rules, date(2025, 10, 6), date(2025, 10, 3), self.today)

    def test_end_year_must_be_modeled(self):
        with pytest.raises(YearOutOfRange) as exc_info:
            validate_stay(self.rules, date(2026, 12, 29), date(2027, 1, 2), self.today)
        assert exc_info.value.year == 2027


@pytest.mark.django_db
class TestRequestReservation:
    """Test suite for request_reservation."""

    def test_scenario_current_year_stay(self, owner, membership, today):
        """5 nights this year: confirmed, current bucket 10 -> 5."""
        reservation = request_reservation(
            PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 15), 2, today=today,
        )

        assert reservation.status == Reservation.Status.CONFIRMED
        assert reservation.debit_year == 2025
        assert reservation.nights_charged == 5
        assert reservation.possession_state == Reservation.Possession.AWAITING_CHECKIN
        membership.refresh_from_db()
        assert membership.balance_current_year == 5
        assert membership.balance_next_year == 20

    def test_scenario_next_year_stay(self, owner, membership, today):
        """8 nights next year: next bucket 20 -> 12, current untouched."""
        reservation = request_reservation(
            PROPERTY, owner, date(2026, 2, 10), date(2026, 2, 18), today=today,
        )

        assert reservation.debit_year == 2026
        membership.refresh_from_db()
        assert membership.balance_next_year == 12
        assert membership.balance_current_year == 10

    def test_scenario_overlap_rejected(self, stay, guest, guest_membership, today):
        """A second member cannot book nights already taken."""
        with pytest.raises(DateConflictError) as exc_info:
            request_reservation(
                PROPERTY, guest, date(2025, 10, 12), date(2025, 10, 14), today=today,
            )

        assert exc_info.value.conflicts == [(date(2025, 10, 10), date(2025, 10, 15))]
        guest_membership.refresh_from_db()
        assert guest_membership.balance_current_year == 10
        assert Reservation.objects.filter(requester=guest).count() == 0

    def test_scenario_insufficient_balance_mutates_nothing(self, owner, membership, today):
        """11 nights against a 10 night bucket."""
        with pytest.raises(InsufficientBalance) as exc_info:
            request_reservation(
                PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 21), today=today,
            )

        assert exc_info.value.missing == 1
        assert not Reservation.objects.exists()
        assert not OccupiedInterval.objects.exists()
        assert not BalanceEntry.objects.exists()
        membership.refresh_from_db()
        assert membership.balance_current_year == 10

    def test_checkout_day_can_start_next_stay(self, stay, guest, guest_membership, today):
        reservation = request_reservation(
            PROPERTY, guest, date(2025, 10, 15), date(2025, 10, 17), today=today,
        )
        assert reservation.status == Reservation.Status.CONFIRMED

    def test_stay_ending_on_booked_start_is_allowed(self, stay, guest, guest_membership, today):
        reservation = request_reservation(
            PROPERTY, guest, date(2025, 10, 7), date(2025, 10, 10), today=today,
        )
        assert reservation.status == Reservation.Status.CONFIRMED

    def test_max_stay_boundary(self, owner, membership, today):
        reservation = request_reservation(
            PROPERTY, owner, date(2026, 3, 1), date(2026, 3, 16), today=today,
        )
        assert reservation.nights_charged == 15

    def test_one_night_over_max_stay(self, owner, membership, today):
        with pytest.raises(StayLengthError) as exc_info:
            request_reservation(
                PROPERTY, owner, date(2026, 3, 1), date(2026, 3, 17), today=today,
            )
        assert exc_info.value.max_nights == 15

    def test_zero_nights_rejected(self, owner, membership, today):
        with pytest.raises(StayLengthError):
            request_reservation(
                PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 10), today=today,
            )

    def test_past_start_rejected(self, owner, membership, today):
        with pytest.raises(PastDateError):
            request_reservation(
                PROPERTY, owner, date(2025, 9, 28), date(2025, 10, 2), today=today,
            )

    def test_cross_year_stay_charges_start_year_only(self, owner, membership, today):
        """Dec 29 -> Jan 5 charges all 7 nights to the start year."""
        reservation = request_reservation(
            PROPERTY, owner, date(2025, 12, 29), date(2026, 1, 5), today=today,
        )

        assert reservation.debit_year == 2025
        membership.refresh_from_db()
        assert membership.balance_current_year == 3
        assert membership.balance_next_year == 20

    def test_stay_into_third_year_rejected(self, owner, membership, today):
        with pytest.raises(YearOutOfRange):
            request_reservation(
                PROPERTY, owner, date(2026, 12, 28), date(2027, 1, 2), today=today,
            )

    def test_non_member_rejected(self, guest, rules, today):
        with pytest.raises(MembershipNotFound):
            request_reservation(
                PROPERTY, guest, date(2025, 10, 10), date(2025, 10, 12), today=today,
            )

    def test_property_without_rules_rejected(self, owner, membership, today):
        with pytest.raises(RulesNotFound):
            request_reservation(
                "unknown-property", owner, date(2025, 10, 10), date(2025, 10, 12), today=today,
            )

    def test_active_penalty_blocks_booking(self, owner, membership, today):
        penalty = issue_penalty(owner, PROPERTY, "Left the gate open")

        with pytest.raises(PenaltyBlockError) as exc_info:
            request_reservation(
                PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 12), today=today,
            )
        assert exc_info.value.penalty_ids == [penalty.pk]

    def test_penalty_on_other_property_does_not_block(self, owner, membership, today):
        issue_penalty(owner, "other-property", "Noise complaint")

        reservation = request_reservation(
            PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 12), today=today,
        )
        assert reservation.status == Reservation.Status.CONFIRMED

    def test_penalty_gate_can_be_disabled(self, owner, membership, today, settings):
        settings.STAYS_PENALTIES_BLOCK_BOOKING = False
        issue_penalty(owner, PROPERTY, "Left the gate open")

        reservation = request_reservation(
            PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 12), today=today,
        )
        assert reservation.status == Reservation.Status.CONFIRMED

    def test_expired_deadline_cancels_before_writing(self, owner, membership, today):
        with pytest.raises(Cancelled):
            request_reservation(
                PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 12),
                today=today,
                deadline=timezone.now() - timedelta(seconds=1),
            )
        assert not Reservation.objects.exists()

    def test_future_deadline_allows_booking(self, owner, membership, today):
        reservation = request_reservation(
            PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 12),
            today=today,
            deadline=timezone.now() + timedelta(seconds=30),
        )
        assert reservation.status == Reservation.Status.CONFIRMED

    def test_confirmation_event_sent_on_commit(
        self, owner, membership, today, django_capture_on_commit_callbacks,
    ):
        received = []

        def receiver(sender, reservation, **kwargs):
            received.append(reservation)

        reservation_confirmed.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                reservation = request_reservation(
                    PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 12), today=today,
                )
        finally:
            reservation_confirmed.disconnect(receiver)

        assert received == [reservation]

    def test_rejected_request_sends_no_event(
        self, owner, membership, today, django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks() as callbacks:
            with pytest.raises(InsufficientBalance):
                request_reservation(
                    PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 21), today=today,
                )
        assert callbacks == []

    def test_failing_receiver_does_not_break_booking(
        self, owner, membership, today, django_capture_on_commit_callbacks,
    ):
        def broken_receiver(sender, **kwargs):
            raise RuntimeError("mail server down")

        reservation_confirmed.connect(broken_receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                reservation = request_reservation(
                    PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 12), today=today,
                )
        finally:
            reservation_confirmed.disconnect(broken_receiver)

        assert reservation.status == Reservation.Status.CONFIRMED


@pytest.mark.django_db
class TestCancelReservation:
    """Test suite for cancel_reservation."""

    def test_requester_cancels(self, stay, owner, membership, today):
        reservation = cancel_reservation(stay.pk, owner, today=today)

        assert reservation.status == Reservation.Status.CANCELLED
        assert reservation.cancelled_by == owner
        assert reservation.cancelled_at is not None
        membership.refresh_from_db()
        assert membership.balance_current_year == 10
        assert not OccupiedInterval.objects.filter(reservation=stay).exists()

    def test_cancelled_dates_can_be_rebooked(self, stay, owner, guest, guest_membership, today):
        cancel_reservation(stay.pk, owner, today=today)

        reservation = request_reservation(
            PROPERTY, guest, date(2025, 10, 12), date(2025, 10, 14), today=today,
        )
        assert reservation.status == Reservation.Status.CONFIRMED

    def test_second_cancel_never_double_credits(self, stay, owner, membership, today):
        cancel_reservation(stay.pk, owner, today=today)

        with pytest.raises(NotCancellable) as exc_info:
            cancel_reservation(stay.pk, owner, today=today)

        assert exc_info.value.status == Reservation.Status.CANCELLED
        membership.refresh_from_db()
        assert membership.balance_current_year == 10
        assert BalanceEntry.objects.filter(direction=BalanceEntry.Direction.CREDIT).count() == 1

    def test_other_common_member_cannot_cancel(self, stay, guest, guest_membership, today):
        with pytest.raises(NotCancellable):
            cancel_reservation(stay.pk, guest, today=today)
        stay.refresh_from_db()
        assert stay.status == Reservation.Status.CONFIRMED

    def test_master_can_cancel(self, stay, master, master_membership, membership, today):
        reservation = cancel_reservation(stay.pk, master, today=today)

        assert reservation.status == Reservation.Status.CANCELLED
        membership.refresh_from_db()
        assert membership.balance_current_year == 10

    def test_cannot_cancel_after_checkin(self, stay, owner, all_ok, today):
        submit_checkin(stay.pk, owner, all_ok)

        with pytest.raises(NotCancellable):
            cancel_reservation(stay.pk, owner, today=today)

    def test_unknown_reservation(self, owner, membership, today):
        with pytest.raises(ReservationNotFound):
            cancel_reservation(999999, owner, today=today)

    def test_expired_bucket_is_not_credited(self, stay, owner, membership):
        """Cancelling after the charged year left the modeled range credits nothing."""
        reservation = cancel_reservation(stay.pk, owner, today=date(2027, 1, 2))

        assert reservation.status == Reservation.Status.CANCELLED
        membership.refresh_from_db()
        assert membership.balance_current_year == 5
        assert membership.balance_next_year == 20

    def test_cancellation_event_sent_on_commit(
        self, stay, owner, today, django_capture_on_commit_callbacks,
    ):
        received = []

        def receiver(sender, reservation, cancelled_by, **kwargs):
            received.append((reservation.pk, cancelled_by))

        reservation_cancelled.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                cancel_reservation(stay.pk, owner, today=today)
        finally:
            reservation_cancelled.disconnect(receiver)

        assert received == [(stay.pk, owner)]


@pytest.mark.django_db
class TestCalendarQueries:
    """Read-only queries used for calendar rendering."""

    def test_list_reservations_in_range(self, stay, guest, guest_membership, today):
        later = request_reservation(
            PROPERTY, guest, date(2025, 11, 1), date(2025, 11, 3), today=today,
        )

        october = list_reservations(PROPERTY, date(2025, 10, 1), date(2025, 11, 1))
        assert october == [stay]

        autumn = list_reservations(PROPERTY, date(2025, 10, 1), date(2025, 12, 1))
        assert autumn == [stay, later]

    def test_range_starting_on_checkout_day_excludes_stay(self, stay):
        assert list_reservations(PROPERTY, date(2025, 10, 15), date(2025, 10, 20)) == []

    def test_cancelled_reservations_not_listed(self, stay, owner, today):
        cancel_reservation(stay.pk, owner, today=today)
        assert list_reservations(PROPERTY, date(2025, 10, 1), date(2025, 11, 1)) == []

    def test_upcoming_reservations_limit_and_order(self, owner, membership, today):
        first = request_reservation(PROPERTY, owner, date(2025, 10, 5), date(2025, 10, 6), today=today)
        second = request_reservation(PROPERTY, owner, date(2025, 10, 8), date(2025, 10, 9), today=today)
        request_reservation(PROPERTY, owner, date(2025, 10, 20), date(2025, 10, 21), today=today)

        assert upcoming_reservations(PROPERTY, limit=2, today=today) == [first, second]

    def test_completed_reservations(self, stay, owner, all_ok):
        assert completed_reservations(PROPERTY) == []
        submit_checkin(stay.pk, owner, all_ok)
        submit_checkout(stay.pk, owner, all_ok)

        assert [r.pk for r in completed_reservations(PROPERTY)] == [stay.pk]

    def test_available_nights_for(self, stay, owner, today):
        assert available_nights_for(PROPERTY, owner, 2025, today) == 5
        assert available_nights_for(PROPERTY, owner, 2026, today) == 20

    def test_available_nights_for_non_member(self, guest, rules, today):
        with pytest.raises(MembershipNotFound):
            available_nights_for(PROPERTY, guest, 2025, today)
