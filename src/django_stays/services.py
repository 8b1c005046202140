"""Reservation service layer.

All reservation writes go through these functions.
Direct model manipulation bypasses invariants and is unsupported.

Functions:
- validate_stay(): Pure date and stay-length checks
- request_reservation(): Validate and commit a booking
- cancel_reservation(): Release dates and credit the balance back
- list_reservations(): Booked reservations intersecting a date range
- upcoming_reservations() / completed_reservations(): Calendar side panels
- available_nights_for(): Balance display for one member and year
"""

import logging
from datetime import date, datetime
from typing import Optional

from django.db import OperationalError, transaction
from django.utils import timezone

from . import conflicts, ledger
from .conf import penalties_block_booking
from .exceptions import (
    ConcurrencyAborted,
    DateConflictError,
    InsufficientBalance,
    NotCancellable,
    PastDateError,
    PenaltyBlockError,
    ReservationNotFound,
    StayLengthError,
    YearOutOfRange,
)
from .locks import lock_property
from .memberships import get_membership, is_master
from .models import Reservation
from .penalties import active_penalty_ids
from .rules import PropertyRules, get_rules
from .signals import emit, reservation_cancelled, reservation_confirmed
from .states import check_reservation_transition

logger = logging.getLogger(__name__)

Status = Reservation.Status


def validate_stay(
    rules: PropertyRules,
    start_date: date,
    end_date: date,
    today: date,
) -> int:
    """
    Check dates and stay length against the rules; return the number of nights.

    Checks, in order:
    1. start_date is not before today
    2. min_stay_nights <= nights <= max_stay_nights
    3. start and end years both have a balance bucket

    Raises:
        PastDateError, StayLengthError, YearOutOfRange
    """
    if start_date < today:
        raise PastDateError(start_date, today)

    nights = (end_date - start_date).days
    if not rules.allows(nights):
        raise StayLengthError(nights, rules.min_stay_nights, rules.max_stay_nights)

    for year in (start_date.year, end_date.year):
        if year not in (today.year, today.year + 1):
            raise YearOutOfRange(year, today.year)

    return nights


def request_reservation(
    property_id,
    requester,
    start_date: date,
    end_date: date,
    guest_count: int = 1,
    *,
    today: Optional[date] = None,
    deadline: Optional[datetime] = None,
) -> Reservation:
    """
    Validate and commit a reservation for [start_date, end_date).

    Validation and commit run as one unit under the property lock: the
    conflict index insert, the balance debit and the reservation row are
    written together or not at all. The start date's year picks the
    balance bucket, even for stays that cross into the next year.

    Args:
        property_id: The property to book
        requester: The authenticated user booking the stay
        start_date: Check-in day
        end_date: Checkout day (free for the next guest)
        guest_count: Number of guests
        today: Reference date (defaults to the local date)
        deadline: Optional aware datetime bounding the wait for the lock

    Returns:
        The CONFIRMED Reservation

    Raises:
        PastDateError, StayLengthError, YearOutOfRange, MembershipNotFound,
        PenaltyBlockError, DateConflictError, InsufficientBalance,
        Cancelled, ConcurrencyAborted
    """
    property_id = str(property_id)
    today = today or timezone.localdate()

    try:
        with transaction.atomic():
            lock_property(property_id, deadline)

            rules = get_rules(property_id)
            nights = validate_stay(rules, start_date, end_date, today)

            membership = get_membership(property_id, requester, for_update=True)

            if penalties_block_booking():
                penalty_ids = active_penalty_ids(requester, property_id)
                if penalty_ids:
                    raise PenaltyBlockError(property_id, requester.pk, penalty_ids)

            booked = conflicts.find_conflicts(property_id, start_date, end_date)
            if booked:
                raise DateConflictError(property_id, start_date, end_date, booked)

            debit_year = start_date.year
            available = ledger.available_nights(membership, debit_year, today)
            if nights > available:
                raise InsufficientBalance(debit_year, nights, available)

            reservation = Reservation(
                property_id=property_id,
                requester=requester,
                membership=membership,
                start_date=start_date,
                end_date=end_date,
                guest_count=guest_count,
                status=Status.PENDING,
                debit_year=debit_year,
                nights_charged=nights,
            )
            check_reservation_transition(reservation, Status.CONFIRMED)
            reservation.status = Status.CONFIRMED
            reservation.save()

            conflicts.insert_interval(reservation)
            ledger.debit(membership, debit_year, nights, reservation=reservation, today=today)

            emit(reservation_confirmed, sender=Reservation, reservation=reservation)
    except OperationalError as e:
        logger.warning(f"Booking on {property_id} aborted by the database: {e}")
        raise ConcurrencyAborted(property_id, str(e))

    logger.info(
        f"Reservation {reservation.pk} confirmed on {property_id} "
        f"[{start_date}, {end_date}) for user {requester.pk}, "
        f"{nights} nights charged to {debit_year}"
    )
    return reservation


def get_reservation(reservation_id) -> Reservation:
    try:
        return Reservation.objects.get(pk=reservation_id)
    except Reservation.DoesNotExist:
        raise ReservationNotFound(reservation_id)


def cancel_reservation(
    reservation_id,
    by_user,
    *,
    today: Optional[date] = None,
    deadline: Optional[datetime] = None,
) -> Reservation:
    """
    Cancel a pending or confirmed reservation.

    Only the requester or a MASTER member of the property may cancel, and
    only before check-in. Releases the dates and credits the nights back to
    the bucket they were charged to. Cancelling twice raises NotCancellable
    and never credits twice.

    Raises:
        ReservationNotFound, NotCancellable, Cancelled, ConcurrencyAborted
    """
    today = today or timezone.localdate()
    property_id = get_reservation(reservation_id).property_id

    try:
        with transaction.atomic():
            lock_property(property_id, deadline)
            reservation = (
                Reservation.objects.select_for_update()
                .select_related('membership')
                .get(pk=reservation_id)
            )

            if reservation.status not in (Status.PENDING, Status.CONFIRMED):
                raise NotCancellable(reservation.pk, reservation.status)

            if reservation.possession_state != Reservation.Possession.AWAITING_CHECKIN:
                raise NotCancellable(
                    reservation.pk,
                    reservation.status,
                    "Reservation cannot be cancelled after check-in",
                )

            if by_user.pk != reservation.requester_id and not is_master(property_id, by_user):
                raise NotCancellable(
                    reservation.pk,
                    reservation.status,
                    f"User {by_user.pk} may not cancel reservation {reservation.pk}",
                )

            conflicts.remove_interval(property_id, reservation.pk)
            _credit_back(reservation, today)

            check_reservation_transition(reservation, Status.CANCELLED)
            reservation.status = Status.CANCELLED
            reservation.cancelled_at = timezone.now()
            reservation.cancelled_by = by_user
            reservation.save(
                update_fields=['status', 'cancelled_at', 'cancelled_by', 'updated_at']
            )

            emit(
                reservation_cancelled,
                sender=Reservation,
                reservation=reservation,
                cancelled_by=by_user,
            )
    except OperationalError as e:
        logger.warning(f"Cancellation on {property_id} aborted by the database: {e}")
        raise ConcurrencyAborted(property_id, str(e))

    logger.info(f"Reservation {reservation.pk} cancelled by user {by_user.pk}")
    return reservation


def _credit_back(reservation: Reservation, today: date) -> None:
    # A bucket that has rolled out of range is gone; there is no rollover.
    try:
        ledger.credit(
            reservation.membership,
            reservation.debit_year,
            reservation.nights_charged,
            reservation=reservation,
            today=today,
        )
    except YearOutOfRange:
        logger.warning(
            f"Reservation {reservation.pk}: {reservation.debit_year} bucket expired, "
            f"{reservation.nights_charged} nights not credited"
        )


def list_reservations(property_id, start_date: date, end_date: date) -> list[Reservation]:
    """Confirmed and completed reservations intersecting [start_date, end_date)."""
    return list(
        Reservation.objects.for_property(property_id)
        .booked()
        .intersecting(start_date, end_date)
        .select_related('requester')
        .order_by('start_date')
    )


def upcoming_reservations(property_id, limit: int = 3, today: Optional[date] = None):
    """Next confirmed stays starting today or later."""
    today = today or timezone.localdate()
    return list(
        Reservation.objects.for_property(property_id)
        .upcoming(today)
        .select_related('requester')[:limit]
    )


def completed_reservations(property_id, limit: int = 3):
    """Most recently completed stays."""
    return list(
        Reservation.objects.for_property(property_id)
        .completed()
        .select_related('requester')[:limit]
    )


def available_nights_for(property_id, user, year: int, today: Optional[date] = None) -> int:
    """
    Remaining nights for a member in the bucket for ``year``.

    Raises:
        MembershipNotFound, YearOutOfRange
    """
    membership = get_membership(property_id, user)
    return ledger.available_nights(membership, year, today)
