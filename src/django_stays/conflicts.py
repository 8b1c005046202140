"""Conflict index: booked date intervals per property.

Intervals are half-open ``[start, end)``. A stay ending on day D and another
starting on day D do not conflict; the checkout day is free for the next guest.

Only the reservation services mutate the index, and only while holding the
property lock (see ``locks.lock_property``).
"""

from datetime import date

from .models import OccupiedInterval


def intervals_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """True iff [start_a, end_a) and [start_b, end_b) share at least one day."""
    return start_a < end_b and start_b < end_a


def find_conflicts(property_id, start_date: date, end_date: date) -> list[tuple[date, date]]:
    """Booked intervals of the property overlapping [start_date, end_date)."""
    return list(
        OccupiedInterval.objects.for_property(property_id)
        .overlapping(start_date, end_date)
        .order_by('start_date')
        .values_list('start_date', 'end_date')
    )


def has_overlap(property_id, start_date: date, end_date: date) -> bool:
    """Does [start_date, end_date) overlap any booked interval of the property?"""
    return (
        OccupiedInterval.objects.for_property(property_id)
        .overlapping(start_date, end_date)
        .exists()
    )


def insert_interval(reservation) -> OccupiedInterval:
    """Mark the reservation's dates as booked. Caller verified no overlap."""
    return OccupiedInterval.objects.create(
        property_id=reservation.property_id,
        reservation=reservation,
        start_date=reservation.start_date,
        end_date=reservation.end_date,
    )


def remove_interval(property_id, reservation_id) -> bool:
    """Release a reservation's dates. Returns False if nothing was booked."""
    deleted, _ = OccupiedInterval.objects.filter(
        property_id=str(property_id),
        reservation_id=reservation_id,
    ).delete()
    return deleted > 0
