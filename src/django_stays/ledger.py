"""Balance ledger: remaining nights per membership, per year bucket.

Two buckets are modeled: the current calendar year and the next one. Any
other year raises YearOutOfRange. Every movement appends an immutable
BalanceEntry.

debit() must run inside the same atomic block as the conflict index insert;
the reservation services guarantee this.
"""

import logging
from datetime import date
from typing import Optional

from django.db import transaction
from django.utils import timezone

from .conf import max_balance_nights
from .exceptions import InsufficientBalance, YearOutOfRange
from .models import BalanceEntry, Membership

logger = logging.getLogger(__name__)


def bucket_field(year: int, today: Optional[date] = None) -> str:
    """Name of the Membership field that holds the balance for ``year``."""
    today = today or timezone.localdate()
    if year == today.year:
        return 'balance_current_year'
    if year == today.year + 1:
        return 'balance_next_year'
    raise YearOutOfRange(year, today.year)


def available_nights(membership: Membership, year: int, today: Optional[date] = None) -> int:
    """Remaining nights in the bucket for ``year``."""
    return getattr(membership, bucket_field(year, today))


@transaction.atomic
def debit(
    membership: Membership,
    year: int,
    nights: int,
    reservation=None,
    today: Optional[date] = None,
) -> Membership:
    """
    Charge ``nights`` against the bucket for ``year``.

    Raises:
        YearOutOfRange: If year is neither this year nor next.
        InsufficientBalance: If nights exceed the bucket.

    Returns:
        The refreshed Membership.
    """
    field = bucket_field(year, today)
    locked = Membership.objects.select_for_update().get(pk=membership.pk)
    available = getattr(locked, field)

    if nights > available:
        raise InsufficientBalance(year, nights, available)

    setattr(locked, field, available - nights)
    locked.save(update_fields=[field, 'updated_at'])

    BalanceEntry.objects.create(
        membership=locked,
        year=year,
        nights=nights,
        direction=BalanceEntry.Direction.DEBIT,
        balance_after=available - nights,
        reservation=reservation,
    )

    setattr(membership, field, available - nights)
    return locked


@transaction.atomic
def credit(
    membership: Membership,
    year: int,
    nights: int,
    reservation=None,
    today: Optional[date] = None,
) -> Membership:
    """
    Return ``nights`` to the bucket for ``year`` (reverses a debit).

    Credit is unbounded unless STAYS_MAX_BALANCE_NIGHTS is set, in which
    case the bucket is capped and the excess is dropped.

    Raises:
        YearOutOfRange: If year is neither this year nor next.
    """
    field = bucket_field(year, today)
    locked = Membership.objects.select_for_update().get(pk=membership.pk)
    current = getattr(locked, field)

    new_balance = current + nights
    cap = max_balance_nights()
    if cap is not None and new_balance > cap:
        logger.info(
            f"Credit of {nights} nights to membership {locked.pk} capped at {cap}"
        )
        new_balance = max(current, cap)

    credited = new_balance - current
    if credited > 0:
        setattr(locked, field, new_balance)
        locked.save(update_fields=[field, 'updated_at'])
        BalanceEntry.objects.create(
            membership=locked,
            year=year,
            nights=credited,
            direction=BalanceEntry.Direction.CREDIT,
            balance_after=new_balance,
            reservation=reservation,
        )

    setattr(membership, field, new_balance)
    return locked
