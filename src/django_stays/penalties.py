"""Penalty register.

Penalties are issued by the possession services (checkout regressions), by
the missed check-in sweep, or manually. An active penalty blocks the user
from booking the property while STAYS_PENALTIES_BLOCK_BOOKING is on.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from django.db import transaction
from django.utils import timezone

from .conf import missed_checkin_grace_days
from .exceptions import PenaltyNotFound
from .memberships import require_master
from .models import Penalty, Reservation
from .signals import emit, penalty_issued

logger = logging.getLogger(__name__)


def active_penalty_ids(user, property_id) -> list:
    return list(
        Penalty.objects.active()
        .for_property(property_id)
        .for_user(user)
        .values_list('pk', flat=True)
    )


def has_active_penalty(user, property_id) -> bool:
    """Does the user have any active penalty on the property?"""
    return Penalty.objects.active().for_property(property_id).for_user(user).exists()


def list_active_penalties(property_id):
    """Active penalties on the property, newest first."""
    return list(
        Penalty.objects.active()
        .for_property(property_id)
        .select_related('user')
        .order_by('-created_at')
    )


def issue_penalty(
    user,
    property_id,
    reason: str,
    *,
    source: str = Penalty.Source.MANUAL,
    reservation: Optional[Reservation] = None,
    details: Optional[dict] = None,
) -> Penalty:
    """
    Record a new active penalty.

    Args:
        user: The penalized user
        property_id: Property the penalty applies to
        reason: Reason text
        source: Penalty.Source value
        reservation: Optional reservation that caused the penalty
        details: Optional structured context (e.g. per-item mismatches)

    Returns:
        The created Penalty
    """
    with transaction.atomic():
        penalty = Penalty.objects.create(
            user=user,
            property_id=str(property_id),
            reason=reason,
            source=source,
            reservation=reservation,
            details=details or {},
        )
        emit(penalty_issued, sender=Penalty, penalty=penalty)

    logger.info(
        f"Penalty {penalty.pk} ({source}) issued to user {user.pk} on {property_id}"
    )
    return penalty


def issue_manual_penalty(property_id, user, by_user, reason: str) -> Penalty:
    """Issue a penalty on behalf of a MASTER member."""
    require_master(property_id, by_user, "issue penalties")
    return issue_penalty(
        user,
        property_id,
        reason,
        source=Penalty.Source.MANUAL,
        details={"issued_by": by_user.pk},
    )


@transaction.atomic
def revoke_penalty(penalty_id, by_user) -> Penalty:
    """
    Deactivate a penalty. MASTER members of the property only.

    Revoking an inactive penalty is a no-op.

    Raises:
        PenaltyNotFound: If no penalty has this id.
        NotAuthorized: If by_user is not a MASTER member of the property.
    """
    try:
        penalty = Penalty.objects.select_for_update().get(pk=penalty_id)
    except Penalty.DoesNotExist:
        raise PenaltyNotFound(penalty_id)
    require_master(penalty.property_id, by_user, "revoke penalties")

    if not penalty.is_active:
        return penalty

    penalty.is_active = False
    penalty.revoked_at = timezone.now()
    penalty.revoked_by = by_user
    penalty.save(update_fields=['is_active', 'revoked_at', 'revoked_by', 'updated_at'])

    logger.info(f"Penalty {penalty.pk} revoked by user {by_user.pk}")
    return penalty


def sweep_missed_checkins(today: Optional[date] = None) -> list[Penalty]:
    """
    Penalize confirmed reservations that were never checked into.

    A reservation is missed when it is still awaiting check-in more than
    STAYS_MISSED_CHECKIN_GRACE_DAYS after its start date. Each reservation
    is penalized at most once.

    Returns:
        The penalties issued by this sweep.
    """
    today = today or timezone.localdate()
    cutoff = today - timedelta(days=missed_checkin_grace_days())

    missed = (
        Reservation.objects.filter(
            status=Reservation.Status.CONFIRMED,
            possession_state=Reservation.Possession.AWAITING_CHECKIN,
            start_date__lt=cutoff,
        )
        .exclude(penalties__source=Penalty.Source.MISSED_CHECKIN)
        .select_related('requester')
    )

    issued = []
    for reservation in missed:
        issued.append(
            issue_penalty(
                reservation.requester,
                reservation.property_id,
                f"Missed check-in for stay starting {reservation.start_date}",
                source=Penalty.Source.MISSED_CHECKIN,
                reservation=reservation,
                details={"start_date": reservation.start_date.isoformat()},
            )
        )

    logger.info(f"Missed check-in sweep for {today}: {len(issued)} penalties issued")
    return issued
