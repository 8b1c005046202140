"""Possession handoff: check-in and check-out checklists.

A confirmed reservation moves AWAITING_CHECKIN -> CHECKED_IN -> COMPLETED.
Each step records an immutable ChecklistRecord with one condition per
inventory item. Checkout completes the reservation and penalizes the
requester for items that became DAMAGED or MISSING during the stay.

Only the reservation row is locked here; no property-wide lock is needed.
"""

import logging
from typing import Mapping, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import (
    AlreadySubmitted,
    ChecklistValidationError,
    InventoryEmptyError,
    NotAuthorized,
    PossessionStateError,
)
from .memberships import is_master
from .models import ChecklistRecord, Penalty, Reservation
from .penalties import issue_penalty
from .rules import list_inventory
from .signals import checklist_submitted, emit
from .states import check_possession_transition, check_reservation_transition

logger = logging.getLogger(__name__)

Phase = ChecklistRecord.Phase
Condition = ChecklistRecord.Condition
Possession = Reservation.Possession

# Higher is worse
CONDITION_SEVERITY = {
    Condition.OK.value: 0,
    Condition.WORN.value: 1,
    Condition.DAMAGED.value: 2,
    Condition.MISSING.value: 3,
}
PENALIZED_CONDITIONS = {Condition.DAMAGED.value, Condition.MISSING.value}


def _has_record(reservation, phase: str) -> bool:
    return ChecklistRecord.objects.filter(reservation=reservation, phase=phase).exists()


def get_checklist(reservation, phase: str) -> Optional[ChecklistRecord]:
    """The submitted checklist for a phase, or None."""
    return ChecklistRecord.objects.filter(reservation=reservation, phase=phase).first()


def can_checkin(reservation: Reservation, user) -> bool:
    """
    True iff the reservation is confirmed, the user is its requester, no
    check-in was recorded yet and the property has inventory.

    A property with zero inventory items cannot be checked into.
    """
    return (
        reservation.status == Reservation.Status.CONFIRMED
        and reservation.possession_state == Possession.AWAITING_CHECKIN
        and user.pk == reservation.requester_id
        and not _has_record(reservation, Phase.CHECKIN)
        and bool(list_inventory(reservation.property_id))
    )


def can_checkout(reservation: Reservation, user=None) -> bool:
    """True iff the guest is checked in and no check-out was recorded yet."""
    if user is not None and not _may_checkout(reservation, user):
        return False
    return (
        reservation.possession_state == Possession.CHECKED_IN
        and not _has_record(reservation, Phase.CHECKOUT)
    )


def _may_checkout(reservation, user) -> bool:
    return user.pk == reservation.requester_id or is_master(reservation.property_id, user)


def normalize_conditions(
    item_conditions: Mapping[str, str],
    inventory: list[str],
    note: str,
) -> dict[str, str]:
    """
    Validate a checklist submission against the inventory snapshot.

    At least one item must be reported, every reported item must be in the
    inventory snapshot, each condition must be OK, WORN, DAMAGED or MISSING, and a
    note is required when any item is not OK.

    Returns:
        Dict of item_id -> lowercase condition value

    Raises:
        ChecklistValidationError: Listing every problem found.
    """
    conditions = {str(item): str(cond).lower() for item, cond in dict(item_conditions).items()}
    problems = []

    inventory_set = set(inventory)
    unknown = sorted(set(conditions) - inventory_set)
    if unknown:
        problems.append(f"unknown items: {', '.join(unknown)}")

    if not conditions:
        problems.append("no items reported")

    for item_id, condition in sorted(conditions.items()):
        if condition not in CONDITION_SEVERITY:
            problems.append(f"invalid condition '{condition}' for item {item_id}")

    flagged = [
        c for c in conditions.values()
        if c in CONDITION_SEVERITY and c != Condition.OK.value
    ]
    if flagged and not (note or '').strip():
        problems.append("note required when any item is not OK")

    if problems:
        raise ChecklistValidationError(problems)

    return conditions


def condition_regressions(checkin: Mapping[str, str], checkout: Mapping[str, str]) -> list[dict]:
    """
    Items that became DAMAGED or MISSING between check-in and check-out.

    Only items recorded at check-in are compared.
    """
    regressions = []
    for item_id, before in sorted(checkin.items()):
        after = checkout.get(item_id)
        if after not in PENALIZED_CONDITIONS:
            continue
        if CONDITION_SEVERITY[after] > CONDITION_SEVERITY.get(before, 0):
            regressions.append({"item_id": item_id, "checkin": before, "checkout": after})
    return regressions


def _lock_reservation(reservation_id) -> Reservation:
    return Reservation.objects.select_for_update().get(pk=reservation_id)


def submit_checkin(
    reservation_id,
    user,
    item_conditions: Mapping[str, str],
    note: str = '',
) -> ChecklistRecord:
    """
    Record the check-in checklist and hand possession to the guest.

    The reservation status stays CONFIRMED.

    Raises:
        AlreadySubmitted: If a check-in checklist exists.
        PossessionStateError: If the reservation is not confirmed.
        NotAuthorized: If the user is not the requester.
        InventoryEmptyError: If the property has no inventory items.
        ChecklistValidationError: If the conditions are malformed.
    """
    with transaction.atomic():
        reservation = _lock_reservation(reservation_id)

        if _has_record(reservation, Phase.CHECKIN):
            raise AlreadySubmitted(reservation.pk, Phase.CHECKIN)

        if reservation.status != Reservation.Status.CONFIRMED:
            raise PossessionStateError(
                reservation.pk,
                reservation.possession_state,
                f"Cannot check into a reservation in status '{reservation.status}'",
            )
        check_possession_transition(reservation, Possession.CHECKED_IN)

        if user.pk != reservation.requester_id:
            raise NotAuthorized(user.pk, f"check into reservation {reservation.pk}")

        inventory = list_inventory(reservation.property_id)
        if not inventory:
            raise InventoryEmptyError(reservation.property_id)

        conditions = normalize_conditions(item_conditions, inventory, note)
        record = _create_record(reservation, Phase.CHECKIN, conditions, note, user)

        reservation.possession_state = Possession.CHECKED_IN
        reservation.save(update_fields=['possession_state', 'updated_at'])

        emit(checklist_submitted, sender=ChecklistRecord, checklist=record, reservation=reservation)

    logger.info(f"Check-in recorded for reservation {reservation.pk} by user {user.pk}")
    return record


def submit_checkout(
    reservation_id,
    user,
    item_conditions: Mapping[str, str],
    note: str = '',
) -> ChecklistRecord:
    """
    Record the check-out checklist and complete the reservation.

    Issues one penalty to the requester when any item regressed to DAMAGED
    or MISSING since check-in; the penalty reason lists every mismatch.

    Raises:
        AlreadySubmitted: If a check-out checklist exists.
        PossessionStateError: If the guest never checked in.
        NotAuthorized: If the user is neither requester nor MASTER.
        ChecklistValidationError: If the conditions are malformed or an item
            recorded at check-in is left out.
    """
    with transaction.atomic():
        reservation = _lock_reservation(reservation_id)

        if _has_record(reservation, Phase.CHECKOUT):
            raise AlreadySubmitted(reservation.pk, Phase.CHECKOUT)

        checkin = get_checklist(reservation, Phase.CHECKIN)
        if checkin is None or reservation.possession_state != Possession.CHECKED_IN:
            raise PossessionStateError(
                reservation.pk,
                reservation.possession_state,
                "Cannot check out before checking in",
            )
        check_possession_transition(reservation, Possession.COMPLETED)
        check_reservation_transition(reservation, Reservation.Status.COMPLETED)

        if not _may_checkout(reservation, user):
            raise NotAuthorized(user.pk, f"check out of reservation {reservation.pk}")

        inventory = list_inventory(reservation.property_id)
        conditions = normalize_conditions(item_conditions, inventory, note)
        _require_checked_in_items(checkin.conditions, conditions, inventory)
        record = _create_record(reservation, Phase.CHECKOUT, conditions, note, user)

        reservation.possession_state = Possession.COMPLETED
        reservation.status = Reservation.Status.COMPLETED
        reservation.completed_at = timezone.now()
        reservation.save(
            update_fields=['possession_state', 'status', 'completed_at', 'updated_at']
        )

        regressions = condition_regressions(checkin.conditions, conditions)
        if regressions:
            issue_penalty(
                reservation.requester,
                reservation.property_id,
                _regression_reason(regressions),
                source=Penalty.Source.CHECKOUT,
                reservation=reservation,
                details={"mismatches": regressions},
            )

        emit(checklist_submitted, sender=ChecklistRecord, checklist=record, reservation=reservation)

    logger.info(
        f"Check-out recorded for reservation {reservation.pk} by user {user.pk}, "
        f"{len(regressions)} regressions"
    )
    return record


def _require_checked_in_items(checkin, checkout, inventory) -> None:
    # Items retired from the inventory during the stay cannot be reported
    omitted = sorted((set(checkin) & set(inventory)) - set(checkout))
    if omitted:
        raise ChecklistValidationError(
            [f"items reported at check-in missing from check-out: {', '.join(omitted)}"]
        )


def _create_record(reservation, phase, conditions, note, user) -> ChecklistRecord:
    try:
        with transaction.atomic():
            return ChecklistRecord.objects.create(
                reservation=reservation,
                phase=phase,
                conditions=conditions,
                note=note or '',
                submitted_by=user,
            )
    except IntegrityError:
        raise AlreadySubmitted(reservation.pk, phase)


def _regression_reason(regressions: list[dict]) -> str:
    parts = [f"{r['item_id']} ({r['checkin']} -> {r['checkout']})" for r in regressions]
    return "Items damaged or missing at checkout: " + ", ".join(parts)
