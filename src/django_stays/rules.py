"""Scheduling rules and inventory snapshots.

The engine reads rules and inventory through providers configured by
STAYS_RULES_PROVIDER and STAYS_INVENTORY_PROVIDER. The defaults below read
the SchedulingRules and InventoryItem tables of this app.
"""

import logging
from dataclasses import dataclass

from django.db import transaction

from .conf import get_inventory_provider, get_rules_provider
from .exceptions import InvalidRules, RulesNotFound
from .locks import lock_property
from .memberships import require_master
from .models import InventoryItem, SchedulingRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropertyRules:
    """Stay length rules in effect for one booking attempt."""

    property_id: str
    min_stay_nights: int
    max_stay_nights: int

    def allows(self, nights: int) -> bool:
        return self.min_stay_nights <= nights <= self.max_stay_nights


def stored_rules(property_id: str) -> PropertyRules:
    """Default rules provider backed by SchedulingRules."""
    try:
        rules = SchedulingRules.objects.get(property_id=property_id)
    except SchedulingRules.DoesNotExist:
        raise RulesNotFound(property_id)
    return PropertyRules(
        property_id=rules.property_id,
        min_stay_nights=rules.min_stay_nights,
        max_stay_nights=rules.max_stay_nights,
    )


def stored_inventory(property_id: str) -> list[str]:
    """Default inventory provider: ids of active InventoryItem rows."""
    return list(
        InventoryItem.objects.for_property(property_id)
        .active()
        .order_by('item_id')
        .values_list('item_id', flat=True)
    )


def get_rules(property_id) -> PropertyRules:
    """Rules for the property from the configured provider."""
    return get_rules_provider()(str(property_id))


def list_inventory(property_id) -> list[str]:
    """Current inventory item ids for the property from the configured provider."""
    return list(get_inventory_provider()(str(property_id)))


def update_rules(
    property_id,
    by_user,
    min_stay_nights: int,
    max_stay_nights: int,
) -> SchedulingRules:
    """
    Change a property's stay length rules. MASTER members only.

    Runs under the property lock so no booking validates against
    half-updated rules.

    Raises:
        MembershipNotFound: If by_user is not a member.
        NotAuthorized: If by_user is not a MASTER member.
        InvalidRules: If min < 1 or max < min.
    """
    property_id = str(property_id)
    require_master(property_id, by_user, "update scheduling rules")

    if min_stay_nights < 1 or max_stay_nights < min_stay_nights:
        raise InvalidRules(min_stay_nights, max_stay_nights)

    with transaction.atomic():
        lock_property(property_id)
        rules, _ = SchedulingRules.objects.update_or_create(
            property_id=property_id,
            defaults={
                'min_stay_nights': min_stay_nights,
                'max_stay_nights': max_stay_nights,
            },
        )

    logger.info(
        f"Rules for {property_id} set to {min_stay_nights}-{max_stay_nights} "
        f"nights by user {by_user.pk}"
    )
    return rules
