"""Pytest configuration and shared fixtures for django-stays tests."""

from datetime import date

import pytest

from django_stays.models import InventoryItem, Membership, SchedulingRules
from django_stays.services import request_reservation

PROPERTY = "villa-azul"
TODAY = date(2025, 10, 1)


@pytest.fixture
def today():
    """Reference date for every booking in the suite."""
    return TODAY


@pytest.fixture
def rules(db):
    """Property allowing 1-15 night stays."""
    return SchedulingRules.objects.create(
        property_id=PROPERTY,
        min_stay_nights=1,
        max_stay_nights=15,
    )


@pytest.fixture
def owner(db, django_user_model):
    return django_user_model.objects.create_user(username="owner", password="test")


@pytest.fixture
def guest(db, django_user_model):
    return django_user_model.objects.create_user(username="guest", password="test")


@pytest.fixture
def master(db, django_user_model):
    return django_user_model.objects.create_user(username="master", password="test")


@pytest.fixture
def membership(owner, rules):
    """Common member with 10 nights this year and 20 next year."""
    return Membership.objects.create(
        property_id=PROPERTY,
        user=owner,
        balance_current_year=10,
        balance_next_year=20,
    )


@pytest.fixture
def guest_membership(guest, rules):
    return Membership.objects.create(
        property_id=PROPERTY,
        user=guest,
        balance_current_year=10,
        balance_next_year=20,
    )


@pytest.fixture
def master_membership(master, rules):
    return Membership.objects.create(
        property_id=PROPERTY,
        user=master,
        permission_level=Membership.PermissionLevel.MASTER,
        fraction_count=2,
        balance_current_year=30,
        balance_next_year=30,
    )


@pytest.fixture
def inventory(rules):
    """Three active items and one retired item."""
    for item_id in ("grill", "sofa", "tv"):
        InventoryItem.objects.create(property_id=PROPERTY, item_id=item_id, name=item_id.title())
    InventoryItem.objects.create(property_id=PROPERTY, item_id="old-radio", is_active=False)
    return ["grill", "sofa", "tv"]


@pytest.fixture
def stay(owner, membership, today):
    """Owner's confirmed stay [2025-10-10, 2025-10-15)."""
    return request_reservation(
        PROPERTY, owner, date(2025, 10, 10), date(2025, 10, 15), 2, today=today,
    )


@pytest.fixture
def all_ok(inventory):
    return {item_id: "ok" for item_id in inventory}
