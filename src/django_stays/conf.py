"""Configuration helpers for django-stays.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    STAYS_RULES_PROVIDER = 'myproject.properties.rules.get_rules'
    STAYS_INVENTORY_PROVIDER = 'myproject.inventory.services.list_item_ids'
    STAYS_MAX_BALANCE_NIGHTS = 60
"""

from functools import lru_cache
from importlib import import_module

from django.conf import settings

from .exceptions import ProviderLoadError


DEFAULT_RULES_PROVIDER = 'django_stays.rules.stored_rules'
DEFAULT_INVENTORY_PROVIDER = 'django_stays.rules.stored_inventory'


def get_setting(name: str, default=None):
    """Get a setting with STAYS_ prefix."""
    return getattr(settings, f"STAYS_{name}", default)


def penalties_block_booking() -> bool:
    """Whether an active penalty prevents new reservations."""
    return bool(get_setting('PENALTIES_BLOCK_BOOKING', True))


def max_balance_nights():
    """Ceiling for a single balance bucket, or None for unbounded credit."""
    return get_setting('MAX_BALANCE_NIGHTS', None)


def missed_checkin_grace_days() -> int:
    """Days after the start date before an absent check-in is penalized."""
    return int(get_setting('MISSED_CHECKIN_GRACE_DAYS', 1))


@lru_cache(maxsize=32)
def load_provider(dotted_path: str):
    """
    Import a provider callable from dotted path.

    Raises ProviderLoadError for bad imports or non-callable targets.
    """
    try:
        module_path, attr_name = dotted_path.rsplit('.', 1)
    except ValueError:
        raise ProviderLoadError(dotted_path, "Invalid dotted path format")

    try:
        module = import_module(module_path)
    except ImportError as e:
        raise ProviderLoadError(dotted_path, f"Cannot import module: {e}")

    try:
        provider = getattr(module, attr_name)
    except AttributeError:
        raise ProviderLoadError(dotted_path, f"'{attr_name}' not found in module")

    if not callable(provider):
        raise ProviderLoadError(dotted_path, f"'{attr_name}' is not callable")

    return provider


def get_rules_provider():
    """Callable (property_id) -> PropertyRules."""
    return load_provider(get_setting('RULES_PROVIDER', DEFAULT_RULES_PROVIDER))


def get_inventory_provider():
    """Callable (property_id) -> list of inventory item ids."""
    return load_provider(get_setting('INVENTORY_PROVIDER', DEFAULT_INVENTORY_PROVIDER))


def clear_provider_cache():
    """Clear the provider loading cache. Useful for testing."""
    load_provider.cache_clear()
