"""Per-property exclusion scope.

Bookings, cancellations and rules updates for one property are serialized by
locking that property's PropertyLock row for the rest of the transaction.
Different properties never contend.
"""

from datetime import datetime
from typing import Optional

from django.db import OperationalError, connection
from django.utils import timezone

from .exceptions import Cancelled, ConcurrencyAborted
from .models import PropertyLock


def lock_property(property_id, deadline: Optional[datetime] = None) -> PropertyLock:
    """
    Lock the property for the enclosing ``transaction.atomic()`` block.

    Args:
        property_id: The property to lock
        deadline: Optional aware datetime; if it passes before the lock is
            held the call fails with Cancelled and nothing is written

    Raises:
        Cancelled: If the deadline passed before the lock was acquired.
        ConcurrencyAborted: If the database refused the lock.
    """
    property_id = str(property_id)

    if deadline is not None:
        remaining_ms = int((deadline - timezone.now()).total_seconds() * 1000)
        if remaining_ms <= 0:
            raise Cancelled(property_id, deadline)
        if connection.vendor == 'postgresql':
            with connection.cursor() as cursor:
                cursor.execute(f"SET LOCAL lock_timeout = {remaining_ms}")

    PropertyLock.objects.get_or_create(property_id=property_id)

    try:
        return PropertyLock.objects.select_for_update().get(property_id=property_id)
    except OperationalError as e:
        if deadline is not None and timezone.now() >= deadline:
            raise Cancelled(property_id, deadline)
        raise ConcurrencyAborted(property_id, str(e))
