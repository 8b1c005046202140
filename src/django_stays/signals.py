"""Domain events emitted by the reservation and possession services.

Receivers are notified only after the surrounding transaction commits, so
a rolled-back booking never produces an event. Delivery (email, push,
toasts) is a downstream subscriber concern.

Usage:
    from django.dispatch import receiver
    from django_stays.signals import reservation_confirmed

    @receiver(reservation_confirmed)
    def notify_members(sender, reservation, **kwargs):
        ...
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Sent with reservation=<Reservation>
reservation_confirmed = Signal()

# Sent with reservation=<Reservation>, cancelled_by=<User>
reservation_cancelled = Signal()

# Sent with checklist=<ChecklistRecord>, reservation=<Reservation>
checklist_submitted = Signal()

# Sent with penalty=<Penalty>
penalty_issued = Signal()


def emit(signal: Signal, sender, **kwargs) -> None:
    """Send ``signal`` once the current transaction commits."""

    def _send():
        responses = signal.send_robust(sender=sender, **kwargs)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.warning(f"Receiver {receiver!r} failed: {response}")

    transaction.on_commit(_send)
