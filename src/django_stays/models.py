"""Models for shared-property scheduling, balances, penalties and checklists.

Properties are external to this app and referenced by ``property_id``
(CharField for UUID support). All writes go through the service modules;
direct model manipulation bypasses invariants and is unsupported.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from .exceptions import ImmutableRecordError


class TimeStampedModel(models.Model):
    """Abstract base model with created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class PropertyLock(models.Model):
    """
    One row per property, locked with ``select_for_update()`` for the whole
    validate+commit step of bookings, cancellations and rules updates.
    """

    property_id = models.CharField(max_length=255, unique=True)

    class Meta:
        app_label = 'django_stays'

    def __str__(self):
        return f"lock:{self.property_id}"


class SchedulingRules(TimeStampedModel):
    """Per-property stay length rules."""

    property_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="ID of the shared property (CharField for UUID support)",
    )
    min_stay_nights = models.PositiveIntegerField(default=1)
    max_stay_nights = models.PositiveIntegerField(default=15)

    class Meta:
        app_label = 'django_stays'
        verbose_name_plural = 'scheduling rules'
        constraints = [
            models.CheckConstraint(
                condition=models.Q(min_stay_nights__gte=1),
                name="rules_min_stay_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(max_stay_nights__gte=models.F('min_stay_nights')),
                name="rules_max_gte_min",
            ),
        ]

    def __str__(self):
        return f"{self.property_id}: {self.min_stay_nights}-{self.max_stay_nights} nights"


class InventoryItemQuerySet(models.QuerySet):
    """Custom queryset for InventoryItem model."""

    def active(self):
        return self.filter(is_active=True)

    def for_property(self, property_id):
        return self.filter(property_id=str(property_id))


class InventoryItem(TimeStampedModel):
    """An item whose condition is reported at check-in and check-out."""

    property_id = models.CharField(max_length=255, db_index=True)
    item_id = models.CharField(
        max_length=100,
        help_text="Stable identifier used in checklist submissions",
    )
    name = models.CharField(max_length=255, blank=True, default='')
    is_active = models.BooleanField(default=True)

    objects = InventoryItemQuerySet.as_manager()

    class Meta:
        app_label = 'django_stays'
        ordering = ['property_id', 'item_id']
        constraints = [
            models.UniqueConstraint(
                fields=['property_id', 'item_id'],
                name="unique_inventory_item_per_property",
            ),
        ]

    def __str__(self):
        return f"{self.property_id}/{self.item_id}"


class Membership(TimeStampedModel):
    """
    A user's share in a property, with two year buckets of remaining nights.

    Balances are mutated only by ``django_stays.ledger``.
    """

    class PermissionLevel(models.TextChoices):
        MASTER = 'master', 'Master'
        COMMON = 'common', 'Common'

    property_id = models.CharField(max_length=255, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='stay_memberships',
    )
    permission_level = models.CharField(
        max_length=10,
        choices=PermissionLevel.choices,
        default=PermissionLevel.COMMON,
    )
    fraction_count = models.PositiveIntegerField(default=1)
    balance_current_year = models.IntegerField(default=0)
    balance_next_year = models.IntegerField(default=0)

    class Meta:
        app_label = 'django_stays'
        constraints = [
            models.UniqueConstraint(
                fields=['property_id', 'user'],
                name="unique_membership_per_property",
            ),
            models.CheckConstraint(
                condition=models.Q(balance_current_year__gte=0),
                name="membership_current_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(balance_next_year__gte=0),
                name="membership_next_balance_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.user} @ {self.property_id} ({self.permission_level})"

    @property
    def is_master(self) -> bool:
        return self.permission_level == self.PermissionLevel.MASTER


class ReservationQuerySet(models.QuerySet):
    """Custom queryset for Reservation model."""

    def for_property(self, property_id):
        return self.filter(property_id=str(property_id))

    def booked(self):
        """Reservations that hold their dates (confirmed or completed)."""
        return self.filter(
            status__in=[Reservation.Status.CONFIRMED, Reservation.Status.COMPLETED]
        )

    def intersecting(self, start_date, end_date):
        """Reservations whose [start, end) overlaps [start_date, end_date)."""
        return self.filter(start_date__lt=end_date, end_date__gt=start_date)

    def upcoming(self, today):
        return self.filter(
            status=Reservation.Status.CONFIRMED,
            start_date__gte=today,
        ).order_by('start_date')

    def completed(self):
        return self.filter(status=Reservation.Status.COMPLETED).order_by('-end_date')


class Reservation(TimeStampedModel):
    """
    A stay on a shared property over the half-open interval [start_date, end_date).

    The end date is the checkout day and is free for the next guest.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        CONFIRMED = 'confirmed', 'Confirmed'
        CANCELLED = 'cancelled', 'Cancelled'
        COMPLETED = 'completed', 'Completed'

    class Possession(models.TextChoices):
        AWAITING_CHECKIN = 'awaiting_checkin', 'Awaiting check-in'
        CHECKED_IN = 'checked_in', 'Checked in'
        COMPLETED = 'completed', 'Completed'

    property_id = models.CharField(max_length=255, db_index=True)
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='stay_reservations',
    )
    membership = models.ForeignKey(
        Membership,
        on_delete=models.PROTECT,
        related_name='reservations',
    )
    start_date = models.DateField()
    end_date = models.DateField()
    guest_count = models.PositiveIntegerField(default=1)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    possession_state = models.CharField(
        max_length=20,
        choices=Possession.choices,
        default=Possession.AWAITING_CHECKIN,
    )
    debit_year = models.PositiveIntegerField(
        help_text="Calendar year whose balance bucket was charged",
    )
    nights_charged = models.PositiveIntegerField()

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
    )
    completed_at = models.DateTimeField(null=True, blank=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        app_label = 'django_stays'
        ordering = ['start_date']
        indexes = [
            models.Index(fields=['property_id', 'start_date'], name="stays_resv_property_start"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F('start_date')),
                name="reservation_end_after_start",
            ),
        ]

    def __str__(self):
        return f"{self.property_id} [{self.start_date}, {self.end_date}) {self.status}"

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    @property
    def is_terminal(self) -> bool:
        return self.status in (self.Status.CANCELLED, self.Status.COMPLETED)


class OccupiedIntervalQuerySet(models.QuerySet):
    """Custom queryset for OccupiedInterval model."""

    def for_property(self, property_id):
        return self.filter(property_id=str(property_id))

    def overlapping(self, start_date, end_date):
        """Intervals [s, e) with s < end_date and start_date < e."""
        return self.filter(start_date__lt=end_date, end_date__gt=start_date)


class OccupiedInterval(models.Model):
    """
    Conflict index entry: one booked date interval of a property.

    Present exactly while its reservation is confirmed or completed.
    """

    property_id = models.CharField(max_length=255)
    reservation = models.OneToOneField(
        Reservation,
        on_delete=models.CASCADE,
        related_name='occupied_interval',
    )
    start_date = models.DateField()
    end_date = models.DateField()

    objects = OccupiedIntervalQuerySet.as_manager()

    class Meta:
        app_label = 'django_stays'
        ordering = ['property_id', 'start_date']
        indexes = [
            models.Index(
                fields=['property_id', 'start_date', 'end_date'],
                name="stays_interval_property_dates",
            ),
        ]

    def __str__(self):
        return f"{self.property_id} [{self.start_date}, {self.end_date})"


class BalanceEntry(models.Model):
    """
    Immutable record of one balance movement.

    Usage:
        Created by ledger.debit() / ledger.credit(); never edited.
    """

    class Direction(models.TextChoices):
        DEBIT = 'debit', 'Debit'
        CREDIT = 'credit', 'Credit'

    membership = models.ForeignKey(
        Membership,
        on_delete=models.PROTECT,
        related_name='balance_entries',
    )
    year = models.PositiveIntegerField()
    nights = models.PositiveIntegerField()
    direction = models.CharField(max_length=10, choices=Direction.choices)
    balance_after = models.IntegerField()
    reservation = models.ForeignKey(
        Reservation,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='balance_entries',
    )
    recorded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = 'django_stays'
        ordering = ['recorded_at', 'pk']
        verbose_name_plural = 'balance entries'
        constraints = [
            models.CheckConstraint(
                condition=models.Q(nights__gt=0),
                name="balance_entry_nights_positive",
            ),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ImmutableRecordError(f"Balance entry {self.pk} cannot be modified")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.direction} {self.nights} nights ({self.year})"


class PenaltyQuerySet(models.QuerySet):
    """Custom queryset for Penalty model."""

    def active(self):
        return self.filter(is_active=True)

    def for_property(self, property_id):
        return self.filter(property_id=str(property_id))

    def for_user(self, user):
        return self.filter(user=user)


class Penalty(TimeStampedModel):
    """A no-show or misuse penalty; an active one blocks new bookings."""

    class Source(models.TextChoices):
        CHECKOUT = 'checkout', 'Checkout condition regression'
        MISSED_CHECKIN = 'missed_checkin', 'Missed check-in'
        MANUAL = 'manual', 'Manual'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='stay_penalties',
    )
    property_id = models.CharField(max_length=255, db_index=True)
    reason = models.TextField()
    source = models.CharField(max_length=20, choices=Source.choices)
    is_active = models.BooleanField(default=True, db_index=True)
    reservation = models.ForeignKey(
        Reservation,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='penalties',
    )
    details = models.JSONField(default=dict, blank=True)
    revoked_at = models.DateTimeField(null=True, blank=True)
    revoked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
    )

    objects = PenaltyQuerySet.as_manager()

    class Meta:
        app_label = 'django_stays'
        ordering = ['-created_at']
        verbose_name_plural = 'penalties'
        constraints = [
            # At most one automatic penalty of each source per reservation
            models.UniqueConstraint(
                fields=['reservation', 'source'],
                condition=models.Q(reservation__isnull=False),
                name="unique_penalty_per_reservation_source",
            ),
        ]

    def __str__(self):
        state = "active" if self.is_active else "inactive"
        return f"Penalty ({state}) {self.user} @ {self.property_id}: {self.reason[:50]}"


class ChecklistRecord(models.Model):
    """
    Inventory condition report for one handoff phase of a reservation.

    ``conditions`` maps item_id -> condition. Immutable once saved.
    """

    class Phase(models.TextChoices):
        CHECKIN = 'checkin', 'Check-in'
        CHECKOUT = 'checkout', 'Check-out'

    class Condition(models.TextChoices):
        OK = 'ok', 'OK'
        WORN = 'worn', 'Worn'
        DAMAGED = 'damaged', 'Damaged'
        MISSING = 'missing', 'Missing'

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name='checklists',
    )
    phase = models.CharField(max_length=10, choices=Phase.choices)
    conditions = models.JSONField(default=dict)
    note = models.TextField(blank=True, default='')
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+',
    )
    submitted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        app_label = 'django_stays'
        ordering = ['submitted_at']
        constraints = [
            models.UniqueConstraint(
                fields=['reservation', 'phase'],
                name="unique_checklist_per_phase",
            ),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ImmutableRecordError(
                f"Checklist {self.pk} ({self.phase}) cannot be edited after submission"
            )
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.phase} checklist for reservation {self.reservation_id}"

    @property
    def flagged_items(self) -> dict:
        """Items reported in any condition other than OK."""
        return {
            item_id: condition
            for item_id, condition in self.conditions.items()
            if condition != self.Condition.OK
        }
