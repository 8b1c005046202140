# Generated manually for standalone django-stays package

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PropertyLock",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("property_id", models.CharField(max_length=255, unique=True)),
            ],
        ),
        migrations.CreateModel(
            name="SchedulingRules",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "property_id",
                    models.CharField(
                        help_text="ID of the shared property (CharField for UUID support)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("min_stay_nights", models.PositiveIntegerField(default=1)),
                ("max_stay_nights", models.PositiveIntegerField(default=15)),
            ],
            options={
                "verbose_name_plural": "scheduling rules",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(min_stay_nights__gte=1),
                        name="rules_min_stay_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(max_stay_nights__gte=models.F("min_stay_nights")),
                        name="rules_max_gte_min",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("property_id", models.CharField(db_index=True, max_length=255)),
                (
                    "item_id",
                    models.CharField(
                        help_text="Stable identifier used in checklist submissions",
                        max_length=100,
                    ),
                ),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "ordering": ["property_id", "item_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("property_id", "item_id"),
                        name="unique_inventory_item_per_property",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Membership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("property_id", models.CharField(db_index=True, max_length=255)),
                (
                    "permission_level",
                    models.CharField(
                        choices=[("master", "Master"), ("common", "Common")],
                        default="common",
                        max_length=10,
                    ),
                ),
                ("fraction_count", models.PositiveIntegerField(default=1)),
                ("balance_current_year", models.IntegerField(default=0)),
                ("balance_next_year", models.IntegerField(default=0)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stay_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("property_id", "user"),
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
                ],
            },
        ),
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("property_id", models.CharField(db_index=True, max_length=255)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("guest_count", models.PositiveIntegerField(default=1)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "possession_state",
                    models.CharField(
                        choices=[
                            ("awaiting_checkin", "Awaiting check-in"),
                            ("checked_in", "Checked in"),
                            ("completed", "Completed"),
                        ],
                        default="awaiting_checkin",
                        max_length=20,
                    ),
                ),
                (
                    "debit_year",
                    models.PositiveIntegerField(
                        help_text="Calendar year whose balance bucket was charged",
                    ),
                ),
                ("nights_charged", models.PositiveIntegerField()),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "cancelled_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="django_stays.membership",
                    ),
                ),
                (
                    "requester",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stay_reservations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["start_date"],
                "indexes": [
                    models.Index(
                        fields=["property_id", "start_date"],
                        name="stays_resv_property_start",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gt=models.F("start_date")),
                        name="reservation_end_after_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OccupiedInterval",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("property_id", models.CharField(max_length=255)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                (
                    "reservation",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="occupied_interval",
                        to="django_stays.reservation",
                    ),
                ),
            ],
            options={
                "ordering": ["property_id", "start_date"],
                "indexes": [
                    models.Index(
                        fields=["property_id", "start_date", "end_date"],
                        name="stays_interval_property_dates",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BalanceEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveIntegerField()),
                ("nights", models.PositiveIntegerField()),
                (
                    "direction",
                    models.CharField(
                        choices=[("debit", "Debit"), ("credit", "Credit")],
                        max_length=10,
                    ),
                ),
                ("balance_after", models.IntegerField()),
                ("recorded_at", models.DateTimeField(auto_now_add=True)),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="balance_entries",
                        to="django_stays.membership",
                    ),
                ),
                (
                    "reservation",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="balance_entries",
                        to="django_stays.reservation",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "balance entries",
                "ordering": ["recorded_at", "pk"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(nights__gt=0),
                        name="balance_entry_nights_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Penalty",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("property_id", models.CharField(db_index=True, max_length=255)),
                ("reason", models.TextField()),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("checkout", "Checkout condition regression"),
                            ("missed_checkin", "Missed check-in"),
                            ("manual", "Manual"),
                        ],
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("revoked_at", models.DateTimeField(blank=True, null=True)),
                (
                    "reservation",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="penalties",
                        to="django_stays.reservation",
                    ),
                ),
                (
                    "revoked_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stay_penalties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "penalties",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(reservation__isnull=False),
                        fields=("reservation", "source"),
                        name="unique_penalty_per_reservation_source",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChecklistRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "phase",
                    models.CharField(
                        choices=[("checkin", "Check-in"), ("checkout", "Check-out")],
                        max_length=10,
                    ),
                ),
                ("conditions", models.JSONField(default=dict)),
                ("note", models.TextField(blank=True, default="")),
                ("submitted_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "reservation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="checklists",
                        to="django_stays.reservation",
                    ),
                ),
                (
                    "submitted_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["submitted_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("reservation", "phase"),
                        name="unique_checklist_per_phase",
                    ),
                ],
            },
        ),
    ]
