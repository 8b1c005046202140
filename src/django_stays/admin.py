"""Django admin configuration for stays.

Reservations, checklists and balance entries are written only through the
service layer, so their admins are read-only.
"""

from django.contrib import admin

from .models import (
    BalanceEntry,
    ChecklistRecord,
    InventoryItem,
    Membership,
    Penalty,
    Reservation,
    SchedulingRules,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Admin that only displays records."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ChecklistRecordInline(admin.TabularInline):
    """Inline for viewing a reservation's checklists."""

    model = ChecklistRecord
    extra = 0
    readonly_fields = ['phase', 'conditions', 'note', 'submitted_by', 'submitted_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Reservation)
class ReservationAdmin(ReadOnlyAdmin):
    list_display = [
        'id',
        'property_id',
        'requester',
        'start_date',
        'end_date',
        'status',
        'possession_state',
        'debit_year',
        'nights_charged',
    ]
    list_filter = ['status', 'possession_state', 'debit_year']
    search_fields = ['property_id']
    inlines = [ChecklistRecordInline]


@admin.register(BalanceEntry)
class BalanceEntryAdmin(ReadOnlyAdmin):
    list_display = ['membership', 'direction', 'year', 'nights', 'balance_after', 'recorded_at']
    list_filter = ['direction', 'year']


@admin.register(Penalty)
class PenaltyAdmin(ReadOnlyAdmin):
    list_display = ['user', 'property_id', 'source', 'is_active', 'created_at']
    list_filter = ['source', 'is_active']
    search_fields = ['property_id', 'reason']


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = [
        'user',
        'property_id',
        'permission_level',
        'fraction_count',
        'balance_current_year',
        'balance_next_year',
    ]
    list_filter = ['permission_level']
    search_fields = ['property_id']
    # Balances move only through the ledger
    readonly_fields = ['balance_current_year', 'balance_next_year']


@admin.register(SchedulingRules)
class SchedulingRulesAdmin(admin.ModelAdmin):
    list_display = ['property_id', 'min_stay_nights', 'max_stay_nights']


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ['property_id', 'item_id', 'name', 'is_active']
    list_filter = ['is_active']
    search_fields = ['property_id', 'item_id', 'name']
