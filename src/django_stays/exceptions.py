"""Custom exceptions for django-stays.

Every error carries a stable ``kind`` string plus structured context
attributes. Callers map ``kind`` to their own user-facing messages.
"""


class StaysError(Exception):
    """Base exception for reservation and possession errors."""

    kind = "stays_error"

    def context(self) -> dict:
        """Structured context for the error (empty by default)."""
        return {}


class PastDateError(StaysError):
    """Raised when a stay starts before today."""

    kind = "past_date"

    def __init__(self, start_date, today):
        self.start_date = start_date
        self.today = today
        super().__init__(f"Start date {start_date} is before {today}")

    def context(self):
        return {"start_date": self.start_date, "today": self.today}


class StayLengthError(StaysError):
    """Raised when the number of nights is outside the property rules."""

    kind = "stay_length"

    def __init__(self, nights: int, min_nights: int, max_nights: int):
        self.nights = nights
        self.min_nights = min_nights
        self.max_nights = max_nights
        super().__init__(
            f"Stay of {nights} nights outside allowed range {min_nights}-{max_nights}"
        )

    def context(self):
        return {
            "nights": self.nights,
            "min_nights": self.min_nights,
            "max_nights": self.max_nights,
        }


class YearOutOfRange(StaysError):
    """Raised when a year has no balance bucket (only this year and next are modeled)."""

    kind = "year_out_of_range"

    def __init__(self, year: int, current_year: int):
        self.year = year
        self.current_year = current_year
        super().__init__(
            f"Year {year} is not bookable (allowed: {current_year}, {current_year + 1})"
        )

    def context(self):
        return {"year": self.year, "current_year": self.current_year}


class MembershipNotFound(StaysError):
    """Raised when the user has no membership in the property."""

    kind = "membership_not_found"

    def __init__(self, property_id: str, user_id):
        self.property_id = property_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not a member of property '{property_id}'")

    def context(self):
        return {"property_id": self.property_id, "user_id": self.user_id}


class RulesNotFound(StaysError):
    """Raised when a property has no scheduling rules."""

    kind = "rules_not_found"

    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"No scheduling rules for property '{property_id}'")

    def context(self):
        return {"property_id": self.property_id}


class InvalidRules(StaysError):
    """Raised when a rules update would violate min/max constraints."""

    kind = "invalid_rules"

    def __init__(self, min_nights: int, max_nights: int):
        self.min_nights = min_nights
        self.max_nights = max_nights
        super().__init__(f"Invalid stay rules: min={min_nights}, max={max_nights}")

    def context(self):
        return {"min_nights": self.min_nights, "max_nights": self.max_nights}


class PenaltyBlockError(StaysError):
    """Raised when the requester has an active penalty for the property."""

    kind = "penalty_block"

    def __init__(self, property_id: str, user_id, penalty_ids: list):
        self.property_id = property_id
        self.user_id = user_id
        self.penalty_ids = penalty_ids
        super().__init__(
            f"User {user_id} has {len(penalty_ids)} active penalties on '{property_id}'"
        )

    def context(self):
        return {
            "property_id": self.property_id,
            "user_id": self.user_id,
            "penalty_ids": self.penalty_ids,
        }


class DateConflictError(StaysError):
    """Raised when the requested interval overlaps a booked interval."""

    kind = "date_conflict"

    def __init__(self, property_id: str, start_date, end_date, conflicts: list):
        self.property_id = property_id
        self.start_date = start_date
        self.end_date = end_date
        # List of (start_date, end_date) tuples already booked
        self.conflicts = conflicts
        super().__init__(
            f"[{start_date}, {end_date}) overlaps {len(conflicts)} booked interval(s) "
            f"on '{property_id}'"
        )

    def context(self):
        return {
            "property_id": self.property_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "conflicts": self.conflicts,
        }


class InsufficientBalance(StaysError):
    """Raised when a debit exceeds the remaining nights of a year bucket."""

    kind = "insufficient_balance"

    def __init__(self, year: int, requested: int, available: int):
        self.year = year
        self.requested = requested
        self.available = available
        super().__init__(
            f"Requested {requested} nights for {year}, only {available} available"
        )

    @property
    def missing(self) -> int:
        return self.requested - self.available

    def context(self):
        return {
            "year": self.year,
            "requested": self.requested,
            "available": self.available,
            "missing": self.missing,
        }


class ReservationNotFound(StaysError):
    """Raised when a reservation id does not exist."""

    kind = "reservation_not_found"

    def __init__(self, reservation_id):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")

    def context(self):
        return {"reservation_id": self.reservation_id}


class PenaltyNotFound(StaysError):
    """Raised when a penalty id does not exist."""

    kind = "penalty_not_found"

    def __init__(self, penalty_id):
        self.penalty_id = penalty_id
        super().__init__(f"Penalty {penalty_id} not found")

    def context(self):
        return {"penalty_id": self.penalty_id}


class NotCancellable(StaysError):
    """Raised when a reservation cannot be cancelled by the caller."""

    kind = "not_cancellable"

    def __init__(self, reservation_id, status: str, reason: str = None):
        self.reservation_id = reservation_id
        self.status = status
        self.reason = reason or f"Reservation in status '{status}' cannot be cancelled"
        super().__init__(self.reason)

    def context(self):
        return {"reservation_id": self.reservation_id, "status": self.status}


class NotAuthorized(StaysError):
    """Raised when the caller lacks the membership role an operation needs."""

    kind = "not_authorized"

    def __init__(self, user_id, action: str):
        self.user_id = user_id
        self.action = action
        super().__init__(f"User {user_id} may not {action}")

    def context(self):
        return {"user_id": self.user_id, "action": self.action}


class AlreadySubmitted(StaysError):
    """Raised on a second checklist submission for the same phase."""

    kind = "already_submitted"

    def __init__(self, reservation_id, phase: str):
        self.reservation_id = reservation_id
        self.phase = phase
        super().__init__(f"{phase} checklist already submitted for reservation {reservation_id}")

    def context(self):
        return {"reservation_id": self.reservation_id, "phase": self.phase}


class InventoryEmptyError(StaysError):
    """Raised when checking into a property that has no inventory items."""

    kind = "inventory_empty"

    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"Property '{property_id}' has no inventory items")

    def context(self):
        return {"property_id": self.property_id}


class PossessionStateError(StaysError):
    """Raised when a possession step is attempted out of order."""

    kind = "possession_state"

    def __init__(self, reservation_id, state: str, reason: str):
        self.reservation_id = reservation_id
        self.state = state
        self.reason = reason
        super().__init__(reason)

    def context(self):
        return {"reservation_id": self.reservation_id, "state": self.state}


class ChecklistValidationError(StaysError):
    """Raised when checklist item conditions are malformed."""

    kind = "checklist_invalid"

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Checklist rejected: " + "; ".join(problems))

    def context(self):
        return {"problems": self.problems}


class ConcurrencyAborted(StaysError):
    """Raised when a commit lost a lock race. Safe to retry."""

    kind = "concurrency_aborted"

    def __init__(self, property_id: str, reason: str = ""):
        self.property_id = property_id
        self.reason = reason
        super().__init__(f"Commit on '{property_id}' aborted: {reason}")

    def context(self):
        return {"property_id": self.property_id}


class Cancelled(StaysError):
    """Raised when a caller deadline expires before the property lock is held."""

    kind = "cancelled"

    def __init__(self, property_id: str, deadline):
        self.property_id = property_id
        self.deadline = deadline
        super().__init__(f"Deadline {deadline} passed before locking '{property_id}'")

    def context(self):
        return {"property_id": self.property_id, "deadline": self.deadline}


class ImmutableRecordError(StaysError):
    """Raised when attempting to modify an append-only record."""

    kind = "immutable_record"


class ProviderLoadError(StaysError):
    """Raised when a configured provider cannot be loaded."""

    kind = "provider_load"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load provider '{path}': {reason}")
