"""
State graphs for reservations and possession handoff.

Pure data plus pure functions; no model lifecycle. The service modules call
the ``check_*_transition`` guards before every status change, and the
``stays.E001`` system check runs ``graph_problems`` over ``GRAPHS``.
"""

from .exceptions import PossessionStateError
from .models import Reservation

Status = Reservation.Status
Possession = Reservation.Possession


RESERVATION_STATES = [s.value for s in Status]
# Keyed by plain string values; enum members do not hash like their values
RESERVATION_TRANSITIONS = {
    Status.PENDING.value: [Status.CONFIRMED.value, Status.CANCELLED.value],
    Status.CONFIRMED.value: [Status.COMPLETED.value, Status.CANCELLED.value],
}
RESERVATION_INITIAL = Status.PENDING.value
RESERVATION_TERMINAL = [Status.COMPLETED.value, Status.CANCELLED.value]

POSSESSION_STATES = [p.value for p in Possession]
POSSESSION_TRANSITIONS = {
    Possession.AWAITING_CHECKIN.value: [Possession.CHECKED_IN.value],
    Possession.CHECKED_IN.value: [Possession.COMPLETED.value],
}
POSSESSION_INITIAL = Possession.AWAITING_CHECKIN.value
POSSESSION_TERMINAL = [Possession.COMPLETED.value]


def allowed_transitions(transitions: dict, terminal_states: list, current: str) -> list:
    """Valid next states from ``current``; terminal states have none."""
    current = str(current)
    if current in terminal_states:
        return []
    return list(transitions.get(current, []))


def can_transition(transitions: dict, terminal_states: list, from_state: str, to_state: str) -> bool:
    return to_state in allowed_transitions(transitions, terminal_states, from_state)


def check_reservation_transition(reservation, to_state: str) -> None:
    """Raise PossessionStateError if the reservation cannot move to ``to_state``."""
    if not can_transition(
        RESERVATION_TRANSITIONS, RESERVATION_TERMINAL, reservation.status, to_state
    ):
        raise PossessionStateError(
            reservation.pk,
            reservation.status,
            f"Reservation cannot move from '{reservation.status}' to '{to_state}'",
        )


def check_possession_transition(reservation, to_state: str) -> None:
    """Raise PossessionStateError if possession cannot move to ``to_state``."""
    if not can_transition(
        POSSESSION_TRANSITIONS, POSSESSION_TERMINAL, reservation.possession_state, to_state
    ):
        raise PossessionStateError(
            reservation.pk,
            reservation.possession_state,
            f"Possession cannot move from '{reservation.possession_state}' to '{to_state}'",
        )


def graph_problems(states, transitions, initial_state, terminal_states) -> list[str]:
    """
    Problems with a transition table: unknown states, terminal states with
    exits, and states no path from ``initial_state`` reaches.
    """
    known = set(states)
    problems = [
        f"unknown state '{s}'"
        for s in sorted({initial_state, *terminal_states, *transitions}
                        | {t for targets in transitions.values() for t in targets})
        if s not in known
    ]
    problems += [f"terminal state '{s}' has exits" for s in terminal_states if transitions.get(s)]

    seen, frontier = set(), {initial_state}
    while frontier:
        seen |= frontier
        frontier = {t for s in frontier for t in transitions.get(s, [])} - seen
    problems += [f"state '{s}' is unreachable" for s in states if s not in seen]
    return problems


GRAPHS = {
    'reservation': (
        RESERVATION_STATES, RESERVATION_TRANSITIONS, RESERVATION_INITIAL, RESERVATION_TERMINAL,
    ),
    'possession': (
        POSSESSION_STATES, POSSESSION_TRANSITIONS, POSSESSION_INITIAL, POSSESSION_TERMINAL,
    ),
}
