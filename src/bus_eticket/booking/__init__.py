"""Booking flow: states, events, transitions and the orchestrating machine."""

from .machine import BookingStateMachine
from .states import (
    AwaitingPayment,
    BookingState,
    Context,
    Discovering,
    Phase,
    Quoted,
    Selecting,
    Selection,
    Ticketed,
    Verifying,
    initial_state,
)
from .transitions import TransitionResult, apply_transition

__all__ = [
    "AwaitingPayment",
    "BookingState",
    "BookingStateMachine",
    "Context",
    "Discovering",
    "Phase",
    "Quoted",
    "Selecting",
    "Selection",
    "Ticketed",
    "TransitionResult",
    "Verifying",
    "apply_transition",
    "initial_state",
]
