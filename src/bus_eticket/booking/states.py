"""
Booking states.

Each phase of the flow is its own frozen dataclass, so the data a phase
may hold is fixed by its type: only ``Quoted``, ``AwaitingPayment`` and
``Verifying`` carry a quote, only ``Ticketed`` carries a ticket.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, FrozenSet, Union

from ..config.settings import LaunchParams
from ..models.booking import FareQuote, PaymentResult, Route, Stop, Ticket


class Phase(str, Enum):
    DISCOVERING = "Discovering"
    SELECTING = "Selecting"
    QUOTED = "Quoted"
    AWAITING_PAYMENT = "AwaitingPayment"
    VERIFYING = "Verifying"
    TICKETED = "Ticketed"


@dataclass(frozen=True, slots=True)
class Selection:
    route_id: str | None = None
    origin: str | None = None
    destination: str | None = None


@dataclass(frozen=True, slots=True)
class Context:
    """Data shared by every phase: catalog contents, selections, the error slot."""

    selection: Selection = field(default_factory=Selection)
    routes: tuple[Route, ...] = ()
    stops: tuple[Stop, ...] = ()
    fixed_route_id: str | None = None
    preferred_origin: str | None = None
    stops_generation: int = 0
    routes_loading: bool = False
    stops_loading: bool = False
    quote_loading: bool = False
    error: str | None = None

    @property
    def fixed_route(self) -> bool:
        return self.fixed_route_id is not None

    @property
    def loading(self) -> bool:
        return self.routes_loading or self.stops_loading or self.quote_loading

    def stop_names(self) -> FrozenSet[str]:
        return frozenset(stop.name for stop in self.stops)

    def ok(self, **changes) -> "Context":
        """Copy with ``changes`` applied and the error slot cleared."""

        return replace(self, error=None, **changes)


@dataclass(frozen=True, slots=True)
class Discovering:
    phase: ClassVar[Phase] = Phase.DISCOVERING
    context: Context


@dataclass(frozen=True, slots=True)
class Selecting:
    phase: ClassVar[Phase] = Phase.SELECTING
    context: Context


@dataclass(frozen=True, slots=True)
class Quoted:
    phase: ClassVar[Phase] = Phase.QUOTED
    context: Context
    quote: FareQuote
    # Set when payment went through but verification did not complete.
    unverified: PaymentResult | None = None


@dataclass(frozen=True, slots=True)
class AwaitingPayment:
    phase: ClassVar[Phase] = Phase.AWAITING_PAYMENT
    context: Context
    quote: FareQuote


@dataclass(frozen=True, slots=True)
class Verifying:
    phase: ClassVar[Phase] = Phase.VERIFYING
    context: Context
    quote: FareQuote
    payment: PaymentResult


@dataclass(frozen=True, slots=True)
class Ticketed:
    phase: ClassVar[Phase] = Phase.TICKETED
    context: Context
    ticket: Ticket


BookingState = Union[Discovering, Selecting, Quoted, AwaitingPayment, Verifying, Ticketed]


def initial_state(launch: LaunchParams | None = None) -> Discovering:
    """Fixed-route mode starts by loading the route's stops, otherwise the route list."""

    launch = launch or LaunchParams()
    if launch.fixed_route:
        return Discovering(
            Context(
                selection=Selection(route_id=launch.route_id),
                fixed_route_id=launch.route_id,
                preferred_origin=launch.current_stop,
                stops_generation=1,
                stops_loading=True,
            )
        )
    return Discovering(Context(preferred_origin=launch.current_stop, routes_loading=True))
