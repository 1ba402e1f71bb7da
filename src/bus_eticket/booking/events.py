"""Events fed to the booking transition function."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..models.booking import FareQuote, PaymentResult, Route, Stop, Ticket
from .states import Selection


@dataclass(frozen=True, slots=True)
class RoutesLoaded:
    routes: tuple[Route, ...]


@dataclass(frozen=True, slots=True)
class RoutesFailed:
    message: str


@dataclass(frozen=True, slots=True)
class RouteChosen:
    route_id: str | None


@dataclass(frozen=True, slots=True)
class StopsLoaded:
    route_id: str
    generation: int
    stops: tuple[Stop, ...]


@dataclass(frozen=True, slots=True)
class StopsFailed:
    route_id: str
    generation: int
    message: str


@dataclass(frozen=True, slots=True)
class OriginChosen:
    name: str | None


@dataclass(frozen=True, slots=True)
class DestinationChosen:
    name: str | None


@dataclass(frozen=True, slots=True)
class QuoteRequested:
    pass


@dataclass(frozen=True, slots=True)
class QuoteReceived:
    quote: FareQuote


@dataclass(frozen=True, slots=True)
class QuoteFailed:
    selection: Selection
    message: str


@dataclass(frozen=True, slots=True)
class RequestFailed:
    """An action was refused before it changed anything; only the error slot moves."""

    message: str


@dataclass(frozen=True, slots=True)
class PaymentOpened:
    pass


@dataclass(frozen=True, slots=True)
class PaymentCancelled:
    pass


@dataclass(frozen=True, slots=True)
class PaymentCompleted:
    payment: PaymentResult


@dataclass(frozen=True, slots=True)
class VerificationRetried:
    pass


@dataclass(frozen=True, slots=True)
class TicketIssued:
    ticket: Ticket


@dataclass(frozen=True, slots=True)
class VerificationRejected:
    message: str


@dataclass(frozen=True, slots=True)
class VerificationInterrupted:
    message: str


@dataclass(frozen=True, slots=True)
class BookingReset:
    pass


BookingEvent = Union[
    RoutesLoaded,
    RoutesFailed,
    RouteChosen,
    StopsLoaded,
    StopsFailed,
    OriginChosen,
    DestinationChosen,
    QuoteRequested,
    QuoteReceived,
    QuoteFailed,
    RequestFailed,
    PaymentOpened,
    PaymentCancelled,
    PaymentCompleted,
    VerificationRetried,
    TicketIssued,
    VerificationRejected,
    VerificationInterrupted,
    BookingReset,
]
