from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Sequence

from ..api.catalog import RouteCatalog
from ..api.quotes import FareQuoteRequester
from ..api.verify import PaymentVerifier
from ..checkout.razorpay import PaymentInitiator
from ..config.settings import LaunchParams
from ..errors import AlreadyInProgressError, BookingError, VerificationFailedError
from ..models.booking import FareQuote, PaymentResult, Route, Stop, Ticket
from . import events as ev
from .states import BookingState, Phase, Quoted, Ticketed, Verifying, initial_state
from .transitions import (
    ALREADY_IN_PROGRESS,
    FIXED_ROUTE,
    STALE_RESPONSE,
    UNVERIFIED_PAYMENT,
    TransitionResult,
    apply_transition,
)

LOGGER = logging.getLogger(__name__)

Listener = Callable[[BookingState], None]

REFUSAL_MESSAGES = {
    FIXED_ROUTE: "This ticket is for the scanned route only.",
    UNVERIFIED_PAYMENT: "Your payment is awaiting confirmation. Please retry verification.",
    ALREADY_IN_PROGRESS: "A fare request is already in progress.",
}
PHASE_MESSAGES = {
    Phase.DISCOVERING: "Routes are still loading.",
    Phase.AWAITING_PAYMENT: "Please finish or close the payment window first.",
    Phase.VERIFYING: "Your payment is being confirmed.",
    Phase.TICKETED: "This booking is complete. Start a new booking to change the journey.",
}


def refusal_message(state: BookingState, reason: str) -> str:
    if reason in REFUSAL_MESSAGES:
        return REFUSAL_MESSAGES[reason]
    return PHASE_MESSAGES.get(state.phase, "That action is not available right now.")


class BookingStateMachine:
    """Drives one passenger's booking from route discovery to a ticket.

    All state lives in ``self.state`` and changes only through
    ``dispatch``. Collaborator failures are turned into the state's error
    slot; none of the public coroutines raise ``BookingError``.
    """

    def __init__(
        self,
        catalog: RouteCatalog,
        quotes: FareQuoteRequester,
        checkout: PaymentInitiator,
        verifier: PaymentVerifier,
        launch: LaunchParams | None = None,
    ) -> None:
        self._catalog = catalog
        self._quotes = quotes
        self._checkout = checkout
        self._verifier = verifier
        self.state: BookingState = initial_state(launch)
        self._listeners: List[Listener] = []

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def error(self) -> str | None:
        return self.state.context.error

    @property
    def routes(self) -> Sequence[Route]:
        return self.state.context.routes

    @property
    def stops(self) -> Sequence[Stop]:
        return self.state.context.stops

    @property
    def quote(self) -> FareQuote | None:
        return getattr(self.state, "quote", None)

    @property
    def ticket(self) -> Ticket | None:
        return self.state.ticket if isinstance(self.state, Ticketed) else None

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def dispatch(self, event: ev.BookingEvent) -> TransitionResult:
        previous = self.state
        result = apply_transition(previous, event)
        if not result.accepted:
            if result.reason == STALE_RESPONSE:
                LOGGER.info("Discarded stale %s in %s", type(event).__name__, previous.phase.value)
            else:
                LOGGER.warning("Refused %s in %s (%s)", type(event).__name__, previous.phase.value, result.reason)
                self.dispatch(ev.RequestFailed(refusal_message(previous, result.reason)))
            return result
        self.state = result.state
        LOGGER.debug("%s: %s -> %s", type(event).__name__, previous.phase.value, self.state.phase.value)
        if self.state.context.error and self.state.context.error != previous.context.error:
            LOGGER.info("Booking error: %s", self.state.context.error)
        if self.state is not previous:
            for listener in list(self._listeners):
                listener(self.state)
        return result

    async def start(self) -> None:
        """Run discovery: the fixed route's stops, or the route list."""

        ctx = self.state.context
        if ctx.fixed_route:
            await self._load_stops(ctx.fixed_route_id, ctx.stops_generation)
        else:
            await self.refresh_routes()

    async def refresh_routes(self) -> None:
        try:
            routes = await self._catalog.list_routes()
        except BookingError as exc:
            self.dispatch(ev.RoutesFailed(exc.message))
            return
        self.dispatch(ev.RoutesLoaded(tuple(routes)))

    async def select_route(self, route_id: str | None) -> None:
        result = self.dispatch(ev.RouteChosen(route_id))
        ctx = self.state.context
        if result.accepted and ctx.stops_loading and route_id is not None:
            await self._load_stops(route_id, ctx.stops_generation)

    def select_origin(self, name: str | None) -> None:
        self.dispatch(ev.OriginChosen(name))

    def select_destination(self, name: str | None) -> None:
        self.dispatch(ev.DestinationChosen(name))

    async def request_quote(self) -> FareQuote | None:
        ctx = self.state.context
        selection = ctx.selection
        if ctx.stops_loading:
            self.dispatch(ev.RequestFailed("Stops are still loading."))
            return None
        try:
            self._quotes.validate(selection.route_id, selection.origin, selection.destination)
        except BookingError as exc:
            self.dispatch(ev.RequestFailed(exc.message))
            return None
        if not self.dispatch(ev.QuoteRequested()).accepted:
            return None

        try:
            quote = await self._quotes.request_quote(selection.route_id, selection.origin, selection.destination)
        except BookingError as exc:
            self.dispatch(ev.QuoteFailed(selection, exc.message))
            return None
        if not self.dispatch(ev.QuoteReceived(quote)).accepted:
            return None
        return quote

    async def pay(self) -> Ticket | None:
        """Open checkout for the held quote and verify what it returns."""

        state = self.state
        if not isinstance(state, Quoted):
            self.dispatch(ev.RequestFailed("Please calculate the fare first."))
            return None
        if state.unverified is not None:
            self.dispatch(ev.RequestFailed(REFUSAL_MESSAGES[UNVERIFIED_PAYMENT]))
            return None

        outcome: asyncio.Future[PaymentResult | None] = asyncio.get_running_loop().create_future()

        def on_result(result: PaymentResult) -> None:
            if not outcome.done():
                outcome.set_result(result)

        def on_cancel() -> None:
            if not outcome.done():
                outcome.set_result(None)

        quote = state.quote
        try:
            self._checkout.initiate(quote, quote.journey.describe(), on_result, on_cancel)
        except BookingError as exc:
            self.dispatch(ev.RequestFailed(exc.message))
            return None
        self.dispatch(ev.PaymentOpened())

        payment = await outcome
        if payment is None:
            self.dispatch(ev.PaymentCancelled())
            return None
        self.dispatch(ev.PaymentCompleted(payment))
        return await self._verify()

    async def retry_verification(self) -> Ticket | None:
        """Resubmit a payment whose verification did not get an answer."""

        if not self.dispatch(ev.VerificationRetried()).accepted:
            return None
        return await self._verify()

    async def reset(self) -> None:
        """Start a new booking."""

        if not self.dispatch(ev.BookingReset()).accepted:
            return
        ctx = self.state.context
        if ctx.fixed_route:
            if ctx.stops_loading:
                await self._load_stops(ctx.fixed_route_id, ctx.stops_generation)
        else:
            await self.refresh_routes()

    async def _load_stops(self, route_id: str, generation: int) -> None:
        try:
            stops = await self._catalog.list_stops(route_id)
        except BookingError as exc:
            self.dispatch(ev.StopsFailed(route_id, generation, exc.message))
            return
        if not self.dispatch(ev.StopsLoaded(route_id, generation, tuple(stops))).accepted:
            return
        preferred = self.state.context.preferred_origin
        if preferred and preferred not in self.state.context.stop_names():
            LOGGER.warning("Current stop %r is not on route %s; choose a starting point", preferred, route_id)

    async def _verify(self) -> Ticket | None:
        state = self.state
        if not isinstance(state, Verifying):
            return None
        try:
            ticket = await self._verifier.verify(state.payment, state.quote.journey)
        except VerificationFailedError as exc:
            self.dispatch(ev.VerificationRejected(exc.message))
            return None
        except AlreadyInProgressError as exc:
            self.dispatch(ev.RequestFailed(exc.message))
            return None
        except BookingError as exc:
            self.dispatch(ev.VerificationInterrupted(exc.message))
            return None
        self.dispatch(ev.TicketIssued(ticket))
        return ticket
