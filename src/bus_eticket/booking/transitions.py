"""
Booking transition function (pure, deterministic).

``apply_transition(state, event)`` never performs I/O and never raises for
an unexpected event: it reports the refusal in the returned
``TransitionResult`` and leaves the state as it was.

Rules worth keeping in mind:
- A quote exists only in Quoted/AwaitingPayment/Verifying. Changing the
  route or either stop while Quoted drops back to Selecting.
- Stop lists and quote responses are applied only when they still match
  the current selection; late arrivals are refused as stale.
- A quote request from Ticketed drops the ticket and starts over with the
  same selection; route and stop changes there still need a reset.
- After a completed payment whose verification was interrupted, the quote
  keeps the payment result and only a verification retry is allowed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional

from . import events as ev
from .states import (
    AwaitingPayment,
    BookingState,
    Context,
    Discovering,
    Quoted,
    Selecting,
    Selection,
    Ticketed,
    Verifying,
)

ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
STALE_RESPONSE = "STALE_RESPONSE"
FIXED_ROUTE = "FIXED_ROUTE"
UNVERIFIED_PAYMENT = "UNVERIFIED_PAYMENT"
ALREADY_IN_PROGRESS = "ALREADY_IN_PROGRESS"


@dataclass(frozen=True)
class TransitionResult:
    """
    Result of a transition attempt.

    Attributes:
        state: The resulting state (the original one when refused)
        accepted: Whether the event was applied
        reason: Refusal code when not accepted, None otherwise
    """
    state: BookingState
    accepted: bool
    reason: Optional[str] = None


def _accept(state: BookingState) -> TransitionResult:
    return TransitionResult(state=state, accepted=True)


def _refuse(state: BookingState, reason: str = ILLEGAL_TRANSITION) -> TransitionResult:
    return TransitionResult(state=state, accepted=False, reason=reason)


def _selecting(ctx: Context) -> TransitionResult:
    return _accept(Selecting(ctx))


def _on_routes_loaded(state: BookingState, event: ev.RoutesLoaded) -> TransitionResult:
    if not isinstance(state, (Discovering, Selecting)):
        return _refuse(state)
    return _selecting(state.context.ok(routes=tuple(event.routes), routes_loading=False))


def _on_routes_failed(state: BookingState, event: ev.RoutesFailed) -> TransitionResult:
    if not isinstance(state, (Discovering, Selecting)):
        return _refuse(state)
    return _selecting(replace(state.context, routes_loading=False, error=event.message))


def _on_route_chosen(state: BookingState, event: ev.RouteChosen) -> TransitionResult:
    if not isinstance(state, (Selecting, Quoted)):
        return _refuse(state)
    ctx = state.context
    if isinstance(state, Quoted) and state.unverified is not None:
        return _refuse(state, UNVERIFIED_PAYMENT)
    if ctx.fixed_route and event.route_id != ctx.fixed_route_id:
        return _refuse(state, FIXED_ROUTE)
    if event.route_id == ctx.selection.route_id and (ctx.stops or ctx.stops_loading or event.route_id is None):
        return _accept(state)
    # Bumping the generation turns any in-flight stop fetch into a stale one.
    return _selecting(
        ctx.ok(
            selection=Selection(route_id=event.route_id),
            stops=(),
            stops_generation=ctx.stops_generation + 1,
            stops_loading=event.route_id is not None,
            quote_loading=False,
        )
    )


def _is_current_fetch(ctx: Context, route_id: str, generation: int) -> bool:
    return generation == ctx.stops_generation and route_id == ctx.selection.route_id and ctx.stops_loading


def _on_stops_loaded(state: BookingState, event: ev.StopsLoaded) -> TransitionResult:
    if not isinstance(state, (Discovering, Selecting)):
        return _refuse(state, STALE_RESPONSE)
    ctx = state.context
    if not _is_current_fetch(ctx, event.route_id, event.generation):
        return _refuse(state, STALE_RESPONSE)
    stops = tuple(sorted(event.stops, key=lambda stop: stop.sequence))
    names = {stop.name for stop in stops}
    selection = ctx.selection
    if selection.origin is None and ctx.preferred_origin in names:
        selection = replace(selection, origin=ctx.preferred_origin)
    return _selecting(ctx.ok(selection=selection, stops=stops, stops_loading=False))


def _on_stops_failed(state: BookingState, event: ev.StopsFailed) -> TransitionResult:
    if not isinstance(state, (Discovering, Selecting)):
        return _refuse(state, STALE_RESPONSE)
    ctx = state.context
    if not _is_current_fetch(ctx, event.route_id, event.generation):
        return _refuse(state, STALE_RESPONSE)
    return _selecting(replace(ctx, stops_loading=False, error=event.message))


def _choose_stop(state: BookingState, field_name: str, name: str | None) -> TransitionResult:
    if not isinstance(state, (Selecting, Quoted)):
        return _refuse(state)
    if isinstance(state, Quoted) and state.unverified is not None:
        return _refuse(state, UNVERIFIED_PAYMENT)
    ctx = state.context
    if getattr(ctx.selection, field_name) == name:
        return _accept(state)
    selection = replace(ctx.selection, **{field_name: name})
    return _selecting(ctx.ok(selection=selection, quote_loading=False))


def _on_origin_chosen(state: BookingState, event: ev.OriginChosen) -> TransitionResult:
    return _choose_stop(state, "origin", event.name)


def _on_destination_chosen(state: BookingState, event: ev.DestinationChosen) -> TransitionResult:
    return _choose_stop(state, "destination", event.name)


def _on_quote_requested(state: BookingState, event: ev.QuoteRequested) -> TransitionResult:
    # A new fare after a ticket starts the next booking for the same journey.
    if not isinstance(state, (Selecting, Quoted, Ticketed)):
        return _refuse(state)
    if isinstance(state, Quoted) and state.unverified is not None:
        return _refuse(state, UNVERIFIED_PAYMENT)
    if state.context.quote_loading:
        return _refuse(state, ALREADY_IN_PROGRESS)
    return _selecting(state.context.ok(quote_loading=True))


def _matches(selection: Selection, route_id: str, origin: str, destination: str) -> bool:
    return (selection.route_id, selection.origin, selection.destination) == (route_id, origin, destination)


def _on_quote_received(state: BookingState, event: ev.QuoteReceived) -> TransitionResult:
    if not isinstance(state, Selecting) or not state.context.quote_loading:
        return _refuse(state, STALE_RESPONSE)
    ctx = state.context
    journey = event.quote.journey
    if not _matches(ctx.selection, journey.route_id, journey.origin, journey.destination):
        return _refuse(state, STALE_RESPONSE)
    return _accept(Quoted(ctx.ok(quote_loading=False), event.quote))


def _on_quote_failed(state: BookingState, event: ev.QuoteFailed) -> TransitionResult:
    if not isinstance(state, Selecting) or not state.context.quote_loading:
        return _refuse(state, STALE_RESPONSE)
    ctx = state.context
    if event.selection != ctx.selection:
        return _refuse(state, STALE_RESPONSE)
    return _selecting(replace(ctx, quote_loading=False, error=event.message))


def _on_request_failed(state: BookingState, event: ev.RequestFailed) -> TransitionResult:
    return _accept(replace(state, context=replace(state.context, error=event.message)))


def _on_payment_opened(state: BookingState, event: ev.PaymentOpened) -> TransitionResult:
    if not isinstance(state, Quoted):
        return _refuse(state)
    if state.unverified is not None:
        return _refuse(state, UNVERIFIED_PAYMENT)
    return _accept(AwaitingPayment(state.context.ok(), state.quote))


def _on_payment_cancelled(state: BookingState, event: ev.PaymentCancelled) -> TransitionResult:
    if not isinstance(state, AwaitingPayment):
        return _refuse(state)
    return _accept(Quoted(state.context.ok(), state.quote))


def _on_payment_completed(state: BookingState, event: ev.PaymentCompleted) -> TransitionResult:
    if not isinstance(state, AwaitingPayment):
        return _refuse(state)
    return _accept(Verifying(state.context.ok(), state.quote, event.payment))


def _on_verification_retried(state: BookingState, event: ev.VerificationRetried) -> TransitionResult:
    if not isinstance(state, Quoted) or state.unverified is None:
        return _refuse(state)
    return _accept(Verifying(state.context.ok(), state.quote, state.unverified))


def _on_ticket_issued(state: BookingState, event: ev.TicketIssued) -> TransitionResult:
    if not isinstance(state, Verifying):
        return _refuse(state)
    return _accept(Ticketed(state.context.ok(), event.ticket))


def _on_verification_rejected(state: BookingState, event: ev.VerificationRejected) -> TransitionResult:
    if not isinstance(state, Verifying):
        return _refuse(state)
    return _selecting(replace(state.context, error=event.message))


def _on_verification_interrupted(state: BookingState, event: ev.VerificationInterrupted) -> TransitionResult:
    if not isinstance(state, Verifying):
        return _refuse(state)
    return _accept(Quoted(replace(state.context, error=event.message), state.quote, unverified=state.payment))


def _on_booking_reset(state: BookingState, event: ev.BookingReset) -> TransitionResult:
    if not isinstance(state, (Selecting, Quoted, Ticketed)):
        return _refuse(state)
    if isinstance(state, Quoted) and state.unverified is not None:
        return _refuse(state, UNVERIFIED_PAYMENT)
    ctx = state.context
    if ctx.fixed_route:
        # The stop list is kept; it is fetched again only if it never arrived.
        refetch = not ctx.stops
        return _selecting(
            Context(
                selection=Selection(route_id=ctx.fixed_route_id),
                stops=ctx.stops,
                fixed_route_id=ctx.fixed_route_id,
                preferred_origin=ctx.preferred_origin,
                stops_generation=ctx.stops_generation + (1 if refetch else 0),
                stops_loading=refetch,
            )
        )
    return _selecting(
        Context(
            preferred_origin=ctx.preferred_origin,
            stops_generation=ctx.stops_generation + 1,
            routes_loading=True,
        )
    )


_HANDLERS: Dict[type, Callable[[BookingState, object], TransitionResult]] = {
    ev.RoutesLoaded: _on_routes_loaded,
    ev.RoutesFailed: _on_routes_failed,
    ev.RouteChosen: _on_route_chosen,
    ev.StopsLoaded: _on_stops_loaded,
    ev.StopsFailed: _on_stops_failed,
    ev.OriginChosen: _on_origin_chosen,
    ev.DestinationChosen: _on_destination_chosen,
    ev.QuoteRequested: _on_quote_requested,
    ev.QuoteReceived: _on_quote_received,
    ev.QuoteFailed: _on_quote_failed,
    ev.RequestFailed: _on_request_failed,
    ev.PaymentOpened: _on_payment_opened,
    ev.PaymentCancelled: _on_payment_cancelled,
    ev.PaymentCompleted: _on_payment_completed,
    ev.VerificationRetried: _on_verification_retried,
    ev.TicketIssued: _on_ticket_issued,
    ev.VerificationRejected: _on_verification_rejected,
    ev.VerificationInterrupted: _on_verification_interrupted,
    ev.BookingReset: _on_booking_reset,
}


def apply_transition(state: BookingState, event: ev.BookingEvent) -> TransitionResult:
    """Return the state that follows ``event``; refusals leave ``state`` untouched."""

    handler = _HANDLERS.get(type(event))
    if handler is None:
        return _refuse(state)
    return handler(state, event)
