"""Tests for the pure booking transition function.

Every test builds a state, applies one event and checks the outcome;
nothing here touches the network or the event loop.
"""

import pytest

from bus_eticket.booking import (
    AwaitingPayment,
    Context,
    Discovering,
    Phase,
    Quoted,
    Selecting,
    Selection,
    Ticketed,
    Verifying,
    apply_transition,
    initial_state,
)
from bus_eticket.booking import events as ev
from bus_eticket.booking.transitions import FIXED_ROUTE, STALE_RESPONSE, UNVERIFIED_PAYMENT
from bus_eticket.config.settings import LaunchParams
from bus_eticket.models.booking import FareQuote, Journey, Route, Stop

STOPS = (Stop("A", 1), Stop("B", 2), Stop("C", 3))


def _selecting(**selection) -> Selecting:
    return Selecting(
        Context(
            selection=Selection(route_id="R1", **selection),
            routes=(Route("R1", "Route 1"),),
            stops=STOPS,
            stops_generation=1,
        )
    )


def _quoted(quote) -> Quoted:
    return Quoted(_selecting(origin="A", destination="C").context, quote)


class TestDiscovery:

    def test_fixed_route_starts_loading_stops(self):
        state = initial_state(LaunchParams(route_id="R1", current_stop="B"))
        assert isinstance(state, Discovering)
        assert state.context.fixed_route
        assert state.context.stops_loading
        assert state.context.selection.route_id == "R1"

    def test_manual_mode_starts_loading_routes(self):
        state = initial_state()
        assert state.context.routes_loading
        assert not state.context.fixed_route

    def test_stops_preselect_current_stop(self):
        state = initial_state(LaunchParams(route_id="R1", current_stop="B"))
        result = apply_transition(state, ev.StopsLoaded("R1", 1, (Stop("C", 3), Stop("B", 2), Stop("A", 1))))

        assert result.accepted
        assert result.state.phase is Phase.SELECTING
        assert result.state.context.selection.origin == "B"
        assert [stop.name for stop in result.state.context.stops] == ["A", "B", "C"]

    def test_unknown_current_stop_is_ignored(self):
        state = initial_state(LaunchParams(route_id="R1", current_stop="Nowhere"))
        result = apply_transition(state, ev.StopsLoaded("R1", 1, STOPS))
        assert result.state.context.selection.origin is None

    def test_routes_failure_annotates_selecting(self):
        result = apply_transition(initial_state(), ev.RoutesFailed("Could not reach the ticketing service."))
        assert isinstance(result.state, Selecting)
        assert result.state.context.error == "Could not reach the ticketing service."
        assert not result.state.context.routes_loading

    def test_routes_loaded(self):
        result = apply_transition(initial_state(), ev.RoutesLoaded((Route("R1", "Route 1"),)))
        assert isinstance(result.state, Selecting)
        assert result.state.context.routes == (Route("R1", "Route 1"),)


class TestStopFetchOrdering:

    def test_superseded_route_response_is_discarded(self):
        state = Selecting(Context(routes=(Route("R1", "Route 1"), Route("R2", "Route 2"))))
        state = apply_transition(state, ev.RouteChosen("R1")).state
        r1_generation = state.context.stops_generation
        state = apply_transition(state, ev.RouteChosen("R2")).state
        r2_generation = state.context.stops_generation

        late = apply_transition(state, ev.StopsLoaded("R1", r1_generation, STOPS))
        assert not late.accepted
        assert late.reason == STALE_RESPONSE
        assert late.state is state

        current = apply_transition(state, ev.StopsLoaded("R2", r2_generation, (Stop("X", 1),)))
        assert current.accepted
        assert current.state.context.stops == (Stop("X", 1),)

    def test_clearing_route_cancels_pending_fetch(self):
        state = apply_transition(Selecting(Context()), ev.RouteChosen("R1")).state
        generation = state.context.stops_generation
        state = apply_transition(state, ev.RouteChosen(None)).state

        assert not state.context.stops_loading
        assert not apply_transition(state, ev.StopsLoaded("R1", generation, STOPS)).accepted

    def test_stale_failure_is_discarded(self):
        state = apply_transition(Selecting(Context()), ev.RouteChosen("R1")).state
        state = apply_transition(state, ev.RouteChosen("R2")).state
        result = apply_transition(state, ev.StopsFailed("R1", 1, "Route not found"))
        assert not result.accepted
        assert state.context.error is None

    def test_fixed_route_cannot_change(self):
        state = apply_transition(
            initial_state(LaunchParams(route_id="R1")), ev.StopsLoaded("R1", 1, STOPS)
        ).state
        result = apply_transition(state, ev.RouteChosen("R2"))
        assert not result.accepted
        assert result.reason == FIXED_ROUTE


class TestQuoting:

    def test_quote_received_enters_quoted(self, quote):
        state = apply_transition(_selecting(origin="A", destination="C"), ev.QuoteRequested()).state
        assert state.context.quote_loading

        result = apply_transition(state, ev.QuoteReceived(quote))
        assert isinstance(result.state, Quoted)
        assert result.state.quote == quote
        assert not result.state.context.quote_loading

    def test_quote_for_old_selection_is_discarded(self, quote):
        state = apply_transition(_selecting(origin="A", destination="C"), ev.QuoteRequested()).state
        state = apply_transition(state, ev.DestinationChosen("B")).state

        result = apply_transition(state, ev.QuoteReceived(quote))
        assert not result.accepted
        assert result.reason == STALE_RESPONSE
        assert isinstance(result.state, Selecting)
        assert result.state.context.error is None

    def test_unrequested_quote_is_discarded(self, quote):
        result = apply_transition(_selecting(origin="A", destination="C"), ev.QuoteReceived(quote))
        assert not result.accepted

    def test_second_request_while_pending_is_refused(self):
        state = apply_transition(_selecting(origin="A", destination="C"), ev.QuoteRequested()).state
        assert not apply_transition(state, ev.QuoteRequested()).accepted

    def test_quote_failure_shows_error(self):
        state = apply_transition(_selecting(origin="A", destination="C"), ev.QuoteRequested()).state
        result = apply_transition(state, ev.QuoteFailed(state.context.selection, "Invalid stop pair"))
        assert isinstance(result.state, Selecting)
        assert result.state.context.error == "Invalid stop pair"
        assert not result.state.context.quote_loading

    @pytest.mark.parametrize(
        "event",
        [ev.OriginChosen("B"), ev.DestinationChosen("B"), ev.RouteChosen("R2")],
    )
    def test_selection_change_drops_quote(self, quote, event):
        result = apply_transition(_quoted(quote), event)
        assert result.accepted
        assert isinstance(result.state, Selecting)
        assert not hasattr(result.state, "quote")

    def test_same_selection_keeps_quote(self, quote):
        state = _quoted(quote)
        result = apply_transition(state, ev.OriginChosen("A"))
        assert result.state is state

    def test_new_request_from_quoted_discards_quote(self, quote):
        result = apply_transition(_quoted(quote), ev.QuoteRequested())
        assert isinstance(result.state, Selecting)
        assert result.state.context.quote_loading

    def test_error_slot_cleared_by_next_transition(self):
        message = "Start and destination cannot be the same."
        state = apply_transition(_selecting(origin="A", destination="A"), ev.RequestFailed(message)).state
        assert state.context.error == message

        state = apply_transition(state, ev.DestinationChosen("C")).state
        assert state.context.error is None


class TestPayment:

    def test_open_and_cancel_keeps_quote(self, quote):
        state = apply_transition(_quoted(quote), ev.PaymentOpened()).state
        assert isinstance(state, AwaitingPayment)

        state = apply_transition(state, ev.PaymentCancelled()).state
        assert isinstance(state, Quoted)
        assert state.quote.quote_id == "ord_1"

    def test_selection_locked_while_checkout_open(self, quote):
        state = AwaitingPayment(_quoted(quote).context, quote)
        assert not apply_transition(state, ev.OriginChosen("B")).accepted
        assert not apply_transition(state, ev.BookingReset()).accepted

    def test_result_moves_to_verifying(self, quote, payment):
        state = AwaitingPayment(_quoted(quote).context, quote)
        result = apply_transition(state, ev.PaymentCompleted(payment))
        assert isinstance(result.state, Verifying)
        assert result.state.payment == payment

    def test_ticket_issued(self, quote, payment, ticket):
        state = Verifying(_quoted(quote).context, quote, payment)
        result = apply_transition(state, ev.TicketIssued(ticket))
        assert isinstance(result.state, Ticketed)
        assert result.state.ticket == ticket
        assert not hasattr(result.state, "quote")

    def test_rejected_verification_discards_quote(self, quote, payment):
        state = Verifying(_quoted(quote).context, quote, payment)
        result = apply_transition(state, ev.VerificationRejected("Payment verification failed. Please contact support."))
        assert isinstance(result.state, Selecting)
        assert result.state.context.error == "Payment verification failed. Please contact support."
        assert result.state.context.selection.origin == "A"

    def test_interrupted_verification_keeps_payment(self, quote, payment):
        state = Verifying(_quoted(quote).context, quote, payment)
        state = apply_transition(state, ev.VerificationInterrupted("Could not reach the ticketing service.")).state

        assert isinstance(state, Quoted)
        assert state.unverified == payment
        refused = apply_transition(state, ev.PaymentOpened())
        assert not refused.accepted
        assert refused.reason == UNVERIFIED_PAYMENT
        assert not apply_transition(state, ev.DestinationChosen("B")).accepted

        retried = apply_transition(state, ev.VerificationRetried())
        assert isinstance(retried.state, Verifying)
        assert retried.state.payment == payment

    def test_retry_needs_unverified_payment(self, quote):
        assert not apply_transition(_quoted(quote), ev.VerificationRetried()).accepted


class TestReset:

    def test_ticketed_journey_is_fixed_until_reset(self, ticket):
        state = Ticketed(_selecting(origin="A", destination="C").context, ticket)
        assert not apply_transition(state, ev.OriginChosen("B")).accepted
        assert not apply_transition(state, ev.RouteChosen("R2")).accepted

    def test_new_fare_request_drops_ticket(self, ticket):
        state = Ticketed(_selecting(origin="A", destination="C").context, ticket)
        result = apply_transition(state, ev.QuoteRequested())

        assert isinstance(result.state, Selecting)
        assert result.state.context.quote_loading
        assert result.state.context.selection == Selection(route_id="R1", origin="A", destination="C")

    def test_reset_in_manual_mode_rediscovers_routes(self, ticket):
        state = Ticketed(_selecting(origin="A", destination="C").context, ticket)
        result = apply_transition(state, ev.BookingReset())

        assert isinstance(result.state, Selecting)
        ctx = result.state.context
        assert ctx.selection == Selection()
        assert ctx.routes == ()
        assert ctx.routes_loading

    def test_reset_in_fixed_mode_keeps_route_and_stops(self, ticket):
        ctx = Context(selection=Selection("R1", "A", "C"), stops=STOPS, fixed_route_id="R1", stops_generation=1)
        result = apply_transition(Ticketed(ctx, ticket), ev.BookingReset())

        new_ctx = result.state.context
        assert new_ctx.selection == Selection(route_id="R1")
        assert new_ctx.stops == STOPS
        assert not new_ctx.stops_loading

    def test_reset_in_fixed_mode_refetches_missing_stops(self):
        ctx = Context(selection=Selection("R1"), fixed_route_id="R1", stops_generation=1, error="Route not found")
        result = apply_transition(Selecting(ctx), ev.BookingReset())
        assert result.state.context.stops_loading
        assert result.state.context.stops_generation == 2
        assert result.state.context.error is None


def test_quoted_never_holds_a_ticket():
    journey = Journey("R1", "A", "C")
    state = Quoted(Context(), FareQuote("ord_9", 100, "INR", journey))
    assert not hasattr(state, "ticket")
