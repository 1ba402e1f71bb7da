from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from .api import BackendClient, FareQuoteRequester, PaymentVerifier, RouteCatalog
from .booking import BookingStateMachine, Quoted
from .checkout import checkout_session
from .config.settings import LaunchParams, Settings
from .errors import BookingError
from .models.booking import PaymentResult, Route, Stop, Ticket
from .presenter import TicketPresenter

LOGGER = logging.getLogger(__name__)

# Seconds to wait before each new verification attempt once a payment went through.
VERIFY_RETRY_DELAYS = (2.0, 5.0, 10.0)


def format_routes(routes: Sequence[Route]) -> str:
    if not routes:
        return "No routes to display."
    width = max(len("Route"), *(len(route.route_id) for route in routes))
    lines = [f"{'Route'.ljust(width)} | Name", f"{'-' * width}-+-{'-' * 20}"]
    lines.extend(f"{route.route_id.ljust(width)} | {route.name}" for route in routes)
    return "\n".join(lines)


def format_stops(stops: Sequence[Stop]) -> str:
    if not stops:
        return "No stops to display."
    return "\n".join(f"{stop.sequence:>3}. {stop.name}" for stop in stops)


async def list_routes(settings: Settings) -> int:
    client = BackendClient(settings)
    try:
        print(format_routes(await RouteCatalog(client).list_routes()))
    except BookingError as exc:
        LOGGER.error("%s", exc.message)
        return 1
    finally:
        client.close()
    return 0


async def list_stops(settings: Settings, route_id: str) -> int:
    client = BackendClient(settings)
    try:
        print(format_stops(await RouteCatalog(client).list_stops(route_id)))
    except BookingError as exc:
        LOGGER.error("%s", exc.message)
        return 1
    finally:
        client.close()
    return 0


async def quote_fare(settings: Settings, route_id: str, from_stop: str, to_stop: str) -> int:
    client = BackendClient(settings)
    catalog = RouteCatalog(client)
    try:
        await catalog.list_stops(route_id)
        quote = await FareQuoteRequester(client, catalog).request_quote(route_id, from_stop, to_stop)
    except BookingError as exc:
        LOGGER.error("%s", exc.message)
        return 1
    finally:
        client.close()
    print(f"{quote.journey.describe()}: {quote.display_amount} {quote.currency} (order {quote.quote_id})")
    return 0


async def confirm_payment(machine: BookingStateMachine, delays: Sequence[float] = VERIFY_RETRY_DELAYS) -> Ticket | None:
    """Pay for the held quote; while the payment stays unconfirmed, retry after each delay."""

    ticket = await machine.pay()
    for attempt, delay in enumerate(delays, start=1):
        if ticket is not None or _unverified_payment(machine) is None:
            break
        LOGGER.warning("Retrying payment verification in %.0fs (%d/%d)", delay, attempt, len(delays))
        await asyncio.sleep(delay)
        ticket = await machine.retry_verification()
    if ticket is None:
        LOGGER.error("%s", machine.error or "Payment was not completed.")
        payment = _unverified_payment(machine)
        if payment is not None:
            print(
                f"Payment {payment.payment_id} for order {payment.order_id} is not confirmed yet. "
                "Keep these ids when contacting support."
            )
    return ticket


def _unverified_payment(machine: BookingStateMachine) -> PaymentResult | None:
    state = machine.state
    return state.unverified if isinstance(state, Quoted) else None


async def run_booking(
    settings: Settings,
    launch: LaunchParams,
    *,
    from_stop: str | None,
    to_stop: str,
    qr_out: Path | None = None,
    headless: bool | None = None,
) -> Ticket | None:
    """Walk one booking from discovery to a rendered ticket."""

    if not launch.fixed_route:
        LOGGER.error("A route is required: pass --route-id or a QR link with routeId")
        return None

    client = BackendClient(settings)
    catalog = RouteCatalog(client)
    try:
        async with checkout_session(settings, headless=headless) as checkout:
            machine = BookingStateMachine(
                catalog,
                FareQuoteRequester(client, catalog),
                checkout,
                PaymentVerifier(client),
                launch=launch,
            )
            machine.subscribe(lambda state: LOGGER.info("Booking is %s", state.phase.value))

            await machine.start()
            if from_stop:
                machine.select_origin(from_stop)
            machine.select_destination(to_stop)
            if await machine.request_quote() is None:
                LOGGER.error("%s", machine.error)
                return None
            print(f"Fare: {machine.quote.display_amount} {machine.quote.currency}")

            ticket = await confirm_payment(machine, VERIFY_RETRY_DELAYS)
            if ticket is None:
                return None
    finally:
        client.close()

    presenter = TicketPresenter()
    print("\n".join(presenter.summary_lines(ticket)))
    print(presenter.to_ascii(ticket))
    target = qr_out or settings.ticket_output_dir
    if target:
        presenter.save_png(ticket, target)
    return ticket
