from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from .config import LaunchParams, load_settings, parse_launch_link
from .runner import list_routes, list_stops, quote_fare, run_booking


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="bus-eticket command-line interface")
    parser.add_argument("--env-file", type=Path, default=None, help="Optional .env file to load")
    parser.add_argument("--log-level", default="INFO", help="Logging level (INFO, DEBUG, ...)")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("routes", help="List bus routes")
    stops_parser = subparsers.add_parser("stops", help="List the stops of a route")
    stops_parser.add_argument("route_id", help="Route identifier")
    quote_parser = subparsers.add_parser("quote", help="Calculate the fare for a journey")
    quote_parser.add_argument("--route-id", required=True, help="Route identifier")
    quote_parser.add_argument("--from", dest="from_stop", required=True, help="Boarding stop")
    quote_parser.add_argument("--to", dest="to_stop", required=True, help="Alighting stop")
    book_parser = subparsers.add_parser("book", help="Buy a ticket through the hosted checkout")
    book_parser.add_argument("--link", default=None, help="Scanned QR link (carries routeId and currentStop)")
    book_parser.add_argument("--route-id", default=None, help="Route identifier (overrides the link)")
    book_parser.add_argument("--current-stop", default=None, help="Stop the passenger is at")
    book_parser.add_argument("--from", dest="from_stop", default=None, help="Boarding stop (defaults to current stop)")
    book_parser.add_argument("--to", dest="to_stop", required=True, help="Alighting stop")
    book_parser.add_argument("--qr-out", type=Path, default=None, help="Write the ticket QR code PNG here")
    book_parser.add_argument("--headless", action="store_true", help="Hide the checkout browser window")
    return parser


def _launch_params(args: argparse.Namespace) -> LaunchParams:
    launch = parse_launch_link(args.link)
    return LaunchParams(
        route_id=args.route_id or launch.route_id,
        current_stop=args.current_stop or launch.current_stop,
    )


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    settings = load_settings(env_file=args.env_file)

    if args.command == "routes":
        raise SystemExit(asyncio.run(list_routes(settings)))
    elif args.command == "stops":
        raise SystemExit(asyncio.run(list_stops(settings, args.route_id)))
    elif args.command == "quote":
        raise SystemExit(asyncio.run(quote_fare(settings, args.route_id, args.from_stop, args.to_stop)))
    elif args.command == "book":
        ticket = asyncio.run(
            run_booking(
                settings,
                _launch_params(args),
                from_stop=args.from_stop,
                to_stop=args.to_stop,
                qr_out=args.qr_out,
                headless=True if args.headless else None,
            )
        )
        raise SystemExit(0 if ticket else 1)
    else:  # pragma: no cover - argparse enforces valid commands
        parser.error("Unknown command")


if __name__ == "__main__":
    main()
