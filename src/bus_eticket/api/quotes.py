from __future__ import annotations

import logging

from ..errors import BackendError, ValidationError
from ..models.booking import FareQuote, Journey
from .catalog import RouteCatalog
from .client import BackendClient

LOGGER = logging.getLogger(__name__)


class FareQuoteRequester:
    """Asks the backend to price a journey.

    Preconditions are checked against the catalog's latest stop list so a
    bad selection never reaches the network.
    """

    def __init__(self, client: BackendClient, catalog: RouteCatalog) -> None:
        self._client = client
        self._catalog = catalog

    def validate(self, route_id: str | None, from_stop: str | None, to_stop: str | None) -> Journey:
        if not route_id:
            raise ValidationError("Please select a route.")
        if not from_stop or not to_stop:
            raise ValidationError("Please select a starting point and a destination.")
        if from_stop == to_stop:
            raise ValidationError("Start and destination cannot be the same.")
        names = {stop.name for stop in self._catalog.known_stops(route_id)}
        for name in (from_stop, to_stop):
            if name not in names:
                raise ValidationError(f"{name} is not a stop on route {route_id}.")
        return Journey(route_id=route_id, origin=from_stop, destination=to_stop)

    async def request_quote(self, route_id: str | None, from_stop: str | None, to_stop: str | None) -> FareQuote:
        journey = self.validate(route_id, from_stop, to_stop)
        payload = await self._client.post_json(
            "/api/orders",
            {"routeId": journey.route_id, "fromStopName": journey.origin, "toStopName": journey.destination},
        )
        try:
            quote = FareQuote.from_dict(payload, journey)
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendError("Could not calculate fare.") from exc
        if quote.amount < 0:
            raise BackendError("Could not calculate fare.")
        LOGGER.info(
            "Quote %s: %s -> %s on %s costs %s %s",
            quote.quote_id,
            journey.origin,
            journey.destination,
            journey.route_id,
            quote.display_amount,
            quote.currency,
        )
        return quote
