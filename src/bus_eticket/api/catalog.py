from __future__ import annotations

import logging
from typing import Dict, List, Sequence
from urllib.parse import quote

from ..errors import BackendError
from ..models.booking import Route, Stop
from .client import BackendClient

LOGGER = logging.getLogger(__name__)


class RouteCatalog:
    """Reads routes and their ordered stops from the backend."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self._stops: Dict[str, tuple[Stop, ...]] = {}

    async def list_routes(self) -> List[Route]:
        payload = await self._client.get_json("/api/routes")
        routes = [Route.from_dict(item) for item in _as_list(payload)]
        LOGGER.info("Fetched %d routes", len(routes))
        return routes

    async def list_stops(self, route_id: str) -> List[Stop]:
        payload = await self._client.get_json(f"/api/routes/{quote(route_id, safe='')}/stops")
        stops = sorted((Stop.from_dict(item) for item in _as_list(payload)), key=lambda stop: stop.sequence)
        self._stops[route_id] = tuple(stops)
        LOGGER.info("Fetched %d stops for route %s", len(stops), route_id)
        return stops

    def known_stops(self, route_id: str) -> Sequence[Stop]:
        """Stops from the most recent successful fetch for ``route_id``."""

        return self._stops.get(route_id, ())


def _as_list(payload: object) -> list:
    if not isinstance(payload, list):
        raise BackendError("Unexpected response from the ticketing service.")
    return payload
