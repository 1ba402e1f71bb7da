from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import requests

from ..config.settings import Settings
from ..errors import BackendError, NetworkError, NotFoundError

LOGGER = logging.getLogger(__name__)


class BackendClient:
    """Thin JSON transport over ``requests`` for the fare/payment backend.

    Blocking calls run in a worker thread so callers can await them from
    the single event loop.
    """

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self.base_url = settings.api_base_url.rstrip("/")
        self.timeout = settings.http_timeout_seconds
        self._session = session or requests.Session()

    async def get_json(self, path: str) -> Any:
        return await asyncio.to_thread(self._request, "GET", path, None)

    async def post_json(self, path: str, payload: Mapping[str, Any]) -> Any:
        return await asyncio.to_thread(self._request, "POST", path, dict(payload))

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, payload: dict[str, Any] | None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            LOGGER.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError("Could not reach the ticketing service. Please try again.") from exc

        LOGGER.debug("%s %s -> %s", method, path, response.status_code)
        if response.status_code >= 400:
            message = _error_message(response)
            if response.status_code == 404:
                raise NotFoundError(message, status_code=404)
            raise BackendError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise BackendError("Unexpected response from the ticketing service.", response.status_code) from exc


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Request failed with status {response.status_code}"
