from __future__ import annotations

import logging
from typing import Tuple

from ..errors import AlreadyInProgressError, BackendError, VerificationFailedError
from ..models.booking import Journey, PaymentResult, Ticket
from .client import BackendClient

LOGGER = logging.getLogger(__name__)

FAILED_MESSAGE = "Payment verification failed. Please contact support."


class PaymentVerifier:
    """Submits checkout results for authoritative verification.

    Only one verification may be in flight. Resubmitting the most recent
    verified result returns its ticket instead of asking the backend again.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self._in_flight: PaymentResult | None = None
        self._last: Tuple[tuple, Ticket] | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    async def verify(self, result: PaymentResult, journey: Journey) -> Ticket:
        if self._in_flight is not None:
            raise AlreadyInProgressError("Payment verification is already in progress.")
        if self._last is not None and self._last[0] == result.key():
            issued = self._last[1]
            LOGGER.info("Payment %s already verified as ticket %s", result.payment_id, issued.ticket_id)
            return issued

        self._in_flight = result
        try:
            try:
                payload = await self._client.post_json("/api/payment/verify", result.as_payload())
            except BackendError as exc:
                if exc.status_code is not None and 400 <= exc.status_code < 500:
                    raise VerificationFailedError(FAILED_MESSAGE) from exc
                raise
        finally:
            self._in_flight = None

        if not isinstance(payload, dict) or payload.get("status") != "success":
            LOGGER.warning("Verification rejected payment %s: %r", result.payment_id, payload)
            raise VerificationFailedError(FAILED_MESSAGE)
        try:
            ticket = Ticket.from_dict(payload["ticket"], journey)
        except (KeyError, TypeError) as exc:
            raise BackendError("Unexpected response from the ticketing service.") from exc

        self._last = (result.key(), ticket)
        LOGGER.info("Issued ticket %s for payment %s", ticket.ticket_id, result.payment_id)
        return ticket
