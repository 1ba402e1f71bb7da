from __future__ import annotations

import io
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List

import qrcode
from qrcode import constants

from ..models.booking import Ticket

LOGGER = logging.getLogger(__name__)

RUPEE = "₹"


class TicketPresenter:
    """Renders a verified ticket without ever changing it."""

    def __init__(self, box_size: int = 10, border: int = 4) -> None:
        self.box_size = box_size
        self.border = border

    def encode(self, ticket: Ticket) -> str:
        """Compact JSON payload carried by the ticket's QR code."""

        payload = {
            "ticketId": ticket.ticket_id,
            "amount": ticket.amount,
            "timestamp": ticket.created_at,
            "from": ticket.journey.origin,
            "to": ticket.journey.destination,
        }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)

    def render_qr(self, ticket: Ticket) -> qrcode.QRCode:
        qr = qrcode.QRCode(
            version=None,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(self.encode(ticket))
        qr.make(fit=True)
        return qr

    def save_png(self, ticket: Ticket, path: str | Path) -> Path:
        target = Path(path).expanduser()
        if target.suffix == "":
            target = target / f"ticket-{ticket.ticket_id}.png"
        target.parent.mkdir(parents=True, exist_ok=True)
        image = self.render_qr(ticket).make_image(fill_color="black", back_color="white")
        with target.open("wb") as handle:
            image.save(handle)
        LOGGER.info("Saved QR code for ticket %s to %s", ticket.ticket_id, target)
        return target

    def to_ascii(self, ticket: Ticket) -> str:
        buffer = io.StringIO()
        self.render_qr(ticket).print_ascii(out=buffer, invert=True)
        return buffer.getvalue()

    def summary_lines(self, ticket: Ticket) -> List[str]:
        return [
            "Payment Successful",
            "Your e-Ticket is ready",
            "",
            f"From : {ticket.journey.origin}",
            f"To   : {ticket.journey.destination}",
            "",
            f"Ticket ID: {ticket.ticket_id}",
            f"Paid: {RUPEE}{ticket.display_amount}",
            f"Date: {_format_timestamp(ticket.created_at)}",
        ]


def _format_timestamp(raw: str) -> str:
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return raw
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%d %b %Y, %I:%M %p")
