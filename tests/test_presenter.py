"""Tests for ticket encoding and rendering."""

import json

from bus_eticket.models.booking import FareQuote, Journey, Ticket
from bus_eticket.presenter import TicketPresenter


def test_encode_payload(ticket):
    payload = TicketPresenter().encode(ticket)

    assert json.loads(payload) == {
        "ticketId": "tkt_1",
        "amount": "50.00",
        "timestamp": "2025-01-05T10:15:00Z",
        "from": "A",
        "to": "C",
    }
    assert " " not in payload


def test_encode_keeps_non_ascii_stop_names():
    ticket = Ticket("tkt_2", "12.50", "2025-01-05T10:15:00Z", Journey("R1", "కోఠి", "Abids"))
    assert "కోఠి" in TicketPresenter().encode(ticket)


def test_summary_lines(ticket):
    lines = TicketPresenter().summary_lines(ticket)

    assert lines[0] == "Payment Successful"
    assert "From : A" in lines
    assert "To   : C" in lines
    assert "Ticket ID: tkt_1" in lines
    assert "Paid: ₹50.00" in lines
    assert any(line.startswith("Date: ") and "2025" in line for line in lines)


def test_summary_keeps_unparseable_values():
    ticket = Ticket("tkt_3", "fifty", "yesterday", Journey("R1", "A", "B"))
    lines = TicketPresenter().summary_lines(ticket)
    assert "Paid: ₹fifty" in lines
    assert "Date: yesterday" in lines


def test_ascii_rendering(ticket):
    rendered = TicketPresenter().to_ascii(ticket)
    assert len(rendered.splitlines()) > 10


def test_save_png_into_directory(ticket, tmp_path):
    target = TicketPresenter().save_png(ticket, tmp_path / "tickets")

    assert target == tmp_path / "tickets" / "ticket-tkt_1.png"
    assert target.read_bytes().startswith(b"\x89PNG")


def test_presenter_does_not_mutate(ticket):
    before = ticket
    TicketPresenter().render_qr(ticket)
    assert ticket == before


def test_quote_display_amount():
    quote = FareQuote("ord_1", 1234, "INR", Journey("R1", "A", "B"))
    assert quote.display_amount == "12.34"
