"""Pytest configuration and shared fixtures."""

import pytest

from bus_eticket.config.settings import Settings
from bus_eticket.models.booking import FareQuote, Journey, PaymentResult, Ticket

from fakes import CHECKOUT_RESPONSE, CREATED_AT, ROUTES, STOPS_R1, STOPS_R2, FakeBackend


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url="https://api.example.test", razorpay_key_id="rzp_test_key")


@pytest.fixture
def backend() -> FakeBackend:
    fake = FakeBackend()
    fake.on("GET", "/api/routes", ROUTES)
    fake.on("GET", "/api/routes/R1/stops", STOPS_R1)
    fake.on("GET", "/api/routes/R2/stops", STOPS_R2)
    fake.on("POST", "/api/orders", {"id": "ord_1", "amount": 5000, "currency": "INR"})
    fake.on(
        "POST",
        "/api/payment/verify",
        {"status": "success", "ticket": {"ticket_id": "tkt_1", "amount": "50.00", "created_at": CREATED_AT}},
    )
    return fake


@pytest.fixture
def journey() -> Journey:
    return Journey(route_id="R1", origin="A", destination="C")


@pytest.fixture
def quote(journey: Journey) -> FareQuote:
    return FareQuote(quote_id="ord_1", amount=5000, currency="INR", journey=journey)


@pytest.fixture
def payment() -> PaymentResult:
    return PaymentResult.from_checkout(CHECKOUT_RESPONSE)


@pytest.fixture
def ticket(journey: Journey) -> Ticket:
    return Ticket(ticket_id="tkt_1", amount="50.00", created_at=CREATED_AT, journey=journey)
