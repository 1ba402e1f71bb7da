from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping


def _format_major(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01')):.2f}"


@dataclass(frozen=True, slots=True)
class Route:
    """A bus route as listed by the catalog."""

    route_id: str
    name: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Route":
        return cls(route_id=str(payload["route_id"]), name=str(payload.get("route_name") or payload["route_id"]))


@dataclass(frozen=True, slots=True)
class Stop:
    """A stop on one route; ``sequence`` orders the stops along it."""

    name: str
    sequence: int

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Stop":
        return cls(name=str(payload["stop_name"]), sequence=int(payload["stop_sequence"]))


@dataclass(frozen=True, slots=True)
class Journey:
    route_id: str
    origin: str
    destination: str

    def describe(self) -> str:
        return f"Ticket from {self.origin} to {self.destination}"


def _minor_units(value: Any) -> int:
    """Amounts arrive in minor units; anything but a whole number is refused."""

    if isinstance(value, bool):
        raise TypeError("amount must be a number, not a boolean")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"amount {value!r} is not a whole number of minor units")
    return int(value)


@dataclass(frozen=True, slots=True)
class FareQuote:
    """Backend-issued, single-use priced offer (an "order")."""

    quote_id: str
    amount: int
    currency: str
    journey: Journey

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], journey: Journey) -> "FareQuote":
        return cls(
            quote_id=str(payload["id"]),
            amount=_minor_units(payload["amount"]),
            currency=str(payload.get("currency") or "INR"),
            journey=journey,
        )

    @property
    def display_amount(self) -> str:
        return _format_major(Decimal(self.amount) / 100)


@dataclass(frozen=True, slots=True)
class PaymentResult:
    """Opaque proof returned by the checkout widget, passed through untouched."""

    fields: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_checkout(cls, response: Mapping[str, Any]) -> "PaymentResult":
        return cls(fields={str(key): str(value) for key, value in response.items() if value is not None})

    @property
    def payment_id(self) -> str | None:
        return self.fields.get("razorpay_payment_id")

    @property
    def order_id(self) -> str | None:
        return self.fields.get("razorpay_order_id")

    def as_payload(self) -> Dict[str, str]:
        return dict(self.fields)

    def key(self) -> tuple[tuple[str, str], ...]:
        return tuple(sorted(self.fields.items()))


@dataclass(frozen=True, slots=True)
class Ticket:
    """A verified e-ticket. The journey is copied from the quote that paid for it."""

    ticket_id: str
    amount: str
    created_at: str
    journey: Journey

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], journey: Journey) -> "Ticket":
        return cls(
            ticket_id=str(payload["ticket_id"]),
            amount=str(payload["amount"]),
            created_at=str(payload["created_at"]),
            journey=journey,
        )

    @property
    def display_amount(self) -> str:
        try:
            return _format_major(Decimal(self.amount))
        except InvalidOperation:
            return self.amount
