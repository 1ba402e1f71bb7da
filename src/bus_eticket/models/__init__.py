"""Data models."""

from .booking import FareQuote, Journey, PaymentResult, Route, Stop, Ticket

__all__ = ["FareQuote", "Journey", "PaymentResult", "Route", "Stop", "Ticket"]
