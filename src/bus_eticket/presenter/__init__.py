"""Ticket presentation."""

from .ticket import TicketPresenter

__all__ = ["TicketPresenter"]
