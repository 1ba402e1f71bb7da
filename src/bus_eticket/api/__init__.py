"""Backend API clients."""

from .catalog import RouteCatalog
from .client import BackendClient
from .quotes import FareQuoteRequester
from .verify import PaymentVerifier

__all__ = ["BackendClient", "FareQuoteRequester", "PaymentVerifier", "RouteCatalog"]
