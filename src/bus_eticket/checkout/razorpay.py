from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Dict

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeout, async_playwright

from ..config.settings import Settings
from ..errors import AlreadyInProgressError, UnavailableError, ValidationError
from ..models.booking import FareQuote, PaymentResult

LOGGER = logging.getLogger(__name__)

CHECKOUT_SCRIPT_URL = "https://checkout.razorpay.com/v1/checkout.js"
CHECKOUT_PAGE = f"""<!doctype html>
<html><head><meta charset="utf-8"><title>Checkout</title>
<script src="{CHECKOUT_SCRIPT_URL}"></script></head><body></body></html>"""
READY_PREDICATE = "() => typeof window.Razorpay === 'function'"
RESULT_BINDING = "bookingPaymentResult"
DISMISS_BINDING = "bookingPaymentDismissed"
OPEN_SCRIPT = f"""(options) => {{
  options.handler = (response) => window.{RESULT_BINDING}({{
    razorpay_payment_id: response.razorpay_payment_id,
    razorpay_order_id: response.razorpay_order_id,
    razorpay_signature: response.razorpay_signature,
  }});
  options.modal = {{ ondismiss: () => window.{DISMISS_BINDING}() }};
  new window.Razorpay(options).open();
}}"""

ResultCallback = Callable[[PaymentResult], None]
CancelCallback = Callable[[], None]
PageOpener = Callable[[bool], AsyncContextManager[Page]]


@dataclass(frozen=True, slots=True)
class CheckoutOptions:
    """Options handed to the widget; money fields are copied from the quote."""

    key: str
    amount: int
    currency: str
    order_id: str
    name: str
    description: str
    prefill: Dict[str, str]
    theme_color: str

    @classmethod
    def for_quote(cls, quote: FareQuote, description: str, settings: Settings) -> "CheckoutOptions":
        return cls(
            key=settings.razorpay_key_id or "",
            amount=quote.amount,
            currency=quote.currency,
            order_id=quote.quote_id,
            name=settings.checkout_name,
            description=description,
            prefill=settings.prefill(),
            theme_color=settings.theme_color,
        )

    def to_js(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "amount": self.amount,
            "currency": self.currency,
            "order_id": self.order_id,
            "name": self.name,
            "description": self.description,
            "prefill": self.prefill,
            "theme": {"color": self.theme_color},
        }


class _Interaction:
    """One checkout attempt; settles exactly once."""

    def __init__(self, quote_id: str, on_result: ResultCallback, on_cancel: CancelCallback) -> None:
        self.quote_id = quote_id
        self._on_result = on_result
        self._on_cancel = on_cancel
        self.settled = False

    def result(self, result: PaymentResult) -> bool:
        if self.settled:
            return False
        self.settled = True
        self._on_result(result)
        return True

    def cancel(self) -> bool:
        if self.settled:
            return False
        self.settled = True
        self._on_cancel()
        return True


class PaymentInitiator:
    """Opens the hosted Razorpay checkout in a Playwright page."""

    def __init__(self, settings: Settings, page: Page) -> None:
        self._settings = settings
        self._page = page
        self._ready = False
        self._active: _Interaction | None = None
        self._paid_quotes: set[str] = set()
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_ready(self) -> bool:
        return self._ready and not self._page.is_closed()

    async def prepare(self) -> bool:
        """Load the widget script and bind its callbacks to this initiator."""

        if self._ready:
            return self.is_ready
        if not self._settings.razorpay_key_id:
            LOGGER.warning("RAZORPAY_KEY_ID is not configured; checkout stays unavailable")
            return False
        try:
            await self._page.expose_function(RESULT_BINDING, self._handle_result)
            await self._page.expose_function(DISMISS_BINDING, self._handle_dismiss)
            self._page.on("close", lambda _page: self._handle_dismiss())
            await self._page.set_content(CHECKOUT_PAGE, wait_until="load")
            await self._page.wait_for_function(
                READY_PREDICATE, timeout=self._settings.checkout_ready_timeout_seconds * 1000
            )
        except (PlaywrightTimeout, PlaywrightError) as exc:
            LOGGER.warning("Checkout widget failed to load: %s", exc)
            return False
        self._ready = True
        LOGGER.info("Checkout widget ready")
        return True

    def initiate(
        self,
        quote: FareQuote,
        description: str,
        on_result: ResultCallback,
        on_cancel: CancelCallback,
    ) -> None:
        if not self.is_ready:
            raise UnavailableError("Payment checkout is not available right now.")
        if self._active is not None and not self._active.settled:
            raise AlreadyInProgressError("A payment window is already open.")
        if quote.quote_id in self._paid_quotes:
            raise ValidationError("This fare has already been paid. Please request a new fare.")

        options = CheckoutOptions.for_quote(quote, description, self._settings)
        self._active = _Interaction(quote.quote_id, on_result, on_cancel)
        task = asyncio.get_running_loop().create_task(self._open(self._active, options))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        LOGGER.info("Opening checkout for quote %s (%s %s)", quote.quote_id, quote.amount, quote.currency)

    async def _open(self, interaction: _Interaction, options: CheckoutOptions) -> None:
        try:
            await self._page.evaluate(OPEN_SCRIPT, options.to_js())
        except PlaywrightError as exc:
            LOGGER.warning("Checkout widget could not open: %s", exc)
            interaction.cancel()

    def abandon(self) -> None:
        """Treat an interaction still open at shutdown as cancelled."""

        self._handle_dismiss()

    def _handle_result(self, response: Dict[str, Any]) -> None:
        interaction = self._active
        if interaction is None:
            LOGGER.warning("Ignoring checkout result with no open interaction")
            return
        result = PaymentResult.from_checkout(response)
        self._paid_quotes.add(interaction.quote_id)
        if not interaction.result(result):
            LOGGER.warning("Ignoring duplicate checkout result for quote %s", interaction.quote_id)

    def _handle_dismiss(self) -> None:
        interaction = self._active
        if interaction is not None and interaction.cancel():
            LOGGER.info("Checkout dismissed for quote %s", interaction.quote_id)


@asynccontextmanager
async def chromium_page(headless: bool) -> AsyncIterator[Page]:
    """Launch Playwright Chromium for the checkout and yield its only page."""

    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=headless)
        try:
            page = await browser.new_page()
            LOGGER.debug("Checkout browser started (headless=%s)", headless)
            yield page
        finally:
            await browser.close()


@asynccontextmanager
async def checkout_session(
    settings: Settings,
    *,
    headless: bool | None = None,
    open_page: PageOpener = chromium_page,
) -> AsyncIterator[PaymentInitiator]:
    """Yield an initiator whose page already has the widget loaded.

    A widget that fails to load still yields the initiator; it just stays
    unavailable and ``initiate`` reports that to the booking.
    """

    resolved = settings.headless if headless is None else headless
    async with open_page(resolved) as page:
        initiator = PaymentInitiator(settings, page)
        await initiator.prepare()
        try:
            yield initiator
        finally:
            initiator.abandon()
