"""Hosted checkout helpers."""

from .razorpay import CheckoutOptions, PaymentInitiator, checkout_session, chromium_page

__all__ = ["CheckoutOptions", "PaymentInitiator", "checkout_session", "chromium_page"]
