from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Dict
from urllib.parse import parse_qs, urlsplit

from dotenv import load_dotenv

DEFAULT_CHECKOUT_NAME = "TSRTC e-Ticket"
DEFAULT_THEME_COLOR = "#F37254"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _parse_float(value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    return float(value)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _resolve_dir(path_str: str | None) -> Path | None:
    if not path_str:
        return None
    return Path(path_str).expanduser().resolve()


@dataclass(slots=True)
class LaunchParams:
    """Parameters carried by the QR link a passenger scanned."""

    route_id: str | None = None
    current_stop: str | None = None

    @property
    def fixed_route(self) -> bool:
        return self.route_id is not None


@dataclass(slots=True)
class Settings:
    """Aggregated runtime configuration."""

    api_base_url: str
    razorpay_key_id: str | None = None
    checkout_name: str = DEFAULT_CHECKOUT_NAME
    theme_color: str = DEFAULT_THEME_COLOR
    prefill_name: str | None = None
    prefill_email: str | None = None
    prefill_contact: str | None = None
    http_timeout_seconds: float = 15.0
    checkout_ready_timeout_seconds: float = 30.0
    headless: bool = False
    ticket_output_dir: Path | None = None

    def prefill(self) -> Dict[str, Any]:
        payload = {
            "name": self.prefill_name,
            "email": self.prefill_email,
            "contact": self.prefill_contact,
        }
        return {key: value for key, value in payload.items() if value}


def parse_launch_link(text: str | None) -> LaunchParams:
    """Read ``routeId``/``currentStop`` from a scanned link or a bare query string."""

    if not text:
        return LaunchParams()
    text = text.strip()
    query = urlsplit(text).query if "://" in text or text.startswith("/") else text.lstrip("?")
    values = parse_qs(query)

    def first(name: str) -> str | None:
        items = values.get(name)
        return _clean(items[0]) if items else None

    return LaunchParams(route_id=first("routeId"), current_stop=first("currentStop"))


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Load configuration from environment variables and an optional .env file."""

    load_dotenv(dotenv_path=env_file)

    api_base_url = _clean(os.getenv("API_BASE_URL"))
    if not api_base_url:
        raise ValueError("API_BASE_URL is required")

    return Settings(
        api_base_url=api_base_url.rstrip("/"),
        razorpay_key_id=_clean(os.getenv("RAZORPAY_KEY_ID")),
        checkout_name=os.getenv("CHECKOUT_NAME", DEFAULT_CHECKOUT_NAME) or DEFAULT_CHECKOUT_NAME,
        theme_color=os.getenv("CHECKOUT_THEME_COLOR", DEFAULT_THEME_COLOR) or DEFAULT_THEME_COLOR,
        prefill_name=_clean(os.getenv("PREFILL_NAME")),
        prefill_email=_clean(os.getenv("PREFILL_EMAIL")),
        prefill_contact=_clean(os.getenv("PREFILL_CONTACT")),
        http_timeout_seconds=_parse_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 15.0),
        checkout_ready_timeout_seconds=_parse_float(os.getenv("CHECKOUT_READY_TIMEOUT_SECONDS"), 30.0),
        headless=_parse_bool(os.getenv("HEADLESS")),
        ticket_output_dir=_resolve_dir(os.getenv("TICKET_OUTPUT_DIR")),
    )
