"""
Runtime configuration.

Settings are read once from the environment. A `.env` file in the project
root is loaded first so local development does not need exported variables.

Secrets for optional collaborators (Stripe, Resend, HandyAPI) may be absent;
the feature that needs them then fails with a ConfigurationError at call
time instead of at start-up.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    stripe_secret_key: Optional[str] = None
    stripe_listing_price_id: Optional[str] = None
    stripe_timeout_seconds: float = 10.0

    resend_api_key: Optional[str] = None
    email_from_address: str = "notification@urbangaragesales.com.au"
    email_from_name: str = "Urban Garage Sale"

    handyapi_key: Optional[str] = None
    lookup_timeout_seconds: float = 5.0

    frontend_url: str = "http://localhost:5173"
    home_currency: str = "aud"
    listing_fee: Decimal = Decimal("10.00")

    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build Settings from the process environment (after loading `.env`)."""

    load_dotenv(dotenv_path=env_path)

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
        stripe_listing_price_id=os.getenv("STRIPE_LISTING_PRICE_ID") or None,
        stripe_timeout_seconds=float(os.getenv("STRIPE_TIMEOUT_SECONDS", "10")),
        resend_api_key=os.getenv("RESEND_API_KEY") or None,
        email_from_address=os.getenv("EMAIL_FROM_ADDRESS", "notification@urbangaragesales.com.au"),
        handyapi_key=os.getenv("HANDYAPI_KEY") or None,
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
        home_currency=os.getenv("HOME_CURRENCY", "aud").lower(),
        listing_fee=Decimal(os.getenv("LISTING_FEE", "10.00")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


__all__ = ["Settings", "load_settings"]
