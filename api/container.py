"""
Service container.

Every external client (Supabase, Stripe, Resend, httpx) is constructed once
here at process start and shared by all requests. Routers reach the
container through `api.dependencies.get_container`; tests build one from
in-memory fakes instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from api.config import Settings
from repositories.client import create_supabase_client
from repositories.geocode_cache_repository import GeocodeCacheRepository
from repositories.listing_repository import ListingRepository
from repositories.sale_repository import SaleRepository
from repositories.seller_stats_repository import SellerStatsRepository
from repositories.user_repository import UserRepository
from services.address_lookup_service import AddressLookupService
from services.email_service import EmailService
from services.geocoding_service import GeocodingService
from services.identity_service import IdentityVerifier
from services.listing_approval_service import ListingApprovalService
from services.listing_checkout_service import ListingCheckoutService
from services.payment_gateway import StripePaymentGateway
from services.sale_recording_service import SaleRecordingService
from services.user_admin_service import UserAdminService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    identity: IdentityVerifier
    sales: SaleRecordingService
    checkout: ListingCheckoutService
    user_admin: UserAdminService
    approvals: ListingApprovalService
    listings: ListingRepository
    geocoding: GeocodingService
    address_lookup: AddressLookupService
    http: Optional[httpx.Client] = field(default=None, repr=False)

    def close(self) -> None:
        if self.http is not None:
            self.http.close()


def build_container(settings: Settings) -> ServiceContainer:
    """Wire production collaborators from settings."""

    client = create_supabase_client(settings)
    http = httpx.Client(timeout=settings.lookup_timeout_seconds)

    users = UserRepository(client)
    listings = ListingRepository(client)
    identity = IdentityVerifier(client, users)
    gateway = StripePaymentGateway(settings.stripe_secret_key, timeout=settings.stripe_timeout_seconds)
    email = EmailService(
        settings.resend_api_key,
        from_address=settings.email_from_address,
        from_name=settings.email_from_name,
        site_url=settings.frontend_url,
    )

    if not gateway.configured:
        logger.warning("STRIPE_SECRET_KEY not set; payment endpoints will fail")
    if not email.configured:
        logger.warning("RESEND_API_KEY not set; notification emails will not be sent")

    return ServiceContainer(
        settings=settings,
        identity=identity,
        sales=SaleRecordingService(
            sales=SaleRepository(client),
            stats=SellerStatsRepository(client),
            users=users,
            gateway=gateway,
            home_currency=settings.home_currency,
            frontend_url=settings.frontend_url,
        ),
        checkout=ListingCheckoutService(
            gateway=gateway,
            listings=listings,
            price_id=settings.stripe_listing_price_id,
            listing_fee=settings.listing_fee,
            frontend_url=settings.frontend_url,
        ),
        user_admin=UserAdminService(identity, users),
        approvals=ListingApprovalService(identity, listings, email),
        listings=listings,
        geocoding=GeocodingService(GeocodeCacheRepository(client), http),
        address_lookup=AddressLookupService(http, settings.handyapi_key),
        http=http,
    )


__all__ = ["ServiceContainer", "build_container"]
