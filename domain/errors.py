"""
Domain: error taxonomy.

Every failure a request can end in is one of these exceptions. Each class
carries the HTTP status the API layer renders it with, so services raise
domain errors and never deal with HTTP directly.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base class for all expected request failures."""

    status_code: int = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        payload.update({k: v for k, v in self.extra.items() if v is not None})
        return payload


class Unauthorized(MarketplaceError):
    """Missing, malformed, expired or rejected bearer credential."""

    status_code = 401


class Forbidden(MarketplaceError):
    """Authenticated, but the caller lacks the admin role."""

    status_code = 403


class IdentityMismatch(MarketplaceError):
    """The verified caller is not the owner of the addressed resource."""

    status_code = 403


class InvalidInput(MarketplaceError):
    status_code = 400


class PaymentNotConfirmed(MarketplaceError):
    """The gateway does not report the payment as succeeded/paid."""

    status_code = 400

    def __init__(self, message: str, status: Optional[str] = None) -> None:
        super().__init__(message, status=status)
        self.status = status


class NotFound(MarketplaceError):
    status_code = 404


class ConfigurationError(MarketplaceError):
    """A required credential for an external collaborator is not configured."""

    status_code = 500


class UpstreamUnavailable(MarketplaceError):
    """Payment gateway, geocoding, address or email provider failed."""

    status_code = 500

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message, retryable=retryable or None)
        self.retryable = retryable


class LedgerError(MarketplaceError):
    """A read or write against the ledger store failed."""

    status_code = 500


__all__ = [
    "MarketplaceError",
    "Unauthorized",
    "Forbidden",
    "IdentityMismatch",
    "InvalidInput",
    "PaymentNotConfirmed",
    "NotFound",
    "ConfigurationError",
    "UpstreamUnavailable",
    "LedgerError",
]
