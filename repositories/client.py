"""
Supabase client construction.

This module contains *only* the database connection setup. The client is
built once at process start by the service container and handed to every
repository; nothing here keeps a module-level connection.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use the service-role key on the backend,
  since admin user deletion goes through it)
"""

from __future__ import annotations

from typing import Any, List, Mapping

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client  # type: ignore[import-not-found]

from api.config import Settings
from domain.errors import LedgerError


def create_supabase_client(settings: Settings) -> Client:
    """Create the Supabase client, failing fast on missing credentials."""

    if not settings.supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not settings.supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    return create_client(settings.supabase_url, settings.supabase_key)


def execute(query: Any, action: str) -> List[Mapping[str, Any]]:
    """
    Run a postgrest query builder and return its rows.

    Both styles of failure supabase-py has used (raised APIError, or an
    `error` attribute on the response) are turned into LedgerError, and so
    are transport failures (connection errors, timeouts) from its HTTP client.
    """

    try:
        response = query.execute()
    except APIError as e:
        raise LedgerError(f"Failed to {action}: {e.message or e}") from e
    except httpx.HTTPError as e:
        raise LedgerError(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise LedgerError(f"Failed to {action}: {error}")

    return getattr(response, "data", None) or []


__all__ = ["create_supabase_client", "execute"]
