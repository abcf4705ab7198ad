"""
Connection to the hosted backend (Supabase)

This module centralizes ALL the ways of reaching Supabase:
- Service-role client (catalog reads, storage, functions)
- Anon client (user sign-in)
- Client carrying the user JWT (admin mutations subject to RLS)

Clients are created lazily so the package can be imported without
credentials (tests, scripts).
"""
import logging
from functools import lru_cache

from supabase import create_client, Client

from .config import settings

logger = logging.getLogger(__name__)


def _require_supabase_config(key: str) -> None:
    if not settings.SUPABASE_URL or not key:
        raise RuntimeError("SUPABASE_URL and Supabase API keys must be configured")


@lru_cache(maxsize=1)
def get_service_client() -> Client:
    """Service-role client. Bypasses RLS, so only use it behind app-level checks."""
    _require_supabase_config(settings.SUPABASE_SERVICE_ROLE_KEY)
    logger.debug("Creating Supabase service-role client")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def get_anon_client() -> Client:
    """
    Fresh anon-key client.

    A new client per call because sign-in mutates the client's session.
    """
    _require_supabase_config(settings.SUPABASE_ANON_KEY)
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)


def get_user_client(access_token: str) -> Client:
    """
    Anon client whose PostgREST requests carry the user's JWT.

    Row-level security policies are evaluated as that user, so destructive
    admin actions are enforced by the database as well as by the API.
    """
    client = get_anon_client()
    client.postgrest.auth(access_token)
    return client
