"""
Shared plumbing for Supabase-backed repositories
"""
import logging
from typing import Any, Optional

from supabase import Client

from storefront.core.database import get_service_client
from storefront.core.exceptions import BackendServiceError

logger = logging.getLogger(__name__)


class SupabaseRepository:
    """
    Base repository

    Takes an explicit client (user-scoped for RLS-gated admin mutations,
    a mock in tests) or falls back to the service-role client.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_service_client()
        return self._client

    def _execute(self, query: Any, action: str) -> Any:
        """Run a PostgREST query, wrapping any client failure as BackendServiceError"""
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Error {action}: {e}")
            raise BackendServiceError(f"Error {action}", cause=e)
