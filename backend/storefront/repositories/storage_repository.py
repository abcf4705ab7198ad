"""
Blob storage gateway (Supabase Storage buckets)
"""
import logging
from typing import List, Optional

from supabase import Client

from storefront.core.exceptions import BackendServiceError
from storefront.repositories.base import SupabaseRepository

logger = logging.getLogger(__name__)


class StorageRepository(SupabaseRepository):
    """Upload, remove and link objects of a single bucket"""

    def __init__(self, bucket: str, client: Optional[Client] = None):
        super().__init__(client)
        self.bucket = bucket

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store data under key; returns the key"""
        try:
            self._bucket().upload(
                path=key,
                file=data,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as e:
            logger.error(f"Error uploading {key} to {self.bucket}: {e}")
            raise BackendServiceError(f"Error uploading to {self.bucket}", cause=e)
        return key

    def remove(self, keys: List[str]) -> None:
        try:
            self._bucket().remove(keys)
        except Exception as e:
            logger.error(f"Error removing {keys} from {self.bucket}: {e}")
            raise BackendServiceError(f"Error removing from {self.bucket}", cause=e)

    def create_signed_url(self, key: str, expires_in: int) -> str:
        """Short-lived URL for a private object"""
        try:
            result = self._bucket().create_signed_url(key, expires_in)
        except Exception as e:
            logger.error(f"Error signing {key} in {self.bucket}: {e}")
            raise BackendServiceError(f"Error signing URL in {self.bucket}", cause=e)

        # storage3 has returned both spellings across releases
        url = (result.get("signedURL") or result.get("signedUrl")) if isinstance(result, dict) else None
        if not url:
            raise BackendServiceError(f"No signed URL returned for {key}")
        return url

    def get_public_url(self, key: str) -> str:
        return self._bucket().get_public_url(key)
