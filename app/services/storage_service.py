"""
Object storage access for uploaded materials (Supabase Storage).

The client uses the service-role key: ownership is enforced by the API
before any storage call is made.
"""

from supabase import Client, create_client

from app.core.config import settings
from app.core.errors import StorageDeleteFailed, StorageUnavailable
from app.core.logging_config import get_logger

logger = get_logger(__name__)


class StorageService:
    def __init__(self, client: Client, bucket: str):
        self.client = client
        self.bucket = bucket

    def download(self, path: str) -> bytes:
        """Download a stored object. Raises StorageUnavailable on any failure."""
        try:
            data = self.client.storage.from_(self.bucket).download(path)
        except Exception as e:
            logger.error(f"Storage download failed | bucket={self.bucket} | path={path} | error={e}")
            raise StorageUnavailable()
        logger.debug(f"Downloaded {len(data)} bytes from {self.bucket}/{path}")
        return data

    def delete(self, path: str) -> None:
        """Remove a stored object. Raises StorageDeleteFailed on any failure."""
        try:
            self.client.storage.from_(self.bucket).remove([path])
        except Exception as e:
            raise StorageDeleteFailed(error=str(e))
        logger.info(f"Deleted file from storage: {self.bucket}/{path}")


def create_storage_service() -> StorageService:
    """Build the process-wide storage service from settings."""
    if not settings.supabase_url or not settings.supabase_service_key:
        logger.error("Supabase storage not configured")
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be configured")
    client = create_client(settings.supabase_url, settings.supabase_service_key)
    return StorageService(client, settings.storage_bucket)
