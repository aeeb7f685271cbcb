"""File storage for product images and fulfillment proof (Supabase Storage)."""

import asyncio
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger

from supabase import Client, create_client

logger = get_logger(__name__)


class StorageNotConfiguredError(RuntimeError):
    pass


class StorageService:
    """Thin wrapper over a Supabase storage bucket."""

    def __init__(self):
        self._client: Optional[Client] = None

    @property
    def bucket(self) -> str:
        return get_settings().SUPABASE_STORAGE_BUCKET

    def _get_client(self) -> Client:
        if self._client is None:
            settings = get_settings()
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
                raise StorageNotConfiguredError("File storage is not configured")
            self._client = create_client(
                settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
            )
        return self._client

    def _upload_sync(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self._get_client().storage.from_(self.bucket)
        bucket.upload(
            path=path,
            file=data,
            file_options={"content-type": content_type, "upsert": "false"},
        )
        return bucket.get_public_url(path)

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes to ``path`` in the bucket and return the public URL."""
        url = await asyncio.to_thread(self._upload_sync, path, data, content_type)
        logger.info(
            "Uploaded %s (%d bytes)",
            path,
            len(data),
            extra={"extra_fields": {"bucket": self.bucket}},
        )
        return url


storage_service = StorageService()
