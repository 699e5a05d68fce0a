# =============================================================================
# core/services/storage_service.py - Supabase Storage Operations
# =============================================================================
# Handles ambassador media in Supabase Storage:
# - headshots bucket:    photos/{ambassador_id}.{ext}
# - intro-videos bucket: videos/{ambassador_id}.{ext}
#
# Keys are derived from the ambassador id, so a re-upload with the same
# extension overwrites the previous object (upsert). When the extension
# changes the edit removes the old key once the new profile row is saved.
# =============================================================================

import logging

from supabase import Client

from app.exceptions import StorageUploadError
from lib.media import MediaFile
from lib.supabase_client import error_message

logger = logging.getLogger(__name__)

# Storage bucket names
HEADSHOT_BUCKET = "headshots"
VIDEO_BUCKET = "intro-videos"


def headshot_path(ambassador_id: str, ext: str) -> str:
    return f"photos/{ambassador_id}.{ext}"


def video_path(ambassador_id: str, ext: str) -> str:
    return f"videos/{ambassador_id}.{ext}"


def object_path(bucket: str, public_url: str | None) -> str | None:
    """
    Object key inside `bucket` for one of its public URLs.

    Returns None for URLs that don't point into the bucket.
    """
    if not public_url:
        return None
    marker = f"/{bucket}/"
    url = public_url.split("?", 1)[0]
    if marker not in url:
        return None
    return url.split(marker, 1)[1] or None


class StorageService:
    """
    Service for Supabase Storage operations.

    Handles uploading, linking and deleting ambassador media.
    """

    def __init__(self, client: Client):
        self.client = client

    def upload(self, bucket: str, path: str, file: MediaFile, upsert: bool = False) -> str:
        """
        Upload a file and return its public URL.

        Args:
            bucket: Storage bucket name
            path: Object key inside the bucket
            file: Validated media file
            upsert: Overwrite an existing object at the same key

        Returns:
            Public URL of the uploaded object

        Raises:
            StorageUploadError: If upload fails
        """
        try:
            self.client.storage.from_(bucket).upload(
                path=path,
                file=file.content,
                file_options={
                    "content-type": file.content_type,
                    "cache-control": "3600",
                    "upsert": "true" if upsert else "false",
                },
            )
        except Exception as e:
            logger.error(f"Storage upload failed ({bucket}/{path}): {e}")
            raise StorageUploadError(bucket, error_message(e))

        logger.info(f"Uploaded file to storage: {bucket}/{path} ({file.size} bytes)")
        return self.get_public_url(bucket, path)

    def get_public_url(self, bucket: str, path: str) -> str:
        """
        Get a public URL for a storage file.

        Args:
            bucket: Storage bucket name
            path: Object key inside the bucket

        Returns:
            Public URL string
        """
        return self.client.storage.from_(bucket).get_public_url(path)

    def delete(self, bucket: str, path: str) -> None:
        """
        Delete a file from storage.

        Raises:
            Exception: Whatever the storage client raised; callers running
                compensations decide how to report it
        """
        self.client.storage.from_(bucket).remove([path])
        logger.info(f"Deleted file from storage: {bucket}/{path}")
