"""
Blob storage client for organization logos.

Uploads go through the Supabase Storage REST endpoint with the service-role
key:

    POST {SUPABASE_URL}/storage/v1/object/{bucket}/{path}

`x-upsert: true` lets a re-run overwrite an object at the same path.
"""

import logging
import os
from typing import Optional

import requests
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Constants
UPLOAD_TIMEOUT_SECONDS = 30
DEFAULT_BUCKET = "logos"


class BlobStorageError(Exception):
    """Raised when an object cannot be uploaded."""

    pass


class SupabaseBlobStorage:
    """
    Minimal client for the storage bucket holding logo images.

    Environment Variables Required:
        SUPABASE_URL: Project URL (e.g. https://xyz.supabase.co)
        SUPABASE_SERVICE_ROLE_KEY: Service-role key with write access
        LOGO_BUCKET: Bucket name (default: logos)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        bucket: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the storage client.

        Raises:
            ValueError: If the URL or key is missing
        """
        self.base_url = (base_url or os.getenv("SUPABASE_URL") or "").rstrip("/")
        self.service_key = service_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.bucket = bucket or os.getenv("LOGO_BUCKET", DEFAULT_BUCKET)
        self.session = session or requests.Session()

        if not self.base_url or not self.service_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment or passed as parameters"
            )

        logger.info("Blob storage initialized", extra={"bucket": self.bucket})

    def object_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{path}"

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """
        Upload bytes to `path`, overwriting any existing object.

        Returns:
            The stored object path

        Raises:
            BlobStorageError: On network errors or a non-2xx response
        """
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": content_type,
            "x-upsert": "true",
        }

        try:
            response = self.session.post(
                self.object_url(path),
                data=data,
                headers=headers,
                timeout=UPLOAD_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            raise BlobStorageError(f"Upload of {path} failed: {e}") from e

        if response.status_code >= 400:
            raise BlobStorageError(
                f"Upload of {path} failed with status {response.status_code}: {response.text}"
            )

        logger.debug("Uploaded object", extra={"path": path, "content_type": content_type})
        return path
