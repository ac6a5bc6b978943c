"""
Logo Image Resolver

For every open posting with a logo URL and no stored logo yet, downloads the
image, sniffs its real format and uploads it to blob storage. The resulting
object path is written to the row's `logo_path`.

A failure on one logo (fetch error, unknown format, upload error) only leaves
that row without a logo.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional, Protocol

from ..source_extractor.fetcher import FetchError, Fetcher
from .blob_storage import BlobStorageError, SupabaseBlobStorage
from .sniff import detect_image_format

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
LOGO_PREFIX = "logos"
DEFAULT_TABLE = "job_openings"

UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


class LogoPathStore(Protocol):
    def fetch_logo_paths(self, links: list[str], table: str) -> dict[str, str]:
        ...


def logo_object_path(link: str, extension: str) -> str:
    """
    Derive the storage path for a listing's logo from its link.

    Examples:
        >>> logo_object_path("https://www.pciconcursos.com.br/noticias/itu-sp", "png")
        'logos/www_pciconcursos_com_br_noticias_itu-sp.png'
    """
    stem = re.sub(r"^[a-z]+://", "", link.lower())
    stem = UNSAFE_PATH_CHARS.sub("_", stem).strip("_")
    return f"{LOGO_PREFIX}/{stem}.{extension}"


class ImageResolver:
    """Resolves logo URLs to stored object paths, at most once per link."""

    def __init__(
        self,
        fetcher: Fetcher,
        storage: SupabaseBlobStorage,
        store: LogoPathStore,
        max_workers: int = DEFAULT_MAX_WORKERS,
        table: str = DEFAULT_TABLE,
    ):
        self.fetcher = fetcher
        self.storage = storage
        self.store = store
        self.max_workers = max_workers
        self.table = table
        self._known_paths: dict[str, str] = {}
        self.uploaded_count = 0
        self.skipped_count = 0

    def _upload_logo(self, link: str, logo_url: str) -> Optional[str]:
        try:
            data = self.fetcher.fetch_bytes(logo_url)
        except FetchError as e:
            logger.warning("Skipping logo: fetch failed", extra={'link': link, 'logo_url': logo_url, 'error': str(e)})
            return None

        image_format = detect_image_format(data)
        if image_format is None:
            logger.warning("Skipping logo: unrecognized image format", extra={'link': link, 'logo_url': logo_url})
            return None

        path = logo_object_path(link, image_format.extension)
        try:
            self.storage.upload(path, data, image_format.content_type)
        except BlobStorageError as e:
            logger.warning("Skipping logo: upload failed", extra={'link': link, 'path': path, 'error': str(e)})
            return None

        logger.info("Uploaded logo", extra={'link': link, 'path': path})
        return path

    def resolve(self, rows: list[dict[str, Any]]) -> int:
        """
        Fill in `logo_path` for a batch of posting rows in place.

        Rows whose link already has a stored logo reuse that path without any
        fetch or upload.

        Returns:
            Number of logos uploaded for this batch
        """
        candidates = [row for row in rows if row.get('logo_url')]
        if not candidates:
            return 0

        unknown = [row['link'] for row in candidates if row['link'] not in self._known_paths]
        if unknown:
            self._known_paths.update(self.store.fetch_logo_paths(unknown, table=self.table))

        pending = []
        for row in candidates:
            known = self._known_paths.get(row['link'])
            if known:
                row['logo_path'] = known
            else:
                pending.append(row)

        if not pending:
            return 0

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            paths = list(executor.map(lambda row: self._upload_logo(row['link'], row['logo_url']), pending))

        uploaded = 0
        for row, path in zip(pending, paths):
            row['logo_path'] = path
            if path:
                self._known_paths[row['link']] = path
                uploaded += 1
            else:
                self.skipped_count += 1

        self.uploaded_count += uploaded
        logger.info(
            "Resolved logos for batch",
            extra={'candidates': len(candidates), 'uploaded': uploaded, 'reused': len(candidates) - len(pending)},
        )
        return uploaded
