"""
Reconciler

Writes the normalized rows of one run to the target table.

Open postings are held until every source has finished. The run then aborts
with SafetyThresholdError if fewer raw listings than the configured minimum
were scraped (nothing is written or deleted). Otherwise logos are resolved,
rows are upserted in batches tagged with the run id, and rows carrying any
other run id are deleted.

News and predicted postings are upserted on every flush; nothing is ever
deleted from those tables.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ..images.resolver import ImageResolver
from ..source_extractor.base import ContentType
from ..source_extractor.source_config import PipelineSettings

logger = logging.getLogger(__name__)


class SafetyThresholdError(Exception):
    """Raised when a run scraped too few listings to be trusted."""

    def __init__(self, listing_count: int, threshold: int):
        super().__init__(
            f"Scraping returned only {listing_count} listings, below the minimum of {threshold}; "
            "no rows were written or deleted"
        )
        self.listing_count = listing_count
        self.threshold = threshold


class ListingStore(Protocol):
    def upsert_postings_batch(self, table: str, rows: list[dict[str, Any]]) -> int:
        ...

    def upsert_articles_batch(self, table: str, rows: list[dict[str, Any]]) -> int:
        ...

    def delete_stale_postings(self, table: str, run_id: str) -> int:
        ...


@dataclass
class ReconcileResult:
    upserted: int = 0
    logos_uploaded: int = 0
    stale_deleted: int = 0

    @property
    def message(self) -> str:
        return f"{self.upserted}, {self.logos_uploaded}, {self.stale_deleted}"


class Reconciler:
    """
    Sink for the normalized rows of one content-type run.

    Usage:
        reconciler = Reconciler(store, settings, ContentType.NEWS, run_id)
        reconciler.flush(rows)          # once per orchestrator batch
        result = reconciler.finish(raw_listing_count)
    """

    def __init__(
        self,
        store: Optional[ListingStore],
        settings: PipelineSettings,
        content_type: ContentType,
        run_id: str,
        image_resolver: Optional[ImageResolver] = None,
        dry_run: bool = False,
    ):
        if store is None and not dry_run:
            raise ValueError("A listing store is required unless dry_run is set")

        self.store = store
        self.settings = settings
        self.content_type = content_type
        self.run_id = run_id
        self.image_resolver = image_resolver
        self.dry_run = dry_run
        self.result = ReconcileResult()
        self._pending: list[dict[str, Any]] = []

    @property
    def deferred(self) -> bool:
        """Whether rows are held until finish() instead of written per flush."""
        return self.content_type is ContentType.OPEN_POSTINGS

    def flush(self, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        if self.deferred:
            self._pending.extend(rows)
            logger.debug("Queued batch for reconciliation", extra={'rows': len(rows), 'pending': len(self._pending)})
            return
        self._write_articles(rows)

    def _write_articles(self, rows: list[dict[str, Any]]) -> None:
        if self.dry_run:
            logger.info("Dry run: would upsert batch", extra={'table': self.settings.table, 'rows': len(rows)})
            self.result.upserted += len(rows)
            return

        self.result.upserted += self.store.upsert_articles_batch(self.settings.table, rows)
        logger.info(
            "Flushed batch",
            extra={'table': self.settings.table, 'rows': len(rows), 'total_upserted': self.result.upserted},
        )

    def _write_postings(self) -> None:
        batch_size = self.settings.batch_size
        for start in range(0, len(self._pending), batch_size):
            batch = self._pending[start:start + batch_size]

            if self.dry_run:
                logger.info("Dry run: would upsert batch", extra={'table': self.settings.table, 'rows': len(batch)})
                self.result.upserted += len(batch)
                continue

            if self.image_resolver is not None:
                self.result.logos_uploaded += self.image_resolver.resolve(batch)
            self.result.upserted += self.store.upsert_postings_batch(self.settings.table, batch)
            logger.info(
                "Flushed batch",
                extra={'table': self.settings.table, 'rows': len(batch), 'total_upserted': self.result.upserted},
            )

    def finish(self, raw_listing_count: int) -> ReconcileResult:
        """
        Complete the run.

        Args:
            raw_listing_count: Listings scraped across all sources, before
                de-duplication and normalization

        Raises:
            SafetyThresholdError: If open postings fall below the minimum
            DatabaseError: If any write fails
        """
        if not self.deferred:
            return self.result

        threshold = self.settings.minimum_listings_threshold
        if raw_listing_count < threshold:
            logger.error(
                "Safety threshold violated, aborting run",
                extra={'table': self.settings.table, 'listing_count': raw_listing_count, 'threshold': threshold},
            )
            self._pending.clear()
            raise SafetyThresholdError(raw_listing_count, threshold)

        self._write_postings()
        self._pending.clear()

        if self.settings.delete_stale:
            if self.dry_run:
                logger.info("Dry run: would delete stale postings", extra={'table': self.settings.table, 'run_id': self.run_id})
            else:
                self.result.stale_deleted = self.store.delete_stale_postings(self.settings.table, self.run_id)
                logger.info(
                    "Deleted stale postings",
                    extra={'table': self.settings.table, 'run_id': self.run_id, 'deleted': self.result.stale_deleted},
                )

        return self.result
