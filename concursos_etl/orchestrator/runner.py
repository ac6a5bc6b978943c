"""
Content-Type Run Orchestration

Drives every enabled source of one content type through its page loop and
hands the normalized rows to the Reconciler.

Per source:
    page = 1 .. max_pages (sequential, throttled by request_delay_seconds)
    fetch -> EXHAUSTED stops this source, ABORTED stops the whole run
    parse -> a parse failure skips the page
    keep listings whose link is new to this run; stop early after
             `consecutive_empty_threshold` pages without new listings
    normalize and flush every `batch_size` rows, then flush the remainder

Sources may run concurrently (`source_workers`); they share one SeenLinks.
"""

import logging
import threading
import time
import uuid
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from ..normalizer.heuristics import HeuristicSettings
from ..normalizer.normalize import NormalizationError, normalize_article, normalize_posting
from ..reconciler.reconcile import ReconcileResult, Reconciler
from ..source_extractor.adapters import build_adapter
from ..source_extractor.base import ContentType, Listing, SourceAdapter
from ..source_extractor.fetcher import FetchStatus, Fetcher
from ..source_extractor.source_config import PipelineSettings, SourcesConfig
from .seen_links import SeenLinks

logger = logging.getLogger(__name__)


class RunCancelledError(Exception):
    """Raised when a fetch was aborted by the caller; the run stops."""
    pass


@dataclass
class SourceStats:
    name: str
    pages_fetched: int = 0
    pages_failed: int = 0
    listings_scraped: int = 0
    new_listings: int = 0
    duplicates: int = 0
    invalid: int = 0
    exhausted: bool = False


@dataclass
class RunStats:
    content_type: ContentType
    run_id: str
    sources: list[SourceStats] = field(default_factory=list)
    result: ReconcileResult = field(default_factory=ReconcileResult)

    @property
    def raw_listing_count(self) -> int:
        return sum(source.listings_scraped for source in self.sources)

    @property
    def message(self) -> str:
        return self.result.message


class SourceLoop:
    """Page loop for a single source."""

    def __init__(
        self,
        name: str,
        adapter: SourceAdapter,
        fetcher: Fetcher,
        settings: PipelineSettings,
        seen: SeenLinks,
        normalize: Callable[[Listing], dict[str, Any]],
        flush: Callable[[list[dict[str, Any]]], None],
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self.name = name
        self.adapter = adapter
        self.fetcher = fetcher
        self.settings = settings
        self.seen = seen
        self.normalize = normalize
        self.flush = flush
        self.sleep = sleep
        self.stats = SourceStats(name=name)

    @property
    def max_pages(self) -> int:
        if self.adapter.max_pages is None:
            return self.settings.max_pages
        return min(self.adapter.max_pages, self.settings.max_pages)

    def _collect(self, listings: list[Listing], batch: list[dict[str, Any]]) -> int:
        new_count = 0
        for listing in listings:
            if not self.seen.add(listing.link):
                self.stats.duplicates += 1
                continue
            new_count += 1
            try:
                batch.append(self.normalize(listing))
            except NormalizationError as e:
                self.stats.invalid += 1
                logger.warning("Skipping invalid listing", extra={'source': self.name, 'link': listing.link, 'error': str(e)})
        return new_count

    def run(self) -> SourceStats:
        """
        Scrape this source to completion.

        Raises:
            RunCancelledError: If a fetch was aborted by the caller
        """
        logger.info("Starting source", extra={'source': self.name, 'max_pages': self.max_pages})

        batch: list[dict[str, Any]] = []
        empty_pages = 0

        for page in range(1, self.max_pages + 1):
            if page > 1 and self.settings.request_delay_seconds > 0:
                self.sleep(self.settings.request_delay_seconds)

            result = self.fetcher.fetch_page(self.adapter.page_url(page))
            if result.status is FetchStatus.ABORTED:
                raise RunCancelledError(f"Run cancelled while fetching {result.url}") from result.error
            if result.status is FetchStatus.EXHAUSTED:
                self.stats.exhausted = True
                logger.error(
                    "Fetch exhausted, aborting source",
                    extra={'source': self.name, 'page': page, 'error': str(result.error)},
                )
                break
            self.stats.pages_fetched += 1

            try:
                listings = self.adapter.parse_page(result.body, page)
            except Exception as e:
                self.stats.pages_failed += 1
                logger.warning(
                    "Failed to parse page, skipping",
                    extra={'source': self.name, 'page': page, 'error': str(e), 'error_type': type(e).__name__},
                )
                continue

            self.stats.listings_scraped += len(listings)
            new_count = self._collect(listings, batch)
            self.stats.new_listings += new_count

            if new_count == 0:
                empty_pages += 1
                if empty_pages >= self.settings.consecutive_empty_threshold:
                    logger.info("Stopping source after consecutive empty pages", extra={'source': self.name, 'page': page})
                    break
            else:
                empty_pages = 0

            if len(batch) >= self.settings.batch_size:
                self.flush(batch)
                batch = []

        if batch:
            self.flush(batch)

        logger.info(
            "Finished source",
            extra={
                'source': self.name,
                'pages_fetched': self.stats.pages_fetched,
                'pages_failed': self.stats.pages_failed,
                'listings_scraped': self.stats.listings_scraped,
                'new_listings': self.stats.new_listings,
                'duplicates': self.stats.duplicates,
                'invalid': self.stats.invalid,
                'exhausted': self.stats.exhausted,
            },
        )
        return self.stats


def build_normalizer(
    content_type: ContentType,
    run_id: str,
    heuristics: HeuristicSettings,
    today: Optional[date] = None,
) -> Callable[[Listing], dict[str, Any]]:
    if content_type is ContentType.OPEN_POSTINGS:
        return lambda listing: normalize_posting(listing, run_id, heuristics, today)
    return lambda listing: normalize_article(listing, today)


def run_content_type(
    content_type: ContentType,
    config: SourcesConfig,
    reconciler: Reconciler,
    fetcher: Fetcher,
    adapters: Optional[dict[str, SourceAdapter]] = None,
    seen: Optional[SeenLinks] = None,
    sleep: Callable[[float], Any] = time.sleep,
    today: Optional[date] = None,
) -> RunStats:
    """
    Run every enabled source of a content type, then reconcile.

    Args:
        content_type: Which pipeline to run
        config: Loaded sources configuration
        reconciler: Sink for normalized rows, bound to the run id
        fetcher: Shared HTTP fetcher
        adapters: Adapters by provider name (default: built from config)
        seen: Links to treat as already collected (default: empty)
        sleep: Throttle function between page requests
        today: Reference date for date parsing

    Returns:
        RunStats with per-source counts and the reconciliation result

    Raises:
        RunCancelledError: If a fetch was aborted by the caller
        SafetyThresholdError: If open postings fell below the minimum
        DatabaseError: If a write failed
    """
    settings = config.pipeline[content_type]
    if adapters is None:
        adapters = {
            name: build_adapter(name, provider)
            for name, provider in config.enabled_providers(content_type).items()
        }
    seen = seen if seen is not None else SeenLinks()
    stats = RunStats(content_type=content_type, run_id=reconciler.run_id)
    start_time = datetime.now(timezone.utc)

    logger.info(
        "Starting run",
        extra={
            'content_type': content_type.value,
            'run_id': reconciler.run_id,
            'sources': list(adapters),
            'known_links': len(seen),
        },
    )

    normalize = build_normalizer(content_type, reconciler.run_id, config.heuristics, today)
    flush_lock = threading.Lock()

    def flush(rows: list[dict[str, Any]]) -> None:
        with flush_lock:
            reconciler.flush(rows)

    loops = [
        SourceLoop(name, adapter, fetcher, settings, seen, normalize, flush, sleep)
        for name, adapter in adapters.items()
    ]

    if settings.source_workers > 1 and len(loops) > 1:
        with ThreadPoolExecutor(max_workers=settings.source_workers) as executor:
            futures = [executor.submit(loop.run) for loop in loops]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    # Stop the remaining sources at their next fetch
                    fetcher.cancel_event.set()
                    raise error
        stats.sources = [loop.stats for loop in loops]
    else:
        stats.sources = [loop.run() for loop in loops]

    stats.result = reconciler.finish(stats.raw_listing_count)

    logger.info(
        "Run completed",
        extra={
            'content_type': content_type.value,
            'run_id': reconciler.run_id,
            'duration_seconds': (datetime.now(timezone.utc) - start_time).total_seconds(),
            'raw_listings': stats.raw_listing_count,
            'upserted': stats.result.upserted,
            'logos_uploaded': stats.result.logos_uploaded,
            'stale_deleted': stats.result.stale_deleted,
        },
    )
    return stats


def new_run_id() -> str:
    return str(uuid.uuid4())
