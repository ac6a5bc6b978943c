"""
Unit Tests for the Orchestrator

The page loop runs against MockAdapter and a fake fetcher that serves canned
FetchResults, so no HTTP requests are made.

Test Organization:
- TestSeenLinks: run-scoped de-duplication set
- TestSourceLoop: page loop of a single source
- TestRunContentType: multi-source runs, cancellation, concurrency
- TestRunPipeline: production wiring with patched collaborators
- TestMain: CLI exit codes
"""

import threading
from unittest.mock import Mock, patch

import pytest

from concursos_etl.normalizer.normalize import NormalizationError
from concursos_etl.orchestrator.main import main, parse_args, run_pipeline
from concursos_etl.orchestrator.runner import (
    RunCancelledError,
    SourceLoop,
    new_run_id,
    run_content_type,
)
from concursos_etl.orchestrator.seen_links import SeenLinks
from concursos_etl.reconciler.db_operations import DatabaseError
from concursos_etl.reconciler.reconcile import ReconcileResult, Reconciler, SafetyThresholdError
from concursos_etl.source_extractor.adapters.mock_adapter import MockAdapter
from concursos_etl.source_extractor.base import ContentType
from concursos_etl.source_extractor.fetcher import FetchAbortedError, FetchExhaustedError, FetchResult, FetchStatus
from concursos_etl.source_extractor.source_config import SourcesConfig

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class FakeFetcher:
    """Serves an OK page for every URL except those given explicit outcomes."""

    def __init__(self, outcomes: dict[str, FetchStatus] | None = None):
        self.outcomes = outcomes or {}
        self.requested: list[str] = []
        self.cancel_event = threading.Event()
        self._lock = threading.Lock()

    def fetch_page(self, url: str) -> FetchResult:
        with self._lock:
            self.requested.append(url)
        if self.cancel_event.is_set():
            return FetchResult(url=url, status=FetchStatus.ABORTED, error=FetchAbortedError(url))

        status = self.outcomes.get(url, FetchStatus.OK)
        if status is FetchStatus.ABORTED:
            return FetchResult(url=url, status=status, error=FetchAbortedError(url))
        if status is FetchStatus.EXHAUSTED:
            return FetchResult(url=url, status=status, error=FetchExhaustedError(url, 3, None))
        return FetchResult(url=url, status=status, body="<html></html>")

    def fetch_bytes(self, url: str) -> bytes:
        return PNG_BYTES


def recording_reconciler(run_id: str = "run-1") -> Mock:
    reconciler = Mock(run_id=run_id)
    reconciler.finish.return_value = ReconcileResult()
    return reconciler


def flushed_sizes(reconciler: Mock) -> list[int]:
    return [len(call.args[0]) for call in reconciler.flush.call_args_list]


def flushed_links(reconciler: Mock) -> list[str]:
    return [row['link'] for call in reconciler.flush.call_args_list for row in call.args[0]]


@pytest.fixture
def postings_config(postings_settings) -> SourcesConfig:
    return SourcesConfig(pipeline={ContentType.OPEN_POSTINGS: postings_settings}, providers={})


@pytest.fixture
def news_config(news_settings) -> SourcesConfig:
    return SourcesConfig(pipeline={ContentType.NEWS: news_settings}, providers={})


class TestSeenLinks:
    """Tests for SeenLinks"""

    def test_add_reports_new_links(self):
        seen = SeenLinks()

        assert seen.add("https://a") is True
        assert seen.add("https://a") is False
        assert "https://a" in seen
        assert len(seen) == 1

    def test_initial_links(self):
        seen = SeenLinks(["https://a", "https://b"])

        assert seen.add("https://a") is False
        assert len(seen) == 2

    def test_concurrent_adds_claim_each_link_once(self):
        seen = SeenLinks()
        links = [f"https://site/{i}" for i in range(200)]
        claimed: list[str] = []
        claimed_lock = threading.Lock()

        def worker():
            for link in links:
                if seen.add(link):
                    with claimed_lock:
                        claimed.append(link)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(claimed) == sorted(links)


class TestSourceLoop:
    """Tests for the single-source page loop"""

    def make_loop(self, adapter, settings, fetcher=None, seen=None, normalize=None, sleep=None):
        self.flushed: list[list[dict]] = []
        return SourceLoop(
            name="mock",
            adapter=adapter,
            fetcher=fetcher or FakeFetcher(),
            settings=settings,
            seen=seen if seen is not None else SeenLinks(),
            normalize=normalize or (lambda listing: {'link': listing.link}),
            flush=lambda rows: self.flushed.append(rows),
            sleep=sleep or (lambda seconds: None),
        )

    def test_collects_all_pages_and_flushes_in_batches(self, postings_settings):
        adapter = MockAdapter(num_listings=25, listings_per_page=10)

        stats = self.make_loop(adapter, postings_settings).run()

        assert stats.new_listings == 25
        assert stats.listings_scraped == 25
        assert [len(batch) for batch in self.flushed] == [10, 10, 5]

    def test_stops_after_consecutive_empty_pages(self, postings_settings):
        fetcher = FakeFetcher()
        adapter = MockAdapter(num_listings=10, listings_per_page=10)

        stats = self.make_loop(adapter, postings_settings, fetcher=fetcher).run()

        # Page 1 has listings, pages 2 and 3 are empty
        assert len(fetcher.requested) == 3
        assert stats.pages_fetched == 3

    def test_respects_max_pages(self, postings_settings):
        fetcher = FakeFetcher()
        adapter = MockAdapter(num_listings=100, listings_per_page=10)

        self.make_loop(adapter, postings_settings, fetcher=fetcher).run()

        assert len(fetcher.requested) == postings_settings.max_pages

    def test_adapter_page_limit(self, postings_settings):
        fetcher = FakeFetcher()
        adapter = MockAdapter(num_listings=100, listings_per_page=10)
        adapter.max_pages = 1

        stats = self.make_loop(adapter, postings_settings, fetcher=fetcher).run()

        assert fetcher.requested == [adapter.page_url(1)]
        assert stats.new_listings == 10

    def test_parse_failure_skips_page(self, postings_settings):
        adapter = MockAdapter(num_listings=30, listings_per_page=10, fail_on_page=2)

        stats = self.make_loop(adapter, postings_settings).run()

        assert stats.pages_failed == 1
        assert stats.new_listings == 20

    def test_exhausted_fetch_stops_source(self, postings_settings):
        adapter = MockAdapter(num_listings=30, listings_per_page=10)
        fetcher = FakeFetcher({adapter.page_url(2): FetchStatus.EXHAUSTED})

        stats = self.make_loop(adapter, postings_settings, fetcher=fetcher).run()

        assert stats.exhausted is True
        assert stats.pages_fetched == 1
        # Rows collected before the failure are still flushed
        assert sum(len(batch) for batch in self.flushed) == 10

    def test_aborted_fetch_raises(self, postings_settings):
        adapter = MockAdapter(num_listings=30, listings_per_page=10)
        fetcher = FakeFetcher({adapter.page_url(1): FetchStatus.ABORTED})

        with pytest.raises(RunCancelledError):
            self.make_loop(adapter, postings_settings, fetcher=fetcher).run()

    def test_known_links_are_duplicates(self, postings_settings):
        adapter = MockAdapter(num_listings=5, listings_per_page=10)
        seen = SeenLinks([adapter.parse_page("<html></html>", 1)[0].link])

        stats = self.make_loop(adapter, postings_settings, seen=seen).run()

        assert stats.duplicates == 1
        assert stats.new_listings == 4

    def test_invalid_listings_skipped(self, postings_settings):
        adapter = MockAdapter(num_listings=5, listings_per_page=10)

        def normalize(listing):
            if listing.link.endswith("/3"):
                raise NormalizationError("title is required")
            return {'link': listing.link}

        stats = self.make_loop(adapter, postings_settings, normalize=normalize).run()

        assert stats.invalid == 1
        assert sum(len(batch) for batch in self.flushed) == 4

    def test_throttles_between_pages(self, postings_settings):
        postings_settings.request_delay_seconds = 0.5
        sleeps: list[float] = []
        adapter = MockAdapter(num_listings=10, listings_per_page=10)

        self.make_loop(adapter, postings_settings, sleep=sleeps.append).run()

        # No delay before the first page
        assert sleeps == [0.5, 0.5]


class TestRunContentType:
    """Tests for run_content_type()"""

    def test_dedup_across_sources(self, postings_config, today):
        reconciler = recording_reconciler()
        adapters = {
            "first": MockAdapter(num_listings=20, listings_per_page=10, source_name="First"),
            "second": MockAdapter(num_listings=20, listings_per_page=10, source_name="Second"),
        }

        stats = run_content_type(
            ContentType.OPEN_POSTINGS, postings_config, reconciler, FakeFetcher(), adapters=adapters, today=today,
        )

        links = flushed_links(reconciler)
        assert len(links) == 20
        assert len(set(links)) == 20
        assert [source.new_listings for source in stats.sources] == [20, 0]
        assert stats.sources[1].duplicates == 20
        # The threshold sees every scraped listing, duplicates included
        reconciler.finish.assert_called_once_with(40)

    def test_rows_are_normalized_for_content_type(self, news_config, today):
        reconciler = recording_reconciler()
        adapters = {"news": MockAdapter(num_listings=3, listings_per_page=10, articles=True)}

        run_content_type(ContentType.NEWS, news_config, reconciler, FakeFetcher(), adapters=adapters, today=today)

        row = reconciler.flush.call_args.args[0][0]
        assert row['publication_date'] == "2025-03-10"
        assert row['mentioned_states'] == ["SP"]
        assert 'last_run_id' not in row

    def test_postings_rows_carry_run_id(self, postings_config, today):
        reconciler = recording_reconciler(run_id="run-42")
        adapters = {"mock": MockAdapter(num_listings=3, listings_per_page=10)}

        run_content_type(ContentType.OPEN_POSTINGS, postings_config, reconciler, FakeFetcher(), adapters=adapters, today=today)

        rows = reconciler.flush.call_args.args[0]
        assert {row['last_run_id'] for row in rows} == {"run-42"}

    def test_exhausted_source_does_not_stop_others(self, postings_config, today):
        reconciler = recording_reconciler()
        broken = MockAdapter(num_listings=30, listings_per_page=10, link_prefix="broken")
        healthy = MockAdapter(num_listings=30, listings_per_page=10, link_prefix="healthy")
        fetcher = FakeFetcher({broken.page_url(1): FetchStatus.EXHAUSTED})

        stats = run_content_type(
            ContentType.OPEN_POSTINGS, postings_config, reconciler, fetcher,
            adapters={"broken": broken, "healthy": healthy}, today=today,
        )

        assert stats.sources[0].exhausted is True
        assert stats.sources[1].new_listings == 30
        reconciler.finish.assert_called_once_with(30)

    def test_cancelled_run_does_not_reconcile(self, postings_config, today):
        reconciler = recording_reconciler()
        adapter = MockAdapter(num_listings=30, listings_per_page=10)
        fetcher = FakeFetcher({adapter.page_url(2): FetchStatus.ABORTED})

        with pytest.raises(RunCancelledError):
            run_content_type(
                ContentType.OPEN_POSTINGS, postings_config, reconciler, fetcher, adapters={"mock": adapter}, today=today,
            )

        reconciler.finish.assert_not_called()

    def test_concurrent_sources(self, postings_config, today):
        postings_config.pipeline[ContentType.OPEN_POSTINGS].source_workers = 3
        reconciler = recording_reconciler()
        adapters = {
            f"source{i}": MockAdapter(num_listings=15, listings_per_page=10, link_prefix=f"p{i}")
            for i in range(3)
        }

        stats = run_content_type(
            ContentType.OPEN_POSTINGS, postings_config, reconciler, FakeFetcher(), adapters=adapters, today=today,
        )

        assert sorted(source.name for source in stats.sources) == ["source0", "source1", "source2"]
        assert len(set(flushed_links(reconciler))) == 45
        assert stats.raw_listing_count == 45

    def test_concurrent_overlapping_sources_claim_each_link_once(self, postings_config, today):
        postings_config.pipeline[ContentType.OPEN_POSTINGS].source_workers = 2
        reconciler = recording_reconciler()
        adapters = {
            "a": MockAdapter(num_listings=20, listings_per_page=10, source_name="A"),
            "b": MockAdapter(num_listings=20, listings_per_page=10, source_name="B"),
        }

        stats = run_content_type(
            ContentType.OPEN_POSTINGS, postings_config, reconciler, FakeFetcher(), adapters=adapters, today=today,
        )

        links = flushed_links(reconciler)
        assert len(links) == len(set(links)) == 20
        assert sum(source.new_listings for source in stats.sources) == 20

    def test_concurrent_cancellation_stops_other_sources(self, postings_config, today):
        postings_config.pipeline[ContentType.OPEN_POSTINGS].source_workers = 2
        reconciler = recording_reconciler()
        failing = MockAdapter(num_listings=30, listings_per_page=10, link_prefix="failing")
        other = MockAdapter(num_listings=30, listings_per_page=10, link_prefix="other")
        fetcher = FakeFetcher({failing.page_url(1): FetchStatus.ABORTED})

        with pytest.raises(RunCancelledError):
            run_content_type(
                ContentType.OPEN_POSTINGS, postings_config, reconciler, fetcher,
                adapters={"failing": failing, "other": other}, today=today,
            )

        assert fetcher.cancel_event.is_set()
        reconciler.finish.assert_not_called()

    def test_end_to_end_with_reconciler(self, postings_config, fake_db, today):
        settings = postings_config.pipeline[ContentType.OPEN_POSTINGS]
        reconciler = Reconciler(fake_db, settings, ContentType.OPEN_POSTINGS, "run-1")
        adapters = {"mock": MockAdapter(num_listings=25, listings_per_page=10)}

        stats = run_content_type(
            ContentType.OPEN_POSTINGS, postings_config, reconciler, FakeFetcher(), adapters=adapters, today=today,
        )

        assert stats.message == "25, 0, 0"
        assert len(fake_db.tables['job_openings']) == 25

    def test_new_run_id_is_unique(self):
        assert new_run_id() != new_run_id()


SOURCES_YAML = """
pipeline:
  open_postings:
    table: job_openings
    max_pages: 3
    consecutive_empty_threshold: 1
    batch_size: 10
    request_delay_seconds: 0
    minimum_listings_threshold: 10
    delete_stale: true
  news:
    table: news_articles
    max_pages: 3
    consecutive_empty_threshold: 1
    request_delay_seconds: 0
    preload_existing_links: true
providers:
  open_postings:
    mock:
      adapter: mock
      params: {num_listings: 15, listings_per_page: 10}
  news:
    mock:
      adapter: mock
      params: {num_listings: 15, listings_per_page: 10, articles: true}
"""


class TestRunPipeline:
    """Tests for run_pipeline() wiring"""

    @pytest.fixture
    def config_path(self, tmp_path) -> str:
        path = tmp_path / "sources.yml"
        path.write_text(SOURCES_YAML, encoding="utf-8")
        return str(path)

    def test_dry_run_touches_no_store(self, config_path):
        with patch("concursos_etl.orchestrator.main.Fetcher", return_value=FakeFetcher()), \
             patch("concursos_etl.orchestrator.main.ListingDB") as mock_db:
            stats = run_pipeline(ContentType.NEWS, config_path=config_path, dry_run=True)

        assert stats.message == "15, 0, 0"
        mock_db.assert_not_called()

    def test_open_postings_with_logos(self, config_path, fake_db):
        storage = Mock()
        storage.upload.side_effect = lambda path, data, content_type: path

        with patch("concursos_etl.orchestrator.main.Fetcher", return_value=FakeFetcher()), \
             patch("concursos_etl.orchestrator.main.ListingDB", return_value=fake_db), \
             patch("concursos_etl.orchestrator.main.SupabaseBlobStorage", return_value=storage):
            stats = run_pipeline(ContentType.OPEN_POSTINGS, config_path=config_path)

        assert stats.message == "15, 15, 0"
        rows = fake_db.tables['job_openings'].values()
        assert all(row['logo_path'].startswith("logos/") for row in rows)
        assert {row['last_run_id'] for row in rows} == {stats.run_id}

    def test_preloaded_links_are_skipped(self, config_path, fake_db):
        existing = "https://mock.concursos.local/mock/0"
        fake_db.tables['news_articles'] = {existing: {'link': existing, 'title': "antigo"}}

        with patch("concursos_etl.orchestrator.main.Fetcher", return_value=FakeFetcher()), \
             patch("concursos_etl.orchestrator.main.ListingDB", return_value=fake_db):
            stats = run_pipeline(ContentType.NEWS, config_path=config_path)

        assert stats.message == "14, 0, 0"
        assert fake_db.tables['news_articles'][existing]['title'] == "antigo"

    def test_threshold_violation_propagates(self, config_path, fake_db):
        config = SOURCES_YAML.replace("minimum_listings_threshold: 10", "minimum_listings_threshold: 500")
        with open(config_path, "w", encoding="utf-8") as handle:
            handle.write(config)

        with patch("concursos_etl.orchestrator.main.Fetcher", return_value=FakeFetcher()), \
             patch("concursos_etl.orchestrator.main.ListingDB", return_value=fake_db), \
             patch("concursos_etl.orchestrator.main.SupabaseBlobStorage", return_value=Mock()):
            with pytest.raises(SafetyThresholdError):
                run_pipeline(ContentType.OPEN_POSTINGS, config_path=config_path)

        assert fake_db.calls == []

    def test_missing_pipeline_settings(self, tmp_path):
        path = tmp_path / "sources.yml"
        path.write_text(
            "pipeline:\n  news:\n    table: news_articles\nproviders:\n  news: {}\n",
            encoding="utf-8",
        )

        with pytest.raises(ValueError, match="open_postings"):
            run_pipeline(ContentType.OPEN_POSTINGS, config_path=str(path), dry_run=True)


class TestMain:
    """Tests for the CLI entry point"""

    def test_parse_args(self):
        args = parse_args(["--content-type", "news", "--dry-run"])

        assert args.content_type == "news"
        assert args.dry_run is True
        assert args.config is None

    def test_invalid_content_type(self):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--content-type", "jobs"])
        assert exc_info.value.code == 2

    def test_success(self, capsys):
        stats = Mock(run_id="run-1", message="120, 7, 3")
        with patch("concursos_etl.orchestrator.main.run_pipeline", return_value=stats) as mock_run:
            exit_code = main(["--content-type", "open_postings"])

        assert exit_code == 0
        assert "120, 7, 3" in capsys.readouterr().out
        mock_run.assert_called_once_with(ContentType.OPEN_POSTINGS, config_path=None, dry_run=False)

    @pytest.mark.parametrize("error", [
        SafetyThresholdError(3, 500),
        DatabaseError("connection refused"),
        RunCancelledError("cancelled"),
        ValueError("DATABASE_URL must be set"),
    ])
    def test_fatal_errors(self, error):
        with patch("concursos_etl.orchestrator.main.run_pipeline", side_effect=error):
            assert main(["--content-type", "news"]) == 2

    def test_keyboard_interrupt(self):
        with patch("concursos_etl.orchestrator.main.run_pipeline", side_effect=KeyboardInterrupt):
            assert main(["--content-type", "news"]) == 130
