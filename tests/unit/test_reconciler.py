"""
Unit Tests for the Reconciler

Uses the in-memory FakeListingDB from conftest, so no database is needed.

Test Organization:
- TestSafetyThreshold: aborted runs write and delete nothing
- TestPostingsReconciliation: upsert, stale deletion, idempotence
- TestArticlesReconciliation: per-flush upserts, nothing deleted
- TestDryRun: nothing reaches the store
"""

from unittest.mock import Mock

import pytest

from concursos_etl.images.resolver import ImageResolver
from concursos_etl.normalizer.normalize import normalize_article, normalize_posting
from concursos_etl.reconciler.reconcile import ReconcileResult, Reconciler, SafetyThresholdError
from concursos_etl.source_extractor.adapters.mock_adapter import MockAdapter
from concursos_etl.source_extractor.base import ContentType

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def posting_rows(run_id: str, count: int, today, adapter: MockAdapter | None = None) -> list[dict]:
    adapter = adapter or MockAdapter(num_listings=count, listings_per_page=count)
    listings = adapter.parse_page("<html></html>", 1)
    return [normalize_posting(listing, run_id, today=today) for listing in listings]


def article_rows(count: int, today) -> list[dict]:
    adapter = MockAdapter(num_listings=count, listings_per_page=count, articles=True)
    return [normalize_article(listing, today) for listing in adapter.parse_page("<html></html>", 1)]


def run_postings(store, settings, run_id, rows, raw_count=None, image_resolver=None) -> ReconcileResult:
    reconciler = Reconciler(store, settings, ContentType.OPEN_POSTINGS, run_id, image_resolver=image_resolver)
    for start in range(0, len(rows), settings.batch_size):
        reconciler.flush(rows[start:start + settings.batch_size])
    return reconciler.finish(len(rows) if raw_count is None else raw_count)


class TestReconcileResult:
    def test_message(self):
        assert ReconcileResult(upserted=120, logos_uploaded=7, stale_deleted=3).message == "120, 7, 3"

    def test_defaults(self):
        assert ReconcileResult().message == "0, 0, 0"


class TestSafetyThreshold:
    """Tests for the minimum-listings guard"""

    def test_below_threshold_writes_nothing(self, fake_db, postings_settings, today):
        fake_db.tables['job_openings'] = {"https://old.example/1": {'link': "https://old.example/1", 'last_run_id': "old"}}
        rows = posting_rows("run-1", 5, today)

        with pytest.raises(SafetyThresholdError) as exc_info:
            run_postings(fake_db, postings_settings, "run-1", rows)

        assert exc_info.value.listing_count == 5
        assert exc_info.value.threshold == 20
        assert fake_db.calls == []
        assert list(fake_db.tables['job_openings']) == ["https://old.example/1"]

    def test_threshold_uses_raw_count(self, fake_db, postings_settings, today):
        """Duplicates removed before reconciliation still count toward the threshold."""
        rows = posting_rows("run-1", 15, today)

        result = run_postings(fake_db, postings_settings, "run-1", rows, raw_count=25)

        assert result.upserted == 15

    def test_exactly_at_threshold_passes(self, fake_db, postings_settings, today):
        rows = posting_rows("run-1", 20, today)

        result = run_postings(fake_db, postings_settings, "run-1", rows)

        assert result.upserted == 20

    def test_resolver_not_called_when_aborted(self, fake_db, postings_settings, today):
        resolver = Mock()
        rows = posting_rows("run-1", 3, today)

        with pytest.raises(SafetyThresholdError):
            run_postings(fake_db, postings_settings, "run-1", rows, image_resolver=resolver)

        resolver.resolve.assert_not_called()

    def test_articles_have_no_threshold(self, fake_db, news_settings, today):
        reconciler = Reconciler(fake_db, news_settings, ContentType.NEWS, "run-1")
        reconciler.flush(article_rows(1, today))

        assert reconciler.finish(1).upserted == 1


class TestPostingsReconciliation:
    """Tests for the open postings write path"""

    def test_rows_held_until_finish(self, fake_db, postings_settings, today):
        reconciler = Reconciler(fake_db, postings_settings, ContentType.OPEN_POSTINGS, "run-1")

        reconciler.flush(posting_rows("run-1", 25, today))

        assert fake_db.calls == []
        reconciler.finish(25)
        assert [call[2] for call in fake_db.calls if call[0] == "upsert_postings"] == [10, 10, 5]

    def test_stale_rows_deleted(self, fake_db, postings_settings, today):
        run_postings(fake_db, postings_settings, "run-1", posting_rows("run-1", 30, today))

        result = run_postings(fake_db, postings_settings, "run-2", posting_rows("run-2", 25, today))

        table = fake_db.tables['job_openings']
        assert result.upserted == 25
        assert result.stale_deleted == 5
        assert len(table) == 25
        assert {row['last_run_id'] for row in table.values()} == {"run-2"}

    def test_same_link_keeps_one_row_with_latest_values(self, fake_db, postings_settings, today):
        first = posting_rows("run-1", 20, today)
        run_postings(fake_db, postings_settings, "run-1", first)

        second = posting_rows("run-2", 20, today)
        second[0]['title'] = "Título atualizado"
        run_postings(fake_db, postings_settings, "run-2", second)

        table = fake_db.tables['job_openings']
        assert len(table) == 20
        assert table[second[0]['link']]['title'] == "Título atualizado"
        assert table[second[0]['link']]['last_run_id'] == "run-2"

    def test_stale_deletion_disabled(self, fake_db, postings_settings, today):
        postings_settings.delete_stale = False
        run_postings(fake_db, postings_settings, "run-1", posting_rows("run-1", 30, today))

        result = run_postings(fake_db, postings_settings, "run-2", posting_rows("run-2", 20, today))

        assert result.stale_deleted == 0
        assert len(fake_db.tables['job_openings']) == 30

    def test_identical_rerun_is_idempotent(self, fake_db, postings_settings, today):
        fetcher = Mock()
        fetcher.fetch_bytes.return_value = PNG_BYTES
        storage = Mock()
        storage.upload.side_effect = lambda path, data, content_type: path

        first = run_postings(
            fake_db, postings_settings, "run-1", posting_rows("run-1", 20, today),
            image_resolver=ImageResolver(fetcher, storage, fake_db),
        )
        snapshot = {link: dict(row) for link, row in fake_db.tables['job_openings'].items()}

        # A fresh resolver has no memo: stored paths must come from the table
        second = run_postings(
            fake_db, postings_settings, "run-2", posting_rows("run-2", 20, today),
            image_resolver=ImageResolver(fetcher, storage, fake_db),
        )

        assert first.logos_uploaded == 20
        assert second.logos_uploaded == 0
        assert second.stale_deleted == 0
        table = fake_db.tables['job_openings']
        assert set(table) == set(snapshot)
        for link, row in table.items():
            assert row['logo_path'] == snapshot[link]['logo_path']
            assert {k: v for k, v in row.items() if k != 'last_run_id'} == \
                {k: v for k, v in snapshot[link].items() if k != 'last_run_id'}

    def test_logo_path_not_cleared_without_resolver(self, fake_db, postings_settings, today):
        rows = posting_rows("run-1", 20, today)
        for row in rows:
            row['logo_path'] = "logos/existing.png"
        run_postings(fake_db, postings_settings, "run-1", rows)

        run_postings(fake_db, postings_settings, "run-2", posting_rows("run-2", 20, today))

        assert {row['logo_path'] for row in fake_db.tables['job_openings'].values()} == {"logos/existing.png"}

    def test_requires_store(self, postings_settings):
        with pytest.raises(ValueError, match="listing store is required"):
            Reconciler(None, postings_settings, ContentType.OPEN_POSTINGS, "run-1")

    def test_write_failure_propagates(self, postings_settings, today):
        store = Mock()
        store.upsert_postings_batch.side_effect = RuntimeError("connection lost")
        reconciler = Reconciler(store, postings_settings, ContentType.OPEN_POSTINGS, "run-1")
        reconciler.flush(posting_rows("run-1", 20, today))

        with pytest.raises(RuntimeError, match="connection lost"):
            reconciler.finish(20)

        store.delete_stale_postings.assert_not_called()


class TestArticlesReconciliation:
    """Tests for the news / predicted postings write path"""

    def test_upserts_on_every_flush(self, fake_db, news_settings, today):
        reconciler = Reconciler(fake_db, news_settings, ContentType.NEWS, "run-1")
        rows = article_rows(15, today)

        reconciler.flush(rows[:10])
        assert fake_db.calls == [("upsert_articles", "news_articles", 10)]

        reconciler.flush(rows[10:])
        result = reconciler.finish(15)

        assert result.upserted == 15
        assert len(fake_db.tables['news_articles']) == 15

    def test_empty_flush_is_noop(self, fake_db, news_settings):
        reconciler = Reconciler(fake_db, news_settings, ContentType.NEWS, "run-1")
        reconciler.flush([])
        assert fake_db.calls == []

    def test_never_deletes(self, fake_db, news_settings, today):
        news_settings.delete_stale = True
        fake_db.tables['news_articles'] = {"https://old.example/n": {'link': "https://old.example/n"}}
        reconciler = Reconciler(fake_db, news_settings, ContentType.NEWS, "run-1")

        reconciler.flush(article_rows(3, today))
        reconciler.finish(3)

        assert "https://old.example/n" in fake_db.tables['news_articles']
        assert all(call[0] != "delete_stale" for call in fake_db.calls)


class TestDryRun:
    """Tests for dry-run mode"""

    def test_postings_dry_run(self, postings_settings, today):
        reconciler = Reconciler(None, postings_settings, ContentType.OPEN_POSTINGS, "run-1", dry_run=True)
        reconciler.flush(posting_rows("run-1", 20, today))

        result = reconciler.finish(20)

        assert result.upserted == 20
        assert result.stale_deleted == 0

    def test_dry_run_still_enforces_threshold(self, postings_settings, today):
        reconciler = Reconciler(None, postings_settings, ContentType.OPEN_POSTINGS, "run-1", dry_run=True)
        reconciler.flush(posting_rows("run-1", 2, today))

        with pytest.raises(SafetyThresholdError):
            reconciler.finish(2)

    def test_articles_dry_run(self, news_settings, today):
        reconciler = Reconciler(None, news_settings, ContentType.NEWS, "run-1", dry_run=True)
        reconciler.flush(article_rows(4, today))

        assert reconciler.finish(4).upserted == 4
