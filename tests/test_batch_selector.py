"""
Tests for BatchSelector: which URLs a tick picks up.
"""
from datetime import datetime, timedelta, timezone

from shortlink_app.status_checker.models import StatusSnapshot
from shortlink_app.status_checker.selector import BatchSelector

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _gone(url_id, archive_checked_at=None):
    return StatusSnapshot(
        url_id=url_id,
        last_checked_at=NOW - timedelta(hours=1),
        last_status_code=404,
        gone_at=NOW - timedelta(days=2),
        archive_checked_at=archive_checked_at,
    )


class TestBatchSelector:

    def test_unchecked_url_is_destination_candidate_only(self, status_repository, make_urls, checker_settings):
        url = make_urls(1)[0]
        selector = BatchSelector(status_repository, checker_settings())

        batches = selector.select(NOW)

        assert [item.url_id for item in batches.destination] == [url.id]
        assert batches.archive == []

    def test_archive_batch_empty_when_disabled(self, status_repository, make_urls, checker_settings):
        url = make_urls(1)[0]
        status_repository.upsert_status(_gone(url.id))
        selector = BatchSelector(status_repository, checker_settings(archive_lookup_enabled=False))

        assert selector.select_archive_batch(NOW) == []
        assert selector.select(NOW).archive == []

    def test_gone_url_due_for_archive(self, status_repository, make_urls, checker_settings):
        url = make_urls(1)[0]
        status_repository.upsert_status(_gone(url.id))
        selector = BatchSelector(status_repository, checker_settings())

        batches = selector.select(NOW)

        # Checked an hour ago, so not due for a destination probe
        assert batches.destination == []
        assert [item.url_id for item in batches.archive] == [url.id]

    def test_batch_size_bounds_selection(self, status_repository, make_urls, checker_settings):
        make_urls(30)
        selector = BatchSelector(status_repository, checker_settings(batch_size=10))

        assert len(selector.select_destination_batch(NOW)) == 10

    def test_in_flight_urls_are_skipped(self, status_repository, make_urls, checker_settings):
        first, second = make_urls(2)
        selector = BatchSelector(status_repository, checker_settings())

        batches = selector.select(NOW, in_flight={first.id})

        assert [item.url_id for item in batches.destination] == [second.id]

    def test_url_in_both_batches_only_probed(self, status_repository, make_urls, checker_settings):
        url = make_urls(1)[0]
        stale_gone = StatusSnapshot(
            url_id=url.id,
            last_checked_at=NOW - timedelta(days=2),
            last_status_code=410,
            gone_at=NOW - timedelta(days=2),
        )
        status_repository.upsert_status(stale_gone)
        selector = BatchSelector(status_repository, checker_settings())

        batches = selector.select(NOW)

        assert [item.url_id for item in batches.destination] == [url.id]
        assert batches.archive == []

    def test_is_archive_due(self, status_repository, checker_settings):
        selector = BatchSelector(status_repository, checker_settings(archive_recheck_interval=timedelta(days=7)))

        assert selector.is_archive_due(_gone(1), NOW)
        assert selector.is_archive_due(_gone(1, archive_checked_at=NOW - timedelta(days=7)), NOW)
        assert not selector.is_archive_due(_gone(1, archive_checked_at=NOW - timedelta(days=1)), NOW)
        assert not selector.is_archive_due(StatusSnapshot(url_id=1, last_status_code=200), NOW)
