"""
Batch Selector: decides which URLs are due this tick.

Stateless apart from its configuration; the scheduler passes in the ids
it already has in flight.
"""

from datetime import datetime
from typing import Collection, List

from shortlink_app.config import StatusCheckerSettings
from shortlink_app.status_checker.models import DueBatches, DueURL, StatusSnapshot
from shortlink_app.status_checker.repository import UrlStatusRepository


class BatchSelector:

    def __init__(self, repository: UrlStatusRepository, settings: StatusCheckerSettings):
        self.repository = repository
        self.settings = settings

    def select_destination_batch(self, now: datetime, exclude: Collection[int] = ()) -> List[DueURL]:
        return self.repository.list_due_for_check(
            alive_cutoff=now - self.settings.alive_recheck_interval,
            gone_cutoff=now - self.settings.gone_recheck_interval,
            limit=self.settings.batch_size,
            exclude=exclude,
        )

    def select_archive_batch(self, now: datetime, exclude: Collection[int] = ()) -> List[DueURL]:
        if not self.settings.archive_lookup_enabled:
            return []
        return self.repository.list_due_for_archive(
            archive_cutoff=now - self.settings.archive_recheck_interval,
            limit=self.settings.batch_size,
            exclude=exclude,
        )

    def select(self, now: datetime, in_flight: Collection[int] = ()) -> DueBatches:
        """
        Compute both batches for one tick.

        URLs picked for a destination check are left out of the archive
        batch; the scheduler looks them up right after their probe if
        they turn out gone and archive-due.
        """
        destination = self.select_destination_batch(now, exclude=in_flight)
        taken = set(in_flight) | {item.url_id for item in destination}
        archive = self.select_archive_batch(now, exclude=taken)
        return DueBatches(destination=destination, archive=archive)

    def is_archive_due(self, snapshot: StatusSnapshot, now: datetime) -> bool:
        if not self.settings.archive_lookup_enabled or not snapshot.is_gone:
            return False
        if snapshot.archive_checked_at is None:
            return True
        return now - snapshot.archive_checked_at >= self.settings.archive_recheck_interval
