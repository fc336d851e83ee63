"""
Checker Scheduler

Background loop that keeps url_status fresh:

- Wakes every poll_interval (first tick right after start)
- Asks the BatchSelector for due URLs
- Probes destinations on a bounded worker pool, then looks up archive
  snapshots for gone URLs on a second bounded pool
- Writes every result back as a single-row upsert
- Waits for the whole tick to finish before sleeping, so ticks never overlap

All blocking work (selection queries, HTTP calls, upserts) runs on the
checker's thread pool; the event loop serving redirects only awaits it.

One bad URL (probe bug, store write error) is logged and counted; it never
stops the tick or the loop. Only stop() ends the loop: no new probe or
lookup starts after it, the ones already running finish or time out.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, List, Optional, Set, Tuple

from shortlink_app.cache.strategies import CacheStrategy, redirect_cache_key
from shortlink_app.config import StatusCheckerSettings
from shortlink_app.status_checker.archive import ArchiveResolver
from shortlink_app.status_checker.models import (
    CheckerState,
    DueURL,
    ProbeClassification,
    ProbeOutcome,
    StatusSnapshot,
    TickReport,
    apply_archive_result,
    apply_probe_outcome,
)
from shortlink_app.status_checker.prober import DestinationProber
from shortlink_app.status_checker.repository import UrlStatusRepository
from shortlink_app.status_checker.selector import BatchSelector

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusChecker:
    """
    Periodic destination status checker.

    Built once at startup (see build_status_checker) and driven with
    start()/stop(). run_once() performs a single tick and is what tests
    and manual triggers call.
    """

    def __init__(
        self,
        repository: UrlStatusRepository,
        settings: StatusCheckerSettings,
        prober: Optional[DestinationProber] = None,
        resolver: Optional[ArchiveResolver] = None,
        cache: Optional[CacheStrategy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.settings = settings
        self.selector = BatchSelector(repository, settings)
        self.prober = prober or DestinationProber(
            timeout=settings.probe_timeout,
            max_redirects=settings.max_redirects,
            user_agent=settings.user_agent,
        )
        self.resolver = resolver or ArchiveResolver(
            endpoint=settings.archive_endpoint,
            timeout=settings.archive_timeout,
            user_agent=settings.user_agent,
        )
        self.cache = cache
        self.clock = clock

        self.state = CheckerState.IDLE
        self.last_report: Optional[TickReport] = None
        self._in_flight: Set[int] = set()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopping(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()

    async def start(self):
        """Start the background loop (no-op when disabled or already running)"""
        if not self.settings.enabled:
            logger.info("Status checker disabled, not starting")
            return
        if self.running:
            return

        self.state = CheckerState.IDLE
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="status-checker")
        logger.info(
            "Status checker started (poll=%s, batch=%s, concurrency=%s, archive=%s)",
            self.settings.poll_interval,
            self.settings.batch_size,
            self.settings.concurrency,
            self.settings.archive_lookup_enabled,
        )

    async def stop(self):
        """Stop issuing work, wait for running probes, then release resources"""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Status checker task cancelled")
            self._task = None

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.prober.close()
        self.resolver.close()
        self.state = CheckerState.STOPPED
        logger.info("Status checker stopped")

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=max(self.settings.concurrency, self.settings.archive_concurrency),
                thread_name_prefix="status-checker",
            )
        return self._executor

    async def _in_pool(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool(), func, *args)

    async def _run(self):
        interval = self.settings.poll_interval.total_seconds()
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception:
                # Selection failed (store unreachable, ...); try again next tick
                logger.exception("Status checker tick failed")
                self.state = CheckerState.IDLE

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def run_once(self, now: Optional[datetime] = None) -> TickReport:
        """Run one full tick and return its counters"""
        now = now or self.clock()
        report = TickReport(started_at=now)

        self.state = CheckerState.SELECTING
        batches = await self._in_pool(self.selector.select, now, frozenset(self._in_flight))
        report.selected = len(batches.destination) + len(batches.archive)
        if not batches.destination and not batches.archive:
            self.state = CheckerState.IDLE
            self.last_report = report
            return report

        archive_queue: List[DueURL] = list(batches.archive)
        claimed = {item.url_id for item in batches.destination}
        claimed.update(item.url_id for item in batches.archive)
        self._in_flight.update(claimed)
        try:
            await self._dispatch(
                batches.destination,
                lambda item: self._check_destination(item, now, report, archive_queue),
                self.settings.concurrency,
                report,
            )
            if self.stopping:
                report.skipped += len(archive_queue)
            elif archive_queue:
                await self._dispatch(
                    archive_queue,
                    lambda item: self._check_archive(item, now, report),
                    self.settings.archive_concurrency,
                    report,
                )
        finally:
            self._in_flight.difference_update(claimed)
            self.state = CheckerState.IDLE

        self.last_report = report
        if report.skipped:
            logger.info("Stop requested, %s URLs left for the next run", report.skipped)
        logger.info(
            "Status check tick: checked=%s alive=%s gone=%s (new=%s) unknown=%s "
            "archive_lookups=%s archive_found=%s failures=%s",
            report.checked,
            report.alive,
            report.gone,
            report.newly_gone,
            report.unknown,
            report.archive_lookups,
            report.archive_found,
            report.failures,
        )
        return report

    async def _dispatch(
        self,
        items: Iterable[DueURL],
        worker: Callable[[DueURL], Awaitable[None]],
        limit: int,
        report: TickReport,
    ):
        """
        Run worker over items with at most `limit` running at once, then wait for all.

        Items still waiting for a slot when stop() is called are skipped;
        their rows stay due.
        """
        semaphore = asyncio.Semaphore(limit)

        async def guarded(item: DueURL):
            async with semaphore:
                if self.stopping:
                    report.skipped += 1
                    return
                await worker(item)

        self.state = CheckerState.DISPATCHING
        tasks = [asyncio.create_task(guarded(item)) for item in items]
        self.state = CheckerState.DRAINING
        await asyncio.gather(*tasks)

    def _probe_and_store(self, item: DueURL, now: datetime) -> Tuple[ProbeOutcome, StatusSnapshot, bool]:
        outcome = self.prober.probe(item.destination_url)
        updated = apply_probe_outcome(item.current_status, outcome, now)
        return outcome, updated, self.repository.upsert_status(updated)

    def _resolve_and_store(self, item: DueURL, now: datetime) -> Tuple[Optional[str], StatusSnapshot, bool]:
        archive_url = self.resolver.resolve(item.destination_url)
        updated = apply_archive_result(item.current_status, archive_url, now)
        return archive_url, updated, self.repository.upsert_status(updated)

    async def _check_destination(
        self,
        item: DueURL,
        now: datetime,
        report: TickReport,
        archive_queue: List[DueURL],
    ):
        try:
            outcome, updated, written = await self._in_pool(self._probe_and_store, item, now)
        except Exception:
            report.failures += 1
            logger.exception("Status check failed for %s", item.short_code)
            return
        if not written:
            return

        previous = item.current_status
        report.checked += 1
        if outcome.classification is ProbeClassification.GONE:
            report.gone += 1
            if not previous.is_gone:
                report.newly_gone += 1
                logger.info(
                    "Destination of %s is gone (HTTP %s): %s",
                    item.short_code,
                    outcome.status_code,
                    item.destination_url,
                )
        elif outcome.classification is ProbeClassification.ALIVE:
            report.alive += 1
        else:
            report.unknown += 1
            logger.debug("Destination of %s unreachable: %s", item.short_code, outcome.error)

        await self._invalidate_if_changed(item.short_code, previous, updated)

        if self.selector.is_archive_due(updated, now):
            archive_queue.append(
                DueURL(
                    url_id=item.url_id,
                    short_code=item.short_code,
                    destination_url=item.destination_url,
                    status=updated,
                )
            )

    async def _check_archive(self, item: DueURL, now: datetime, report: TickReport):
        previous = item.current_status
        if not previous.is_gone:
            return

        try:
            archive_url, updated, written = await self._in_pool(self._resolve_and_store, item, now)
        except Exception:
            report.failures += 1
            logger.exception("Archive lookup failed for %s", item.short_code)
            return
        if not written:
            return

        report.archive_lookups += 1
        if archive_url:
            report.archive_found += 1
            logger.info("Archive snapshot for %s: %s", item.short_code, archive_url)

        await self._invalidate_if_changed(item.short_code, previous, updated)

    async def _invalidate_if_changed(
        self,
        short_code: str,
        previous: StatusSnapshot,
        updated: StatusSnapshot,
    ):
        if self.cache is None or previous.redirect_view() == updated.redirect_view():
            return
        await self.cache.delete(redirect_cache_key(short_code))
