"""
Domain types for the destination status checker.

StatusSnapshot mirrors one url_status row. The transition helpers at the
bottom are pure: they take the previous snapshot plus a probe or archive
result and return the snapshot to write back.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional


GONE_STATUS_CODES = frozenset({404, 410})


class ProbeClassification(Enum):
    """What a single destination probe tells us"""
    ALIVE = "alive"      # destination answered with a non-gone status code
    GONE = "gone"        # destination answered 404 or 410
    UNKNOWN = "unknown"  # no answer at all (timeout, DNS, refused, ...)


class CheckerState(Enum):
    """Lifecycle of the checker loop"""
    IDLE = "idle"
    SELECTING = "selecting"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ProbeOutcome:
    classification: ProbeClassification
    status_code: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_status_code(cls, status_code: int) -> "ProbeOutcome":
        if status_code in GONE_STATUS_CODES:
            return cls(ProbeClassification.GONE, status_code)
        return cls(ProbeClassification.ALIVE, status_code)

    @classmethod
    def transport_failure(cls, error: str) -> "ProbeOutcome":
        return cls(ProbeClassification.UNKNOWN, None, error)

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600


@dataclass(frozen=True)
class StatusSnapshot:
    """Persisted status of one URL (all timestamps timezone-aware UTC)"""
    url_id: int
    last_checked_at: Optional[datetime] = None
    last_status_code: Optional[int] = None
    gone_at: Optional[datetime] = None
    archive_url: Optional[str] = None
    archive_checked_at: Optional[datetime] = None

    @property
    def is_gone(self) -> bool:
        return self.gone_at is not None

    def redirect_view(self) -> tuple:
        """Fields the redirect handler renders; a change means the cached redirect is stale"""
        return (self.is_gone, self.last_status_code if self.is_gone else None, self.archive_url)


@dataclass(frozen=True)
class DueURL:
    """A URL selected for checking, with its status as of selection time"""
    url_id: int
    short_code: str
    destination_url: str
    status: Optional[StatusSnapshot] = None

    @property
    def current_status(self) -> StatusSnapshot:
        return self.status or StatusSnapshot(url_id=self.url_id)


@dataclass
class DueBatches:
    destination: List[DueURL] = field(default_factory=list)
    archive: List[DueURL] = field(default_factory=list)


@dataclass
class TickReport:
    """Counters for one pass of the checker"""
    started_at: datetime
    selected: int = 0
    checked: int = 0
    alive: int = 0
    gone: int = 0
    unknown: int = 0
    newly_gone: int = 0
    archive_lookups: int = 0
    archive_found: int = 0
    failures: int = 0
    skipped: int = 0


def apply_probe_outcome(
    previous: StatusSnapshot,
    outcome: ProbeOutcome,
    checked_at: datetime,
) -> StatusSnapshot:
    """
    Fold a probe outcome into the previous snapshot.

    - UNKNOWN: only last_checked_at moves; last_status_code is cleared,
      gone/archive state is kept.
    - GONE: gone_at keeps the first gone time, or becomes checked_at.
    - ALIVE with 5xx: recorded, but gone/archive state is kept.
    - ALIVE otherwise: the destination recovered, gone/archive state is cleared.
    """
    if previous.last_checked_at is not None and previous.last_checked_at > checked_at:
        checked_at = previous.last_checked_at

    if outcome.classification is ProbeClassification.UNKNOWN:
        return replace(previous, last_checked_at=checked_at, last_status_code=None)

    if outcome.classification is ProbeClassification.GONE:
        return replace(
            previous,
            last_checked_at=checked_at,
            last_status_code=outcome.status_code,
            gone_at=previous.gone_at or checked_at,
        )

    if outcome.is_server_error:
        return replace(previous, last_checked_at=checked_at, last_status_code=outcome.status_code)

    return StatusSnapshot(
        url_id=previous.url_id,
        last_checked_at=checked_at,
        last_status_code=outcome.status_code,
    )


def apply_archive_result(
    previous: StatusSnapshot,
    archive_url: Optional[str],
    checked_at: datetime,
) -> StatusSnapshot:
    """Record an archive lookup; None means no snapshot (or lookup failed)"""
    if not previous.is_gone:
        raise ValueError(f"archive result for url {previous.url_id} which is not gone")
    return replace(previous, archive_url=archive_url, archive_checked_at=checked_at)
