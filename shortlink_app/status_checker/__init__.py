"""
Destination status checker.

Periodically probes the destination of every short URL, marks 404/410
destinations as gone and looks gone ones up in the Wayback Machine. The
redirect handler reads the results; it never probes on its own.
"""

from .models import (
    CheckerState,
    DueBatches,
    DueURL,
    ProbeClassification,
    ProbeOutcome,
    StatusSnapshot,
    TickReport,
)
from .repository import UrlStatusRepository, SQLAlchemyUrlStatusRepository
from .selector import BatchSelector
from .prober import DestinationProber
from .archive import ArchiveResolver
from .checker import StatusChecker
from .factory import build_status_checker, load_status_checker_settings

__all__ = [
    "CheckerState",
    "DueBatches",
    "DueURL",
    "ProbeClassification",
    "ProbeOutcome",
    "StatusSnapshot",
    "TickReport",
    "UrlStatusRepository",
    "SQLAlchemyUrlStatusRepository",
    "BatchSelector",
    "DestinationProber",
    "ArchiveResolver",
    "StatusChecker",
    "build_status_checker",
    "load_status_checker_settings",
]
