"""
Startup wiring for the status checker.

The checker is optional: bad STATUS_CHECKER_* values are logged and the
checker stays off, while the API and redirects keep working.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import StatusCheckerSettings
from shortlink_app.status_checker.checker import StatusChecker
from shortlink_app.status_checker.repository import (
    SQLAlchemyUrlStatusRepository,
    UrlStatusRepository,
)

logger = logging.getLogger(__name__)


def load_status_checker_settings() -> Optional[StatusCheckerSettings]:
    """Read checker settings from the environment; None if they are invalid"""
    try:
        return StatusCheckerSettings()
    except ValidationError as exc:
        logger.error("Invalid status checker configuration, checker not started: %s", exc)
        return None


def build_status_checker(
    settings: Optional[StatusCheckerSettings] = None,
    repository: Optional[UrlStatusRepository] = None,
    cache: Optional[CacheStrategy] = None,
) -> Optional[StatusChecker]:
    """
    Build the checker for this process.

    Returns:
        A StatusChecker ready to start(), or None when disabled or misconfigured
    """
    settings = settings or load_status_checker_settings()
    if settings is None:
        return None
    if not settings.enabled:
        logger.info("Status checker disabled (STATUS_CHECKER_ENABLED=false)")
        return None

    return StatusChecker(
        repository=repository or SQLAlchemyUrlStatusRepository(),
        settings=settings,
        cache=cache,
    )
