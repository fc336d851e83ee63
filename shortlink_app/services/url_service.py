import logging
from typing import Optional, Tuple, List

from pydantic import HttpUrl
from sqlalchemy import func
from sqlalchemy.orm import Session

from shortlink_app.cache.strategies import CacheStrategy, redirect_cache_key
from shortlink_app.config import settings
from shortlink_app.models.click import Click
from shortlink_app.models.url import URL
from shortlink_app.schemas.url import RedirectTarget, URLStatusResponse
from shortlink_app.services.short_code_factory import ShortCodeFactory
from shortlink_app.status_checker.repository import SQLAlchemyUrlStatusRepository

logger = logging.getLogger(__name__)


class URLService:
    """
    URL Service with dependency injection for the database session and cache.

    The redirect cache holds a RedirectTarget per short code; anything that
    changes what a redirect should do (deletion here, status changes in the
    status checker) deletes the entry.
    """

    def __init__(self, db: Session, cache: Optional[CacheStrategy] = None):
        """
        Args:
            db: Database session
            cache: Redirect cache (optional, for performance)
        """
        self.db = db
        self.cache = cache
        self.short_code_strategy = ShortCodeFactory.create_strategy()

    async def create_short_url(self, long_url: HttpUrl) -> URL:
        """Create a new short URL

        Always creates a new short URL even if the long URL already exists.

        Process:
        1. Insert with no short_code to get the auto-increment ID
        2. Generate the short_code from the ID
        3. Commit with the final short_code

        The new URL has no status row; the status checker treats it as due
        on its next tick.
        """
        url = URL(long_url=str(long_url), short_code=None)
        self.db.add(url)
        self.db.flush()

        url.short_code = self.short_code_strategy.generate(url.id, self.db)

        self.db.commit()
        self.db.refresh(url)
        logger.info("Created short URL %s -> %s", url.short_code, url.long_url)
        return url

    async def list_urls(self, skip: int = 0, limit: int = 50) -> Tuple[List[URL], int]:
        """Page through URLs, newest first"""
        total = self.db.query(func.count(URL.id)).scalar()
        items = (
            self.db.query(URL)
            .order_by(URL.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    async def get_url_by_short_code(self, short_code: str) -> Optional[URL]:
        return self.db.query(URL).filter(URL.short_code == short_code).first()

    async def get_redirect_target(self, short_code: str) -> Optional[RedirectTarget]:
        """
        Resolve a short code for the redirect handler (Cache-Aside pattern).

        Reads the stored status row only; never probes the destination, so
        how stale "gone" can be is bounded by the checker's recheck intervals.

        Flow:
        1. Check cache first
        2. On miss, load the URL and its status row from the database
        3. Populate cache for next time
        """
        key = redirect_cache_key(short_code)

        if self.cache:
            cached = await self.cache.get(key)
            if cached:
                return RedirectTarget.model_validate_json(cached)

        url = await self.get_url_by_short_code(short_code)
        if not url:
            return None

        status = SQLAlchemyUrlStatusRepository.model_to_snapshot(url.status)
        target = RedirectTarget(url_id=url.id, short_code=url.short_code, long_url=url.long_url)
        if status is not None and status.is_gone:
            target.gone = True
            target.last_status_code = status.last_status_code
            target.archive_url = status.archive_url

        if self.cache:
            await self.cache.set(key, target.model_dump_json(), ttl=settings.cache_ttl)

        return target

    async def get_url_status(self, short_code: str) -> Optional[URLStatusResponse]:
        url = await self.get_url_by_short_code(short_code)
        if not url:
            return None

        status = SQLAlchemyUrlStatusRepository.model_to_snapshot(url.status)
        if status is None:
            return URLStatusResponse(short_code=url.short_code)
        return URLStatusResponse(
            short_code=url.short_code,
            last_checked_at=status.last_checked_at,
            last_status_code=status.last_status_code,
            gone_at=status.gone_at,
            archive_url=status.archive_url,
            archive_checked_at=status.archive_checked_at,
        )

    async def delete_url(self, short_code: str) -> bool:
        """
        Delete a short URL; its status row goes with it (cascade) and its
        clicks are removed in bulk. Also invalidates the redirect cache.
        """
        url = await self.get_url_by_short_code(short_code)
        if not url:
            return False

        self.db.query(Click).filter(Click.url_id == url.id).delete(synchronize_session=False)
        self.db.delete(url)
        self.db.commit()

        if self.cache:
            await self.cache.delete(redirect_cache_key(short_code))

        logger.info("Deleted short URL %s", short_code)
        return True
