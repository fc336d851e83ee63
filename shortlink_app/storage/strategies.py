"""
Click storage strategies using Strategy Pattern.

ClickStorageStrategy is what the click worker writes to and the analytics
endpoint reads from. SQLAlchemyClickStorage keeps clicks in the main
database next to the URLs they belong to.

Methods are synchronous (database I/O); async callers run them in a
thread pool.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from sqlalchemy import func, select

from shortlink_app.database.connection import SessionLocal, session_scope
from shortlink_app.models.click import Click
from shortlink_app.models.url import URL
from shortlink_app.queue.models import ClickEvent

logger = logging.getLogger(__name__)

TOP_REFERRERS = 10


@dataclass
class ClickStats:
    """Aggregates for one URL; by_date is only filled for all-time stats"""
    total_clicks: int = 0
    by_country: Dict[str, int] = field(default_factory=dict)
    by_referrer: Dict[str, int] = field(default_factory=dict)
    by_date: Optional[Dict[str, int]] = None


def referrer_domain(referrer: Optional[str]) -> Optional[str]:
    """Host part of a referrer URL, lowercased, or None if there is none"""
    if not referrer:
        return None
    try:
        host = urlsplit(referrer).hostname
    except ValueError:
        return None
    return host or None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ClickStorageStrategy(ABC):
    """Storage contract for click rows"""

    @abstractmethod
    def store_clicks(self, events: List[ClickEvent]) -> int:
        """
        Store a batch of clicks in one transaction.

        Clicks whose URL has been deleted meanwhile are dropped.

        Returns:
            Number of clicks written
        """

    @abstractmethod
    def get_stats(
        self,
        url_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ClickStats:
        """
        Totals per country, per referrer (top 10) and, without a time
        range, per day. With start and end, only clicks in [start, end].
        """


class SQLAlchemyClickStorage(ClickStorageStrategy):
    """clicks table accessed through SQLAlchemy sessions"""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def store_clicks(self, events: List[ClickEvent]) -> int:
        if not events:
            return 0

        with session_scope(self._session_factory) as session:
            url_ids = sorted({event.url_id for event in events})
            existing = set(session.scalars(select(URL.id).where(URL.id.in_(url_ids))))
            rows = [
                Click(
                    url_id=event.url_id,
                    clicked_at=_naive_utc(event.clicked_at),
                    referrer=event.referrer,
                    referrer_domain=referrer_domain(event.referrer),
                    country=event.country,
                    user_agent=event.user_agent,
                )
                for event in events
                if event.url_id in existing
            ]
            session.add_all(rows)

        dropped = len(events) - len(rows)
        if dropped:
            logger.debug("Dropped %s clicks for deleted URLs", dropped)
        return len(rows)

    def get_stats(
        self,
        url_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ClickStats:
        conditions = [Click.url_id == url_id]
        ranged = start is not None and end is not None
        if ranged:
            conditions.append(Click.clicked_at >= _naive_utc(start))
            conditions.append(Click.clicked_at <= _naive_utc(end))

        count = func.count(Click.id).label("count")
        with session_scope(self._session_factory) as session:
            total = session.scalar(select(func.count(Click.id)).where(*conditions))

            by_country = session.execute(
                select(Click.country, count)
                .where(*conditions, Click.country.isnot(None), Click.country != "")
                .group_by(Click.country)
                .order_by(count.desc())
            ).all()

            by_referrer = session.execute(
                select(Click.referrer, count)
                .where(*conditions, Click.referrer.isnot(None), Click.referrer != "")
                .group_by(Click.referrer)
                .order_by(count.desc())
                .limit(TOP_REFERRERS)
            ).all()

            by_date = None
            if not ranged:
                day = func.date(Click.clicked_at).label("day")
                by_date = session.execute(
                    select(day, count)
                    .where(*conditions)
                    .group_by(day)
                    .order_by(day.desc())
                ).all()

        return ClickStats(
            total_clicks=total or 0,
            by_country={country: n for country, n in by_country},
            by_referrer={referrer: n for referrer, n in by_referrer},
            by_date={str(day): n for day, n in by_date} if by_date is not None else None,
        )
