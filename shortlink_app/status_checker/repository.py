"""
Status Store: persistence for url_status rows.

UrlStatusRepository is the interface the checker and the redirect path
depend on; SQLAlchemyUrlStatusRepository is the implementation backed by
the main database. Each write touches exactly one row, so a per-row upsert
is the whole consistency story.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Collection, List, Optional

from sqlalchemy import and_, or_, select

from shortlink_app.database.connection import SessionLocal, session_scope
from shortlink_app.models.url import URL
from shortlink_app.models.url_status import URLStatus
from shortlink_app.status_checker.models import DueURL, StatusSnapshot

logger = logging.getLogger(__name__)


class UrlStatusRepository(ABC):
    """Storage contract for destination status rows"""

    @abstractmethod
    def get_status(self, url_id: int) -> Optional[StatusSnapshot]:
        """Return the status row for a URL, or None if it was never checked"""

    @abstractmethod
    def upsert_status(self, snapshot: StatusSnapshot) -> bool:
        """
        Insert or update the status row for snapshot.url_id.

        Returns:
            False if the owning URL no longer exists (nothing written)
        """

    @abstractmethod
    def list_due_for_check(
        self,
        alive_cutoff: datetime,
        gone_cutoff: datetime,
        limit: int,
        exclude: Collection[int] = (),
    ) -> List[DueURL]:
        """
        URLs whose destination should be probed.

        Never-checked URLs, non-gone rows checked at or before alive_cutoff
        and gone rows checked at or before gone_cutoff; oldest check first,
        never-checked first of all.
        """

    @abstractmethod
    def list_due_for_archive(
        self,
        archive_cutoff: datetime,
        limit: int,
        exclude: Collection[int] = (),
    ) -> List[DueURL]:
        """Gone URLs never looked up in the archive, or last looked up at or before archive_cutoff"""


def _to_db(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SQLAlchemyUrlStatusRepository(UrlStatusRepository):
    """url_status table accessed through SQLAlchemy sessions"""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def session_scope(self):
        return session_scope(self._session_factory)

    def get_status(self, url_id: int) -> Optional[StatusSnapshot]:
        with self.session_scope() as session:
            return self.model_to_snapshot(session.get(URLStatus, url_id))

    def upsert_status(self, snapshot: StatusSnapshot) -> bool:
        with self.session_scope() as session:
            model = session.get(URLStatus, snapshot.url_id)
            if model is None:
                if session.get(URL, snapshot.url_id) is None:
                    logger.debug("URL %s deleted before its status was written", snapshot.url_id)
                    return False
                model = URLStatus(url_id=snapshot.url_id)
            model.last_checked_at = _to_db(snapshot.last_checked_at)
            model.last_status_code = snapshot.last_status_code
            model.gone_at = _to_db(snapshot.gone_at)
            model.archive_url = snapshot.archive_url
            model.archive_checked_at = _to_db(snapshot.archive_checked_at)
            session.add(model)
        return True

    def list_due_for_check(
        self,
        alive_cutoff: datetime,
        gone_cutoff: datetime,
        limit: int,
        exclude: Collection[int] = (),
    ) -> List[DueURL]:
        stmt = (
            select(URL.id, URL.short_code, URL.long_url, URLStatus)
            .outerjoin(URLStatus, URLStatus.url_id == URL.id)
            .where(
                URL.short_code.isnot(None),
                or_(
                    URLStatus.url_id.is_(None),
                    URLStatus.last_checked_at.is_(None),
                    and_(
                        URLStatus.gone_at.is_(None),
                        URLStatus.last_checked_at <= _to_db(alive_cutoff),
                    ),
                    and_(
                        URLStatus.gone_at.isnot(None),
                        URLStatus.last_checked_at <= _to_db(gone_cutoff),
                    ),
                ),
            )
            .order_by(URLStatus.last_checked_at.asc().nulls_first(), URL.id.asc())
            .limit(limit)
        )
        if exclude:
            stmt = stmt.where(URL.id.notin_(list(exclude)))

        with self.session_scope() as session:
            return [self._row_to_due(row) for row in session.execute(stmt).all()]

    def list_due_for_archive(
        self,
        archive_cutoff: datetime,
        limit: int,
        exclude: Collection[int] = (),
    ) -> List[DueURL]:
        stmt = (
            select(URL.id, URL.short_code, URL.long_url, URLStatus)
            .join(URLStatus, URLStatus.url_id == URL.id)
            .where(
                URL.short_code.isnot(None),
                URLStatus.gone_at.isnot(None),
                or_(
                    URLStatus.archive_checked_at.is_(None),
                    URLStatus.archive_checked_at <= _to_db(archive_cutoff),
                ),
            )
            .order_by(URLStatus.archive_checked_at.asc().nulls_first(), URL.id.asc())
            .limit(limit)
        )
        if exclude:
            stmt = stmt.where(URL.id.notin_(list(exclude)))

        with self.session_scope() as session:
            return [self._row_to_due(row) for row in session.execute(stmt).all()]

    def _row_to_due(self, row) -> DueURL:
        url_id, short_code, long_url, model = row
        return DueURL(
            url_id=url_id,
            short_code=short_code,
            destination_url=long_url,
            status=self.model_to_snapshot(model),
        )

    @staticmethod
    def model_to_snapshot(model: Optional[URLStatus]) -> Optional[StatusSnapshot]:
        if model is None:
            return None
        return StatusSnapshot(
            url_id=model.url_id,
            last_checked_at=_from_db(model.last_checked_at),
            last_status_code=model.last_status_code,
            gone_at=_from_db(model.gone_at),
            archive_url=model.archive_url,
            archive_checked_at=_from_db(model.archive_checked_at),
        )
