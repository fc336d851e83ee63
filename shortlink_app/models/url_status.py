from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from shortlink_app.database.connection import Base


class URLStatus(Base):
    """
    Latest destination check result for one short URL.

    Created lazily on the first check (upsert). No row means "never
    checked". archive_url/archive_checked_at are only written once
    gone_at is set; archive_checked_at tells "not looked up" (NULL)
    apart from "looked up, no snapshot" (archive_url NULL, timestamp set).

    Timestamps are stored as naive UTC.
    """
    __tablename__ = "url_status"

    url_id = Column(
        Integer,
        ForeignKey("urls.id", ondelete="CASCADE"),
        primary_key=True,
    )
    last_checked_at = Column(DateTime, nullable=True, index=True)
    last_status_code = Column(Integer, nullable=True)
    gone_at = Column(DateTime, nullable=True, index=True)
    archive_url = Column(String, nullable=True)
    archive_checked_at = Column(DateTime, nullable=True)

    url = relationship("URL", back_populates="status")
