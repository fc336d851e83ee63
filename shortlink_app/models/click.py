from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from shortlink_app.database.connection import Base


class Click(Base):
    """
    One served redirect, written by the click worker.

    referrer_domain is the referrer's host, kept separately so it can be
    grouped on without parsing. clicked_at is stored as naive UTC.
    URLService.delete_url removes a URL's clicks in bulk before the URL.
    """
    __tablename__ = "clicks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url_id = Column(
        Integer,
        ForeignKey("urls.id", ondelete="CASCADE"),
        nullable=False,
    )
    clicked_at = Column(DateTime, nullable=False)
    referrer = Column(String, nullable=True)
    referrer_domain = Column(String, nullable=True)
    country = Column(String(2), nullable=True)
    user_agent = Column(String, nullable=True)

    __table_args__ = (
        Index("ix_clicks_url_id_clicked_at", "url_id", "clicked_at"),
    )
