from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base


class URL(Base):
    """
    Short URL record.

    Destination health lives in the url_status table (see URLStatus),
    written by the background status checker and read by the redirect
    handler. Deleting a URL deletes its status row with it.
    """
    __tablename__ = "urls"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    long_url = Column(String, nullable=False)
    # Nullable=True allows two-step creation: first get ID, then generate short_code
    short_code = Column(String(16), unique=True, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    status = relationship(
        "URLStatus",
        back_populates="url",
        uselist=False,
        cascade="all, delete-orphan",
    )
