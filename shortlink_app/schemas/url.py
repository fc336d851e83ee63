from pydantic import BaseModel, HttpUrl, Field, computed_field, ConfigDict
from typing import Dict, List, Optional
from datetime import datetime
from shortlink_app.config import settings


class URLBase(BaseModel):
    long_url: HttpUrl = Field(..., description="The original URL to be shortened")


class URLCreate(URLBase):
    pass


class URLResponse(URLBase):
    """Response schema that serializes the SQLAlchemy URL model

    - from_attributes=True enables ORM mode (reads from model attributes)
    - @computed_field creates derived fields
    """
    id: int
    short_code: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def short_url(self) -> str:
        return f"{settings.base_url}/{self.short_code}"

    model_config = ConfigDict(from_attributes=True)


class URLList(BaseModel):
    items: List[URLResponse]
    total: int
    skip: int
    limit: int


class URLStatusResponse(BaseModel):
    """What the status checker last observed for a short URL (all null if never checked)"""
    short_code: str
    last_checked_at: Optional[datetime] = None
    last_status_code: Optional[int] = None
    gone_at: Optional[datetime] = None
    archive_url: Optional[str] = None
    archive_checked_at: Optional[datetime] = None

    @computed_field
    @property
    def is_gone(self) -> bool:
        return self.gone_at is not None


class RedirectTarget(BaseModel):
    """Everything the redirect handler needs; cached as JSON under url:{short_code}"""
    url_id: int
    short_code: str
    long_url: str
    gone: bool = False
    last_status_code: Optional[int] = None
    archive_url: Optional[str] = None


class ClickAnalytics(BaseModel):
    """
    Click counts for one short URL.

    by_referrer lists the top 10 referrers. by_date (YYYY-MM-DD) is only
    returned for all-time stats, i.e. without start/end.
    """
    short_code: str
    long_url: str
    total_clicks: int
    by_country: Dict[str, int]
    by_referrer: Dict[str, int]
    by_date: Optional[Dict[str, int]] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
