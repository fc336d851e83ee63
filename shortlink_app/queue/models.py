"""
Data models for queue messages.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClickEvent(BaseModel):
    """
    One redirect served for a short URL.

    Published by the redirect handler and stored by the click worker;
    the redirect never waits for the write.
    """

    url_id: int = Field(..., description="Id of the URL that was accessed")
    short_code: str = Field(..., description="The short code that was accessed")
    clicked_at: datetime = Field(default_factory=_utcnow, description="When the click happened")

    # Request metadata
    referrer: Optional[str] = Field(None, description="HTTP Referer header")
    user_agent: Optional[str] = Field(None, description="User agent string")
    country: Optional[str] = Field(None, description="ISO 3166 alpha-2 code from the proxy header")

    # Set by the queue on consume, used for ack; never serialized
    message_id: Optional[str] = Field(None, exclude=True)

    model_config = {
        "json_schema_extra": {
            "example": {
                "url_id": 42,
                "short_code": "abc12",
                "clicked_at": "2024-06-01T10:30:00Z",
                "referrer": "https://news.ycombinator.com/item?id=1",
                "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0",
                "country": "US",
            }
        }
    }

    @field_validator("country")
    @classmethod
    def _country_code(cls, value: Optional[str]) -> Optional[str]:
        # Proxies send "XX"/"T1" and the like for unknown; keep two letters only
        if value is None:
            return None
        value = value.strip().upper()
        if len(value) != 2 or not value.isalpha() or value == "XX":
            return None
        return value

    @field_validator("referrer", "user_agent")
    @classmethod
    def _blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value
