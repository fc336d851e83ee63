from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from shortlink_app.schemas.url import ClickAnalytics, URLCreate, URLList, URLResponse, URLStatusResponse
from shortlink_app.services.url_service import URLService
from shortlink_app.storage.strategies import ClickStorageStrategy
from shortlink_app.dependencies import get_click_storage, get_url_service

router = APIRouter(prefix="/urls", tags=["urls"])


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Query values without an offset are taken as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@router.post("/", response_model=URLResponse, status_code=status.HTTP_201_CREATED)
async def create_short_url(
    url_data: URLCreate,
    url_service: URLService = Depends(get_url_service)
):
    """Create a new short URL"""
    return await url_service.create_short_url(url_data.long_url)


@router.get("/", response_model=URLList)
async def list_urls(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    url_service: URLService = Depends(get_url_service)
):
    """List short URLs, newest first"""
    items, total = await url_service.list_urls(skip=skip, limit=limit)
    return URLList(
        items=[URLResponse.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{short_code}", response_model=URLResponse)
async def get_url_info(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Get information about a short URL"""
    url = await url_service.get_url_by_short_code(short_code)
    if not url:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Short URL not found"
        )
    return url


@router.get("/{short_code}/status", response_model=URLStatusResponse)
async def get_url_status(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Last destination check recorded by the status checker"""
    url_status = await url_service.get_url_status(short_code)
    if not url_status:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Short URL not found"
        )
    return url_status


@router.get("/{short_code}/analytics", response_model=ClickAnalytics)
async def get_url_analytics(
    short_code: str,
    start: Optional[datetime] = Query(None, description="Range start (ISO 8601), needs end"),
    end: Optional[datetime] = Query(None, description="Range end (ISO 8601), inclusive, needs start"),
    url_service: URLService = Depends(get_url_service),
    storage: ClickStorageStrategy = Depends(get_click_storage),
):
    """Click counts by country, referrer and (all-time only) day"""
    if (start is None) != (end is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start and end must be given together"
        )
    start, end = _as_utc(start), _as_utc(end)
    if start is not None and start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end"
        )

    url = await url_service.get_url_by_short_code(short_code)
    if not url:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Short URL not found"
        )

    stats = await run_in_threadpool(storage.get_stats, url.id, start, end)
    return ClickAnalytics(
        short_code=url.short_code,
        long_url=url.long_url,
        total_clicks=stats.total_clicks,
        by_country=stats.by_country,
        by_referrer=stats.by_referrer,
        by_date=stats.by_date,
        start_time=start,
        end_time=end,
    )


@router.delete("/{short_code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_url(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Delete a short URL with its status and clicks"""
    success = await url_service.delete_url(short_code)
    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Short URL not found"
        )
