from html import escape

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from shortlink_app.config import settings
from shortlink_app.queue.models import ClickEvent
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.schemas.url import RedirectTarget
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_queue, get_url_service

router = APIRouter(tags=["redirect"])


def render_gone_interstitial(target: RedirectTarget) -> str:
    """HTML page shown instead of redirecting to a destination marked gone"""
    destination = escape(target.long_url, quote=True)
    if target.last_status_code is not None:
        reason = f"returned HTTP {target.last_status_code}"
    else:
        reason = "is no longer available"

    if target.archive_url:
        archive = escape(target.archive_url, quote=True)
        archive_block = (
            f'<p>An archived copy is available: '
            f'<a href="{archive}" rel="noopener noreferrer">{archive}</a></p>'
        )
    else:
        archive_block = "<p>No archived copy was found.</p>"

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="robots" content="noindex">
  <title>Link destination gone</title>
</head>
<body>
  <h1>This link's destination is gone</h1>
  <p>The page this short link points to {reason}:</p>
  <p><code>{destination}</code></p>
  {archive_block}
  <p><a href="{destination}" rel="noopener noreferrer nofollow">Try the original address anyway</a></p>
</body>
</html>
"""


async def publish_click(queue: QueueStrategy, target: RedirectTarget, request: Request) -> bool:
    """Queue a click for target; False means the queue dropped it"""
    event = ClickEvent(
        url_id=target.url_id,
        short_code=target.short_code,
        referrer=request.headers.get("referer"),
        user_agent=request.headers.get("user-agent"),
        country=request.headers.get(settings.country_header),
    )
    return await queue.publish(settings.queue_name, event)


@router.get("/{short_code}")
async def redirect_to_long_url(
    short_code: str,
    request: Request,
    url_service: URLService = Depends(get_url_service),
    queue: QueueStrategy = Depends(get_queue),
):
    """
    Redirect to the original URL.

    Uses only what the status checker already stored: if the destination
    is marked gone, an interstitial (410) with the last status code and
    the archive snapshot is returned instead of a redirect. No live check
    happens on this path.

    Every served answer (redirect or interstitial) publishes a click
    event; the click worker stores it later, so the response never waits
    on the write.
    """
    target = await url_service.get_redirect_target(short_code)

    if not target:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Short URL not found"
        )

    if settings.click_tracking_enabled:
        await publish_click(queue, target, request)

    if target.gone:
        return HTMLResponse(
            content=render_gone_interstitial(target),
            status_code=status.HTTP_410_GONE,
        )

    return RedirectResponse(url=target.long_url, status_code=status.HTTP_302_FOUND)
