from contextlib import asynccontextmanager

from fastapi import FastAPI
from shortlink_app.config import settings
from shortlink_app.database.connection import engine, Base
from shortlink_app.api.v1 import urls, redirect
from shortlink_app.dependencies import get_cache, get_click_storage, get_queue
from shortlink_app.hit_processor.click_worker import ClickWorker
from shortlink_app.logging_config import configure_logging
from shortlink_app.status_checker.factory import build_status_checker

# Import models to ensure they're registered with Base
from shortlink_app.models import URL, URLStatus, Click

logger = configure_logging(settings.log_level)

# Create database tables
Base.metadata.create_all(bind=engine)


def build_click_worker():
    """Click worker on the process-wide queue, or None when tracking is off"""
    if not settings.click_tracking_enabled:
        return None
    return ClickWorker(
        queue=get_queue(),
        storage=get_click_storage(),
        queue_name=settings.queue_name,
        batch_size=settings.click_batch_size,
        poll_interval=settings.click_poll_interval,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Start the click worker and the destination status checker with the
    app, stop both on shutdown.

    The checker is optional; when disabled or misconfigured the app serves
    redirects from whatever status rows already exist.
    """
    logger.info(
        "Starting %s %s (%s, cache=%s, queue=%s)",
        settings.app_name,
        settings.app_version,
        settings.environment,
        settings.cache_backend,
        settings.queue_backend,
    )
    click_worker = build_click_worker()
    checker = build_status_checker(cache=get_cache())
    app.state.click_worker = click_worker
    app.state.status_checker = checker
    if click_worker is not None:
        await click_worker.start()
    if checker is not None:
        await checker.start()
    try:
        yield
    finally:
        if checker is not None:
            await checker.stop()
        if click_worker is not None:
            await click_worker.stop()
        logger.info("%s shut down", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A URL shortener that keeps an eye on where its links point",
    debug=settings.debug,
    lifespan=lifespan,
)


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    checker = getattr(app.state, "status_checker", None)
    click_worker = getattr(app.state, "click_worker", None)
    return {
        "status": "healthy",
        "environment": settings.environment,
        "status_checker": "running" if checker is not None and checker.running else "off",
        "click_worker": "running" if click_worker is not None and click_worker.running else "off",
    }


######## Include routers
app.include_router(urls.router, prefix="/api/v1")
app.include_router(redirect.router)
