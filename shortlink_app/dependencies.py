"""
FastAPI dependencies for dependency injection.

The cache and the click queue are process-wide singletons: the status
checker invalidates what handlers cache, and the click worker consumes
what handlers publish.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from shortlink_app.cache.factory import CacheFactory, CacheBackend
from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.database.connection import get_db
from shortlink_app.queue.factory import QueueFactory, QueueBackend
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.storage.strategies import ClickStorageStrategy, SQLAlchemyClickStorage


@lru_cache()
def get_cache() -> CacheStrategy:
    """Cache instance for this process, backend chosen by settings.cache_backend"""
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_queue() -> QueueStrategy:
    """Click queue for this process, backend chosen by settings.queue_backend"""
    backend = QueueBackend(settings.queue_backend)
    return QueueFactory.create(backend)


@lru_cache()
def get_click_storage() -> ClickStorageStrategy:
    return SQLAlchemyClickStorage()


def get_url_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache),
):
    """URLService with its database session and cache injected"""
    from shortlink_app.services.url_service import URLService
    return URLService(db=db, cache=cache)
