"""
Factory for creating the click queue.
Singleton per process; Redis falls back to memory when unreachable.
"""

import logging
from enum import Enum

from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from shortlink_app.config import settings

logger = logging.getLogger(__name__)


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS_STREAMS = "redis_streams"
    MEMORY = "memory"


class QueueFactory:
    """
    Creates the queue once and reuses it.
    Gets configuration from settings (not passed as parameters).
    """

    _instance: QueueStrategy = None

    @classmethod
    def create(cls, backend: QueueBackend) -> QueueStrategy:
        if cls._instance is not None:
            return cls._instance

        if backend == QueueBackend.REDIS_STREAMS:
            import redis

            try:
                redis_client = redis.from_url(
                    settings.redis_url,
                    decode_responses=False,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                redis_client.ping()
                cls._instance = RedisStreamQueue(
                    redis_client,
                    consumer_group=settings.queue_consumer_group,
                    max_length=settings.queue_max_length,
                )
                logger.info("Redis click queue initialized")

            except Exception as e:
                logger.warning("Redis connection failed (%s), falling back to in-memory queue", e)
                cls._instance = InMemoryQueue(max_length=settings.queue_max_length)

        elif backend == QueueBackend.MEMORY:
            cls._instance = InMemoryQueue(max_length=settings.queue_max_length)
            logger.info("In-memory click queue initialized")

        else:
            raise ValueError(f"Unknown queue backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
