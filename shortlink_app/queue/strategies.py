"""
Queue strategies using Strategy Pattern.
Allows switching between different queue backends (Redis Streams, In-Memory).

Publishing never blocks a redirect: a full queue or a broken backend
drops the click and logs it.
"""

import json
import logging
import socket
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, List

from .models import ClickEvent

logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Abstract base class for queue strategies.

    The redirect handler publishes, the click worker consumes and acks.
    """

    @abstractmethod
    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        """
        Publish a message to the queue.

        Returns:
            True if queued, False if the click was dropped
        """

    @abstractmethod
    async def consume(self, queue_name: str, batch_size: int = 1) -> List[ClickEvent]:
        """
        Take up to batch_size messages without waiting.

        Returns:
            List of ClickEvent messages (empty when the queue is empty)
        """

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Mark messages as processed"""

    @abstractmethod
    async def get_queue_length(self, queue_name: str) -> int:
        """Number of messages waiting"""

    async def consume_batch(self, queue_name: str, batch_size: int = 100) -> List[ClickEvent]:
        """Consume with a batch-sized default"""
        return await self.consume(queue_name, batch_size)


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams implementation for message queue.

    How it works:
    1. Producer publishes messages using XADD (stream capped at max_length)
    2. Consumer reads messages using XREADGROUP
    3. Consumer acknowledges messages using XACK
    4. Unacknowledged messages stay pending and can be reclaimed
    """

    def __init__(self, redis_client, consumer_group: str = "click_workers", max_length: int = 10000):
        """
        Args:
            redis_client: Redis client instance
            consumer_group: Name of consumer group for workers
            max_length: Approximate cap on stream length; oldest entries are trimmed
        """
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.max_length = max_length
        self.consumer_name = f"worker-{socket.gethostname()}-{id(self)}"
        self._initialized_streams = set()

    def _ensure_stream_exists(self, queue_name: str):
        if queue_name in self._initialized_streams:
            return

        try:
            # MKSTREAM creates the stream along with the group
            self.redis.xgroup_create(
                name=queue_name,
                groupname=self.consumer_group,
                id='0',
                mkstream=True
            )
            logger.info("Created Redis stream %s", queue_name)
        except Exception as e:
            if "BUSYGROUP" not in str(e):
                raise

        self._initialized_streams.add(queue_name)

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        try:
            self._ensure_stream_exists(queue_name)
            self.redis.xadd(
                queue_name,
                {'data': message.model_dump_json()},
                maxlen=self.max_length,
                approximate=True,
            )
            return True
        except Exception as e:
            logger.warning("Redis publish error, click for %s dropped: %s", message.short_code, e)
            return False

    async def consume(self, queue_name: str, batch_size: int = 1) -> List[ClickEvent]:
        try:
            self._ensure_stream_exists(queue_name)

            # '>' means "messages never delivered to other consumers"
            messages = self.redis.xreadgroup(
                groupname=self.consumer_group,
                consumername=self.consumer_name,
                streams={queue_name: '>'},
                count=batch_size,
            )
        except Exception as e:
            logger.warning("Redis consume error: %s", e)
            return []

        events = []
        for _stream_name, stream_messages in messages or []:
            for message_id, message_data in stream_messages:
                message_id = message_id.decode('utf-8')
                try:
                    data = json.loads(message_data[b'data'].decode('utf-8'))
                    event = ClickEvent(**data)
                except Exception as e:
                    # Unreadable forever; ack so it does not stay pending
                    logger.warning("Dropping unparseable message %s: %s", message_id, e)
                    await self.ack(queue_name, [message_id])
                    continue
                event.message_id = message_id
                events.append(event)
        return events

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        if not message_ids:
            return True
        try:
            self.redis.xack(queue_name, self.consumer_group, *message_ids)
            return True
        except Exception as e:
            logger.warning("Redis ack error: %s", e)
            return False

    async def get_queue_length(self, queue_name: str) -> int:
        try:
            info = self.redis.xinfo_stream(queue_name)
            return info['length']
        except Exception:
            return 0


class InMemoryQueue(QueueStrategy):
    """
    In-memory queue implementation using Python deque.

    Not persistent and per process; good for development, tests and
    single-instance deployments. Bounded: once max_length clicks are
    waiting, new ones are dropped.
    """

    def __init__(self, max_length: int = 10000):
        self.max_length = max_length
        self._queues: Dict[str, Deque[ClickEvent]] = {}
        self.dropped = 0

    def _get_queue(self, queue_name: str) -> Deque[ClickEvent]:
        if queue_name not in self._queues:
            self._queues[queue_name] = deque()
        return self._queues[queue_name]

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        queue = self._get_queue(queue_name)
        if len(queue) >= self.max_length:
            self.dropped += 1
            logger.warning(
                "Click queue %s full (%s), click for %s dropped",
                queue_name,
                self.max_length,
                message.short_code,
            )
            return False
        queue.append(message)
        return True

    async def consume(self, queue_name: str, batch_size: int = 1) -> List[ClickEvent]:
        queue = self._get_queue(queue_name)
        messages = []
        while queue and len(messages) < batch_size:
            messages.append(queue.popleft())
        return messages

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Nothing to do: messages leave the deque on consume"""
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        return len(self._get_queue(queue_name))
