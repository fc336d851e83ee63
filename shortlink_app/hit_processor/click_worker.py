"""
Click Worker

Moves click events from the queue into click storage, off the redirect path.

- Consumes messages in batches
- Writes each batch in one transaction on a worker thread
- Acknowledges a batch only after it was stored, so Redis keeps failed
  batches pending for retry
- Sleeps poll_interval when the queue is empty
- On stop(), drains what is still queued before returning
"""

import asyncio
import logging
from typing import Optional

from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.storage.strategies import ClickStorageStrategy

logger = logging.getLogger(__name__)


class ClickWorker:
    """Background click writer, started and stopped with the app"""

    def __init__(
        self,
        queue: QueueStrategy,
        storage: ClickStorageStrategy,
        queue_name: str,
        batch_size: int = 100,
        poll_interval: float = 1.0,
    ):
        """
        Args:
            queue: Queue strategy for consuming messages
            storage: Storage strategy for click rows
            queue_name: Queue the redirect handler publishes to
            batch_size: Messages per storage write
            poll_interval: Seconds to wait when the queue is empty
        """
        self.queue = queue
        self.storage = storage
        self.queue_name = queue_name
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self.processed_count = 0
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="click-worker")
        logger.info("Click worker started (batch=%s, poll=%ss)", self.batch_size, self.poll_interval)

    async def stop(self):
        """Stop polling, then store whatever is still queued"""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

        drained = await self.drain()
        logger.info("Click worker stopped (%s clicks stored, %s on shutdown)", self.processed_count, drained)

    async def _run(self):
        while not self._stop_event.is_set():
            try:
                processed = await self.process_batch()
            except Exception:
                logger.exception("Click worker iteration failed")
                processed = 0

            if processed:
                continue
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

    async def process_batch(self) -> int:
        """
        Store one batch from the queue.

        Returns:
            Number of messages taken off the queue (0 when empty or on failure)
        """
        messages = await self.queue.consume_batch(self.queue_name, batch_size=self.batch_size)
        if not messages:
            return 0

        loop = asyncio.get_running_loop()
        try:
            stored = await loop.run_in_executor(None, self.storage.store_clicks, messages)
        except Exception:
            # Not acknowledged: Redis keeps them pending, the in-memory queue loses them
            logger.exception("Storing %s clicks failed", len(messages))
            return 0

        message_ids = [msg.message_id for msg in messages if msg.message_id]
        if message_ids:
            await self.queue.ack(self.queue_name, message_ids)

        self.processed_count += stored
        logger.debug("Stored %s clicks (total %s)", stored, self.processed_count)
        return len(messages)

    async def drain(self) -> int:
        """Process batches until the queue is empty or a batch fails"""
        drained = 0
        while True:
            processed = await self.process_batch()
            if not processed:
                return drained
            drained += processed
