"""
Simple Async Pub/Sub Event Bus

Topic-based publish/subscribe on top of asyncio queues. The dashboard session
publishes every snapshot to the "snapshots" topic; each WebSocket client
subscribes with its own queue and consumes events at its own pace.
"""

import asyncio
from typing import Any, Dict, DefaultDict, Set
from collections import defaultdict

from core.logging import get_logger


class EventBus:
    """
    Async event bus with topic-based pub/sub.

    - Each subscriber gets its own bounded asyncio.Queue; a slow subscriber
      loses events instead of blocking the publisher.
    - Subscribers must unsubscribe when their client disconnects.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._topics: DefaultDict[str, Set[asyncio.Queue]] = defaultdict(set)
        self._max_queue_size = max_queue_size
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    async def subscribe(self, topic: str) -> asyncio.Queue:
        """Subscribe to a topic. Returns the queue events are delivered to."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        async with self._lock:
            self._topics[topic].add(queue)
        self._logger.debug(f"Subscriber added to topic '{topic}'. total={len(self._topics[topic])}")
        return queue

    async def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        async with self._lock:
            self._topics[topic].discard(queue)
            while not queue.empty():
                queue.get_nowait()
        self._logger.debug(f"Subscriber removed from topic '{topic}'. total={len(self._topics[topic])}")

    async def publish(self, topic: str, event: Dict[str, Any]) -> int:
        """
        Publish an event to a topic.

        Returns:
            int: Number of subscribers the event was delivered to
        """
        delivered = 0
        for queue in list(self._topics.get(topic, set())):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                self._logger.warning(f"Dropping event for topic '{topic}' due to full queue")
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, set()))


# Singleton event bus for the application
bus = EventBus()
