"""
Change feed used to push document and room changes to subscribers.

Supports an in-memory fan-out for tests/local runs and a Redis pub/sub
implementation for production, where API workers on several hosts need to
see each other's writes.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict], None]


class ChangeFeed(Protocol):
    """Topic-based publish/subscribe."""

    def publish(self, topic: str, message: dict) -> None:
        ...

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        ...


def _deliver(handlers: List[Handler], topic: str, message: dict) -> None:
    for handler in handlers:
        try:
            handler(topic, message)
        except Exception:
            logger.exception("Change handler failed for topic %s", topic)


@dataclass
class InMemoryChangeFeed:
    """Synchronous fan-out within one process."""

    handlers: Dict[str, List[Handler]] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()

    def publish(self, topic: str, message: dict) -> None:
        with self._lock:
            handlers = list(self.handlers.get(topic, ()))
        _deliver(handlers, topic, message)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        with self._lock:
            self.handlers.setdefault(topic, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self.handlers.get(topic, [])
                if handler in handlers:
                    handlers.remove(handler)
                if not handlers:
                    self.handlers.pop(topic, None)

        return unsubscribe


@dataclass
class RedisChangeFeed:
    """Redis pub/sub with one background listener thread per process."""

    url: str
    channel_prefix: str = "engage:"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)
        self._lock = threading.Lock()
        self._handlers: Dict[str, List[Handler]] = {}
        self._pubsub: Optional[redis.client.PubSub] = None
        self._thread = None

    def publish(self, topic: str, message: dict) -> None:
        try:
            self.client.publish(self.channel_prefix + topic, json.dumps(message))
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections; reconnect and retry once.
            logger.warning("Redis publish failed for %s, reconnecting", topic)
            self.client = redis.Redis.from_url(self.url)
            self.client.publish(self.channel_prefix + topic, json.dumps(message))

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        channel = self.channel_prefix + topic
        with self._lock:
            handlers = self._handlers.setdefault(channel, [])
            handlers.append(handler)
            if len(handlers) == 1:
                if self._pubsub is None:
                    self._pubsub = self.client.pubsub(ignore_subscribe_messages=True)
                self._pubsub.subscribe(**{channel: self._dispatch})
                if self._thread is None:
                    self._thread = self._pubsub.run_in_thread(
                        sleep_time=0.01, daemon=True
                    )

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(channel, [])
                if handler in handlers:
                    handlers.remove(handler)
                if not handlers and channel in self._handlers:
                    del self._handlers[channel]
                    if self._pubsub is not None:
                        self._pubsub.unsubscribe(channel)

        return unsubscribe

    def _dispatch(self, message: dict) -> None:
        channel = message["channel"]
        if isinstance(channel, bytes):
            channel = channel.decode("utf-8")
        with self._lock:
            handlers = list(self._handlers.get(channel, ()))
        topic = channel[len(self.channel_prefix):]
        _deliver(handlers, topic, json.loads(message["data"]))

    def close(self) -> None:
        if self._thread is not None:
            self._thread.stop()
            self._thread = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None
