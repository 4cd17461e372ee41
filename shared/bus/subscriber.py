"""Event subscriber for the message bus.

Wraps Redis pub/sub for subscribing to topics. Messages are delivered on
a background worker thread owned by the Redis client. Falls back gracefully
if Redis is unavailable.

Usage:
    from shared.bus import SyncEventSubscriber

    sub = SyncEventSubscriber()
    sub.connect()
    sub.subscribe("reachability_map", my_handler)
    sub.listen()  # returns immediately, delivery runs in a thread
    ...
    sub.close()
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Optional

from shared.config.service_registry import ServiceConfig

logger = logging.getLogger(__name__)

# Handlers run on the delivery thread and must return quickly
MessageHandler = Callable[[str, dict], None]


class SyncEventSubscriber:
    """Subscribes to events on the Redis message bus.

    Handlers are called as ``handler(topic, data_dict)`` from the Redis
    worker thread started by :meth:`listen`.
    """

    POLL_INTERVAL_S = 0.05

    def __init__(self, redis_url: Optional[str] = None, client: Any = None):
        self._redis_url = redis_url or ServiceConfig.REDIS_URL
        self._redis = client
        self._pubsub = None
        self._connected = False
        self._handlers: dict[str, list[MessageHandler]] = {}
        self._handlers_lock = threading.Lock()
        self._worker = None

    def connect(self) -> bool:
        """Connect to Redis. Returns True if successful."""
        try:
            if self._redis is None:
                import redis
                self._redis = redis.from_url(
                    self._redis_url,
                    decode_responses=True,
                    socket_connect_timeout=2.0,
                )
            self._redis.ping()
            self._pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
            self._connected = True
            logger.info("SyncEventSubscriber connected to Redis at %s", self._redis_url)
            return True
        except ImportError:
            logger.warning("redis package not installed — message bus disabled")
            return False
        except Exception as e:
            logger.warning("Failed to connect to Redis: %s — message bus disabled", e)
            self._connected = False
            return False

    def subscribe(self, topic: str, handler: MessageHandler) -> bool:
        """Subscribe to a topic with a handler.

        Args:
            topic: Exact topic name (e.g., 'reachability_map')
            handler: Function(topic, data_dict) called on each message

        Returns:
            True if subscribed successfully.
        """
        if not self._connected or self._pubsub is None:
            return False

        with self._handlers_lock:
            if topic not in self._handlers:
                try:
                    self._pubsub.subscribe(**{topic: self._dispatch})
                except Exception as e:
                    logger.warning("Failed to subscribe to %s: %s", topic, e)
                    return False
                self._handlers[topic] = []
            self._handlers[topic].append(handler)
        return True

    def unsubscribe(self, topic: str) -> None:
        """Stop receiving a topic. Safe to call from inside a handler."""
        with self._handlers_lock:
            if self._handlers.pop(topic, None) is None:
                return
        if self._pubsub is not None:
            try:
                self._pubsub.unsubscribe(topic)
                logger.info("Unsubscribed from %s", topic)
            except Exception as e:
                logger.warning("Failed to unsubscribe from %s: %s", topic, e)

    def listen(self) -> None:
        """Start delivering messages on a background thread."""
        if not self._connected or self._pubsub is None or self._worker is not None:
            return
        self._worker = self._pubsub.run_in_thread(
            sleep_time=self.POLL_INTERVAL_S, daemon=True
        )

    def _dispatch(self, message: dict) -> None:
        topic = message.get("channel", "")
        if isinstance(topic, bytes):
            topic = topic.decode("utf-8")
        try:
            data = json.loads(message["data"])
        except (json.JSONDecodeError, TypeError):
            data = {"raw": message["data"]}

        with self._handlers_lock:
            handlers = list(self._handlers.get(topic, ()))
        for handler in handlers:
            try:
                handler(topic, data)
            except Exception as e:
                logger.error("Handler error for %s: %s", topic, e)

    def close(self):
        """Stop delivery and close the subscription and Redis connection."""
        if self._worker is not None:
            self._worker.stop()
            self._worker.join(timeout=2.0)
            self._worker = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None
        if self._redis is not None:
            self._redis.close()
            self._redis = None
        with self._handlers_lock:
            self._handlers.clear()
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected
