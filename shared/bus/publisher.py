"""Event publisher for the message bus.

Wraps Redis pub/sub for publishing events to topics. Falls back gracefully
if Redis is unavailable (logs warning, does not crash).

Usage:
    from shared.bus import SyncEventPublisher
    from shared.messages import WorkSpaceMessage

    pub = SyncEventPublisher()
    pub.connect()
    pub.publish("reachability_map.filtered", WorkSpaceMessage(...))
    pub.close()
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel

from shared.config.service_registry import ServiceConfig

logger = logging.getLogger(__name__)


class SyncEventPublisher:
    """Publishes events to the Redis message bus from plain threads.

    The filter loop runs in its own thread, so publishing is synchronous.
    A pre-built client can be passed in (tests, shared connections).
    """

    def __init__(self, redis_url: Optional[str] = None, client: Any = None):
        self._redis_url = redis_url or ServiceConfig.REDIS_URL
        self._redis = client
        self._connected = client is not None

    def connect(self) -> bool:
        """Connect to Redis. Returns True if successful."""
        if self._connected:
            return True
        try:
            import redis
            self._redis = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=2.0,
            )
            self._redis.ping()
            self._connected = True
            logger.info("SyncEventPublisher connected to Redis at %s", self._redis_url)
            return True
        except ImportError:
            logger.warning("redis package not installed — message bus disabled")
            return False
        except Exception as e:
            logger.warning("Failed to connect to Redis: %s — message bus disabled", e)
            self._redis = None
            self._connected = False
            return False

    def publish(self, topic: str, message: BaseModel | dict | str) -> bool:
        """Publish a message to a topic.

        Args:
            topic: Topic name (e.g., 'reachability_map.filtered')
            message: Pydantic model, dict, or JSON string

        Returns:
            True if published successfully, False otherwise.
        """
        if not self._connected or self._redis is None:
            return False

        try:
            if isinstance(message, BaseModel):
                payload = message.model_dump_json()
            elif isinstance(message, dict):
                payload = json.dumps(message)
            else:
                payload = str(message)

            self._redis.publish(topic, payload)
            return True
        except Exception as e:
            logger.warning("Failed to publish to %s: %s", topic, e)
            return False

    def close(self):
        """Close the Redis connection."""
        if self._redis:
            self._redis.close()
            self._redis = None
            self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected
