"""Message bus client library for inter-service communication."""

from shared.bus.publisher import SyncEventPublisher
from shared.bus.subscriber import SyncEventSubscriber
from shared.bus.topics import Topics
