import logging

import redis

from shared.events import Event

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Fans committed changes out over Redis pub/sub.
    Publication is best-effort: the change is already durable.
    """

    def __init__(self, redis_client: redis.Redis = None):
        self.redis = redis_client

    @classmethod
    def from_url(cls, url: str) -> "EventPublisher":
        if not url:
            logger.info("EventPublisher running without Redis (events are dropped)")
            return cls()
        return cls(redis.from_url(url, decode_responses=True, socket_connect_timeout=2))

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    def publish(self, event: Event) -> bool:
        if not self.redis:
            logger.debug(f"Dropped {event.type.value} for tournament {event.tournament_id}")
            return False

        payload = event.to_json()
        try:
            for channel in event.channels:
                self.redis.publish(channel, payload)
        except redis.RedisError as e:
            logger.warning(f"Failed to publish {event.type.value} for tournament {event.tournament_id}: {e}")
            return False
        return True

    def ping(self) -> bool:
        if not self.redis:
            return False
        try:
            return bool(self.redis.ping())
        except redis.RedisError:
            return False
