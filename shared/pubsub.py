import os
import redis
from .events import Event

OUTCOME_CHANNEL = "matchbridge:provisioning"
ANNOUNCEMENT_CHANNEL = "matchbridge:announcements"
OUTCOME_TTL_SECONDS = 3600


class PubSubClient:
    def __init__(self, redis_url: str = None, redis_client: redis.Redis = None):
        self.redis_url = redis_url or os.getenv('REDIS_URL', 'redis://localhost:6379')
        if redis_client is not None:
            self.redis = redis_client
        else:
            self.redis = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )

    def publish(self, channel: str, event: Event):
        self.redis.publish(channel, event.to_json())

    def publish_outcome(self, event: Event):
        self.publish(OUTCOME_CHANNEL, event)

    def publish_announcement(self, event: Event):
        self.publish(ANNOUNCEMENT_CHANNEL, event)

    def store_outcome(self, outcome_id: str, event: Event):
        """Keep the latest outcome readable for an hour under provisioning:<outcome_id>."""
        key = f"provisioning:{outcome_id}"
        outcome = event.data.get("outcome", {})
        self.redis.hset(key, mapping={
            "type": event.type.value,
            "kind": outcome.get("kind", ""),
            "timestamp": event.timestamp,
            "payload": event.to_json()
        })
        self.redis.expire(key, OUTCOME_TTL_SECONDS)
