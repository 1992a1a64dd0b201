# idp/adapters/outbound/messaging/redis_event_publisher.py

import json
import logging
from datetime import datetime
from typing import Any, Dict
from uuid import UUID

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from idp.application.ports.outbound import IEventPublisher
from idp.domain.exceptions import InternalFailureException

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_event(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, default=_json_default)


class RedisEventPublisher(IEventPublisher):
    """Publishes domain events as JSON on Redis pub/sub channels named after the topic."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str, *, socket_timeout: float = 5.0):
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    async def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        try:
            message = encode_event(payload)
        except TypeError as e:
            raise InternalFailureException(detail=f"Event for topic '{topic}' is not serializable", original_error=e)

        try:
            receivers = await self.client.publish(topic, message)
        except RedisError as e:
            logger.error(f"Event bus: publish to '{topic}' failed: {e}")
            raise InternalFailureException(detail="Failed to publish event", original_error=e)

        logger.debug(f"Event bus: published to '{topic}' ({receivers} subscriber(s))")

    async def close(self) -> None:
        await self.client.aclose()
