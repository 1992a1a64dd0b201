# idp/adapters/outbound/cache/redis_block_list.py

import logging
import math
from datetime import timedelta

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from idp.application.ports.outbound import ITokenBlockList
from idp.domain.exceptions import InternalFailureException

logger = logging.getLogger(__name__)


class RedisTokenBlockList(ITokenBlockList):
    """
    Token block list stored in Redis.

    Each revoked token id becomes a key whose TTL is the token's remaining
    lifetime, so entries disappear by themselves once the token could no
    longer be verified anyway.
    """

    def __init__(self, client: aioredis.Redis, key_prefix: str = "token_block_list:"):
        self.client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, key_prefix: str = "token_block_list:", *, socket_timeout: float = 5.0):
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, key_prefix=key_prefix)

    def _key(self, token_id: str) -> str:
        return f"{self.key_prefix}{token_id}"

    @staticmethod
    def _ttl_seconds(ttl: timedelta) -> int:
        # Redis rejects a zero expiry; round sub-second remainders up.
        return max(1, math.ceil(ttl.total_seconds()))

    async def add(self, token_id: str, ttl: timedelta) -> None:
        """
        Block a token id until its natural expiry.

        Args:
            token_id: access_uuid or refresh_uuid of the token
            ttl: Remaining lifetime of the token
        """
        if ttl.total_seconds() <= 0:
            logger.debug(f"Token {token_id} already expired, not added to block list")
            return
        try:
            await self.client.set(self._key(token_id), 1, ex=self._ttl_seconds(ttl))
        except RedisError as e:
            logger.error(f"Error adding token {token_id} to block list: {e}")
            raise InternalFailureException(detail="Error updating token block list", original_error=e)

    async def contains(self, token_id: str) -> bool:
        try:
            return bool(await self.client.exists(self._key(token_id)))
        except RedisError as e:
            logger.error(f"Error checking token {token_id} in block list: {e}")
            raise InternalFailureException(detail="Error checking token block list", original_error=e)

    async def close(self) -> None:
        await self.client.aclose()
