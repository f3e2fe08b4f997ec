"""Server-side session storage on Redis.

Stores one base64-wrapped JSON record per session identifier. The client is
process-wide; ``redis.asyncio`` pools connections, so a single store instance
serves every in-flight request.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from redis_session.core.config import StoreOptions
from redis_session.core.errors import StoreUnavailable, StoreWriteFailure
from redis_session.core.security import mask_session_id

logger = logging.getLogger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    """Minimal contract the middleware needs from a key-value backend."""

    async def load(self, session_id: str) -> Optional[str]:
        ...

    async def save(self, session_id: str, record: str) -> None:
        ...

    async def delete(self, session_id: str) -> None:
        ...


class RedisSessionStore:
    """Session storage manager backed by Redis."""

    def __init__(self, client: Any, ttl: Optional[int] = None, host: str = "", port: int = 0):
        self.client = client
        self.ttl = ttl
        self.host = host
        self.port = port
        self.ready = False

    @classmethod
    def from_options(cls, options: StoreOptions) -> RedisSessionStore:
        """Build a store and its client from configured store options."""
        kwargs: Dict[str, Any] = {
            "host": options.host,
            "port": options.port,
            "db": options.db,
            "decode_responses": True,
        }
        kwargs.update(options.options)

        logger.debug("redis config host: %s", options.host)
        logger.debug("redis config port: %s", options.port)
        logger.debug("redis config options: %s", sorted(options.options))
        logger.debug("redis config db: %s", options.db)
        logger.debug("redis config ttl: %s", options.ttl)

        client = aioredis.Redis(**kwargs)
        logger.debug("Redis client created for %s:%s db %s", options.host, options.port, options.db)
        return cls(client, ttl=options.ttl, host=options.host, port=options.port)

    async def load(self, session_id: str) -> Optional[str]:
        """
        Fetch the record for a session identifier.

        Raises:
            StoreUnavailable: If Redis cannot be reached or errors
        """
        try:
            record = await self.client.get(session_id)
        except (RedisError, OSError) as e:
            logger.warning(
                f"Session load failed for {mask_session_id(session_id)}: {e}",
                extra={"session_id": session_id, "operation": "load"},
            )
            raise StoreUnavailable(f"Session store read failed: {e}") from e

        if record is None:
            logger.debug(
                f"No session record for {mask_session_id(session_id)}",
                extra={"session_id": session_id, "operation": "load"},
            )
            return None
        if isinstance(record, bytes):
            return record.decode("utf-8", errors="replace")
        return record

    async def save(self, session_id: str, record: str) -> None:
        """
        Store a record, applying the configured ttl when there is one.

        Raises:
            StoreWriteFailure: If the write fails
        """
        try:
            if self.ttl:
                await self.client.set(session_id, record, ex=self.ttl)
            else:
                await self.client.set(session_id, record)
        except (RedisError, OSError) as e:
            logger.error(
                f"Session save failed for {mask_session_id(session_id)}: {e}",
                extra={"session_id": session_id, "operation": "save"},
            )
            raise StoreWriteFailure("save", session_id, e) from e
        logger.debug(
            f"Session saved for {mask_session_id(session_id)}",
            extra={"session_id": session_id, "operation": "save"},
        )

    async def delete(self, session_id: str) -> None:
        """
        Remove the record for a session identifier.

        Raises:
            StoreWriteFailure: If the delete fails
        """
        try:
            await self.client.delete(session_id)
        except (RedisError, OSError) as e:
            logger.error(
                f"Session delete failed for {mask_session_id(session_id)}: {e}",
                extra={"session_id": session_id, "operation": "delete"},
            )
            raise StoreWriteFailure("delete", session_id, e) from e
        logger.info(
            f"Session cleared for {mask_session_id(session_id)}",
            extra={"session_id": session_id, "operation": "delete"},
        )

    async def health(self) -> Dict[str, Any]:
        """
        Check the health of the Redis backend.

        Returns dict with storage health status and details.
        """
        try:
            await self.client.ping()
            if not self.ready:
                logger.debug("Redis connection ready at %s:%s", self.host, self.port)
                self.ready = True
            return {
                "type": "redis",
                "healthy": True,
                "message": "Redis connection successful",
            }
        except (RedisError, OSError) as e:
            if self.ready:
                logger.warning("Redis connection lost at %s:%s", self.host, self.port)
                self.ready = False
            logger.warning("Redis health check failed: %s", str(e))
            return {
                "type": "redis",
                "healthy": False,
                "message": f"Redis connection failed: {str(e)}",
            }

    async def close(self) -> None:
        """Release the connection pool."""
        await self.client.aclose()
        self.ready = False
        logger.info("Session store closed Redis connection.")
