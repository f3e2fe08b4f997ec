"""
Unit tests for the Redis session store

The Redis client is replaced by an AsyncMock; these tests check the calls
made against it and how backend failures are classified.
"""

import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from redis_session.core.config import StoreOptions
from redis_session.core.errors import StoreUnavailable, StoreWriteFailure
from redis_session.core.logging_config import SessionLogFormatter
from redis_session.core.utils.session_store import RedisSessionStore, SessionStore

pytestmark = pytest.mark.unit


@pytest.fixture
def redis_client():
    """Mock async Redis client"""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock(return_value=None)
    return client


class TestRedisSessionStore:
    """Test store reads and writes"""

    def test_implements_store_contract(self, redis_client):
        assert isinstance(RedisSessionStore(redis_client), SessionStore)

    async def test_load_hit(self, redis_client):
        redis_client.get.return_value = "e30="
        store = RedisSessionStore(redis_client)

        assert await store.load("sid") == "e30="
        redis_client.get.assert_awaited_once_with("sid")

    async def test_load_bytes(self, redis_client):
        redis_client.get.return_value = b"e30="

        assert await RedisSessionStore(redis_client).load("sid") == "e30="

    async def test_load_miss(self, redis_client):
        assert await RedisSessionStore(redis_client).load("sid") is None

    @pytest.mark.parametrize("error", [
        RedisConnectionError("connection refused"),
        RedisTimeoutError("timed out"),
        OSError("network unreachable"),
    ])
    async def test_load_backend_error(self, redis_client, error):
        """Test read failures are reported as StoreUnavailable"""
        redis_client.get.side_effect = error

        with pytest.raises(StoreUnavailable):
            await RedisSessionStore(redis_client).load("sid")

    async def test_save_without_ttl(self, redis_client):
        await RedisSessionStore(redis_client).save("sid", "e30=")

        redis_client.set.assert_awaited_once_with("sid", "e30=")

    async def test_save_with_ttl(self, redis_client):
        await RedisSessionStore(redis_client, ttl=3600).save("sid", "e30=")

        redis_client.set.assert_awaited_once_with("sid", "e30=", ex=3600)

    async def test_save_backend_error(self, redis_client):
        """Test write failures surface as StoreWriteFailure"""
        redis_client.set.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(StoreWriteFailure) as exc_info:
            await RedisSessionStore(redis_client).save("sid-123456789", "e30=")

        assert exc_info.value.operation == "save"
        assert exc_info.value.session_id == "sid-123456789"
        assert "sid-12****" in str(exc_info.value)
        assert "sid-123456789" not in str(exc_info.value)
        assert isinstance(exc_info.value.cause, RedisConnectionError)

    async def test_delete(self, redis_client):
        await RedisSessionStore(redis_client).delete("sid")

        redis_client.delete.assert_awaited_once_with("sid")

    async def test_delete_backend_error(self, redis_client):
        redis_client.delete.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(StoreWriteFailure) as exc_info:
            await RedisSessionStore(redis_client).delete("sid")

        assert exc_info.value.operation == "delete"

    async def test_unexpected_errors_propagate(self, redis_client):
        """Test programming errors are not reclassified as store failures"""
        redis_client.set.side_effect = TypeError("bad argument")

        with pytest.raises(TypeError):
            await RedisSessionStore(redis_client).save("sid", "e30=")


class TestStoreHealth:
    """Test store health reporting and lifecycle"""

    async def test_healthy(self, redis_client):
        health = await RedisSessionStore(redis_client).health()

        assert health == {"type": "redis", "healthy": True, "message": "Redis connection successful"}

    async def test_unhealthy(self, redis_client):
        redis_client.ping.side_effect = RedisConnectionError("connection refused")

        health = await RedisSessionStore(redis_client).health()

        assert health["healthy"] is False
        assert "connection refused" in health["message"]

    async def test_close(self, redis_client):
        await RedisSessionStore(redis_client).close()

        redis_client.aclose.assert_awaited_once()

    async def test_connection_ready_logged_once(self, redis_client, caplog):
        store = RedisSessionStore(redis_client, host="redis.internal", port=6379)

        with caplog.at_level(logging.DEBUG, logger="redis_session.core.utils.session_store"):
            await store.health()
            await store.health()

        ready = [r for r in caplog.records if "connection ready" in r.getMessage()]
        assert len(ready) == 1
        assert store.ready

    async def test_connection_loss_logged(self, redis_client, caplog):
        store = RedisSessionStore(redis_client, host="redis.internal", port=6379)
        await store.health()
        redis_client.ping.side_effect = RedisConnectionError("connection reset")

        with caplog.at_level(logging.WARNING):
            await store.health()

        assert "Redis connection lost at redis.internal:6379" in caplog.text
        assert not store.ready


class TestFromOptions:
    """Test building a store from configuration"""

    def test_client_built_from_options(self):
        options = StoreOptions(host="redis.internal", port=6380, db=2, ttl=60, options={"socket_timeout": 2})

        with patch("redis_session.core.utils.session_store.aioredis.Redis") as redis_cls:
            store = RedisSessionStore.from_options(options)

        redis_cls.assert_called_once_with(
            host="redis.internal",
            port=6380,
            db=2,
            decode_responses=True,
            socket_timeout=2,
        )
        assert store.client is redis_cls.return_value
        assert store.ttl == 60

    def test_passthrough_options_override_defaults(self):
        options = StoreOptions(options={"decode_responses": False})

        with patch("redis_session.core.utils.session_store.aioredis.Redis") as redis_cls:
            RedisSessionStore.from_options(options)

        assert redis_cls.call_args.kwargs["decode_responses"] is False


class TestStoreLogging:
    """Test store log records carry redacted session context"""

    async def test_save_log_carries_session_context(self, redis_client, caplog):
        with caplog.at_level(logging.DEBUG, logger="redis_session.core.utils.session_store"):
            await RedisSessionStore(redis_client).save("sid-abcdefghijklmnop", "e30=")

        record = next(r for r in caplog.records if r.getMessage().startswith("Session saved"))
        assert record.operation == "save"
        entry = json.loads(SessionLogFormatter().format(record))
        assert entry["session"] == {"session_id": "sid-ab****", "operation": "save"}
        assert "sid-abcdefghijklmnop" not in SessionLogFormatter().format(record)

    async def test_delete_failure_log_is_redacted(self, redis_client, caplog):
        redis_client.delete.side_effect = RedisConnectionError("connection refused")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(StoreWriteFailure):
                await RedisSessionStore(redis_client).delete("sid-abcdefghijklmnop")

        output = SessionLogFormatter().format(caplog.records[-1])
        assert json.loads(output)["session"]["operation"] == "delete"
        assert "sid-abcdefghijklmnop" not in output
