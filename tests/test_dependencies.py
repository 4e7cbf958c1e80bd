from unittest.mock import AsyncMock

import pytest

from edunity_intake import dependencies
from edunity_intake.core import cache as cache_module
from edunity_intake.core.cache import connect_redis


class TestRedisClientDependency:
    @pytest.mark.asyncio
    async def test_client_is_closed_after_request(self, monkeypatch, mock_redis):
        monkeypatch.setattr(dependencies, "connect_redis", AsyncMock(return_value=mock_redis))

        gen = dependencies.get_redis_client()
        client = await gen.__anext__()
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        assert client is mock_redis
        mock_redis.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unreachable_redis_yields_none(self, monkeypatch):
        monkeypatch.setattr(dependencies, "connect_redis", AsyncMock(return_value=None))

        gen = dependencies.get_redis_client()
        client = await gen.__anext__()
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        assert client is None


class TestConnectRedis:
    @pytest.mark.asyncio
    async def test_failed_ping_closes_client(self, monkeypatch, mock_redis):
        mock_redis.ping = AsyncMock(side_effect=ConnectionError("refused"))
        monkeypatch.setattr(
            cache_module.Redis, "from_url", lambda *args, **kwargs: mock_redis
        )

        assert await connect_redis("redis://nowhere:6379/0") is None
        mock_redis.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reachable_redis_is_returned(self, monkeypatch, mock_redis):
        monkeypatch.setattr(
            cache_module.Redis, "from_url", lambda *args, **kwargs: mock_redis
        )

        assert await connect_redis("redis://localhost:6379/0") is mock_redis
        mock_redis.aclose.assert_not_called()
