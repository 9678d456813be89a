"""Tests for session providers."""

import asyncio
import os
from unittest.mock import AsyncMock, patch

import pytest

from hookwire.exceptions import ConfigurationError
from hookwire.session import DiscordSession
from hookwire.session_provider import cached, from_env, from_token


class TestFromToken:

    @pytest.mark.asyncio
    async def test_builds_bot_session(self):
        session = await from_token("abc", api_base_url="http://localhost")()

        assert session.token == "abc"
        assert session.api_base_url == "http://localhost"
        assert not session.is_interaction_scoped

    @pytest.mark.asyncio
    async def test_empty_token(self):
        with pytest.raises(ConfigurationError, match="empty discord bot token"):
            await from_token("")()


class TestFromEnv:

    @pytest.mark.asyncio
    async def test_reads_variable_at_call_time(self):
        provider = from_env("HOOKWIRE_TEST_TOKEN")
        with patch.dict(os.environ, {"HOOKWIRE_TEST_TOKEN": "late"}):
            session = await provider()

        assert session.token == "late"

    @pytest.mark.asyncio
    async def test_empty_variable_name(self):
        with pytest.raises(ConfigurationError, match="environment variable name"):
            await from_env("")()

    @pytest.mark.asyncio
    async def test_unset_variable(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError, match="environment variable empty") as exc_info:
                await from_env("HOOKWIRE_TEST_TOKEN")()

        assert exc_info.value.setting_name == "HOOKWIRE_TEST_TOKEN"


class TestCached:

    @pytest.mark.asyncio
    async def test_provider_called_once(self):
        session = DiscordSession(token="t")
        inner = AsyncMock(return_value=session)
        provider = cached(inner)

        assert await provider() is session
        assert await provider() is session
        inner.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_share_result(self):
        calls = []

        async def slow():
            calls.append(1)
            await asyncio.sleep(0.01)
            return DiscordSession(token="t")

        provider = cached(slow)
        first, second = await asyncio.gather(provider(), provider())

        assert first is second
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failure_not_cached(self):
        session = DiscordSession(token="t")
        inner = AsyncMock(side_effect=[ConfigurationError("not yet"), session])
        provider = cached(inner)

        with pytest.raises(ConfigurationError):
            await provider()
        assert await provider() is session
        assert inner.await_count == 2
