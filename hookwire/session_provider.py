"""Session providers for the webhook endpoint.

A SessionProvider is an async zero-argument callable returning a
DiscordSession. The endpoint calls it per request when no shared
session is configured; wrap it with cached() so the token lookup and
session construction happen once per process.
"""

import asyncio
import os
from typing import Awaitable, Callable, Optional

from .exceptions import ConfigurationError
from .session import DiscordSession

SessionProvider = Callable[[], Awaitable[DiscordSession]]


def from_token(token: str, **session_kwargs) -> SessionProvider:
    """Provider building a bot-token session from a fixed token."""

    async def provide() -> DiscordSession:
        if not token:
            raise ConfigurationError("empty discord bot token", setting_name="bot_token")
        return DiscordSession(token=token, **session_kwargs)

    return provide


def from_env(var_name: str, **session_kwargs) -> SessionProvider:
    """Provider reading the bot token from an environment variable.

    The variable is read when the provider is called, not when it is
    created.
    """

    async def provide() -> DiscordSession:
        if not var_name:
            raise ConfigurationError(
                "empty discord token environment variable name",
                setting_name="bot_token",
            )
        token = os.environ.get(var_name, "")
        if not token:
            raise ConfigurationError(
                "environment variable empty", setting_name=var_name
            )
        return DiscordSession(token=token, **session_kwargs)

    return provide


def cached(provider: SessionProvider) -> SessionProvider:
    """Wrap a provider so it succeeds at most once.

    Concurrent first calls wait on the same invocation. A failed call
    is not cached; the next call tries again.
    """
    lock = asyncio.Lock()
    session: Optional[DiscordSession] = None

    async def provide() -> DiscordSession:
        nonlocal session
        if session is not None:
            return session
        async with lock:
            if session is None:
                session = await provider()
        return session

    return provide
