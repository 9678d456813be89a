"""Bot assembly for hookwire.

Builder collects the pieces a bot needs (session, router, migrator,
declared commands) and produces a Bot. Command declarations are the
single source for both sides: build() registers each handler with the
router under the definition's (name, type) and hands each definition
to the migrator.

Key classes:
    Builder: Fluent construction with defaults.
    Bot: Startup migration plus the two transport entry points.
"""

from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, Union

import aiohttp
from aiohttp import web

from .interactions.migrator import Migrator
from .interactions.router import CommandHandler, Router
from .interactions.types import ApplicationCommand, Interaction
from .logging_config import discard_logger
from .session import DiscordSession
from .webhook.endpoint import Endpoint, create_app

GatewayHandler = Callable[[DiscordSession, Interaction], Awaitable[None]]

# Maps a logger name such as "hookwire.migrator" to a structlog logger.
LoggerFactory = Callable[[str], Any]


class Bot:
    """A configured bot: session, router, and optional migrator.

    Migration runs in start(), before any transport is opened. Errors
    from it propagate; callers should abort startup on them.
    """

    def __init__(
        self,
        application_id: str,
        session: DiscordSession,
        router: Optional[Router] = None,
        migrator: Optional[Migrator] = None,
        logger=None,
        webhook_logger=None,
    ):
        self.application_id = application_id
        self.session = session
        self.router = router
        self.migrator = migrator
        self.log = logger or discard_logger()
        self.webhook_log = webhook_logger or discard_logger()
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        """Run startup command migration, if configured."""
        if self.migrator is None:
            self.log.debug("command_migration_skipped")
            return
        await self.migrator.migrate()

    @property
    def gateway_handler(self) -> GatewayHandler:
        """Callback for a gateway transport: ``async (session, interaction) -> None``."""
        if self.router is None:
            raise RuntimeError("Bot has no router: declare commands or use with_router()")
        return self.router.handle

    def endpoint(self, public_key: Optional[Union[str, bytes]] = None) -> Endpoint:
        """Webhook endpoint sharing this bot's router and session."""
        router = self.router or Router(logger=self.webhook_log)
        return Endpoint(
            public_key, router=router, logger=self.webhook_log
        ).with_session(self.session)

    async def serve(
        self,
        public_key: Optional[Union[str, bytes]],
        host: str = "0.0.0.0",
        port: int = 8080,
        path: str = "/interactions",
    ) -> None:
        """Start serving the webhook endpoint. Returns once listening."""
        app = create_app(self.endpoint(public_key), path=path)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        self.log.info("webhook_listening", host=host, port=port, path=path)

    async def close(self) -> None:
        """Stop the webhook server (if running) and close the session."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        try:
            await self.session.close()
        except aiohttp.ClientError as e:
            self.log.warning("session_close_error", error=str(e))
        self.log.info("bot_stopped")


class Builder:
    """Builds a Bot.

    To enable command migration either pass a Migrator with
    with_migrator(), or call with_migration_enabled(True) and one is
    created from the builder's application ID, session and guild ID.

    Args:
        application_id: Discord application ID.
        session: Bot-token session used for migration and shared
            by the webhook endpoint.
    """

    def __init__(self, application_id: str, session: DiscordSession):
        self._application_id = application_id
        self._session = session
        self._logger_factory: LoggerFactory = lambda name: discard_logger()
        self._router: Optional[Router] = None
        self._migrator: Optional[Migrator] = None
        self._guild_id = ""
        self._migration_enabled = False
        self._deferred_response = False
        self._ephemeral = True
        self._commands: List[Tuple[ApplicationCommand, CommandHandler]] = []

    def with_logger(self, logger) -> "Builder":
        """Use one logger for every component."""
        self._logger_factory = lambda name: logger
        return self

    def with_logger_factory(self, factory: LoggerFactory) -> "Builder":
        """Build each component's logger from its subsystem name.

        The factory is called with ``hookwire.bot``, ``hookwire.router``,
        ``hookwire.migrator`` and ``hookwire.webhook``; pass
        ``structlog.get_logger`` to get one log file per subsystem.
        """
        self._logger_factory = factory
        return self

    def with_router(self, router: Router) -> "Builder":
        self._router = router
        return self

    def with_migrator(self, migrator: Migrator) -> "Builder":
        self._migrator = migrator
        return self

    def with_guild_id(self, guild_id: str) -> "Builder":
        """Scope the default migrator to a guild (staging) instead of global."""
        self._guild_id = guild_id
        return self

    def with_migration_enabled(self, enabled: bool) -> "Builder":
        self._migration_enabled = enabled
        return self

    def with_deferred_response(self, enabled: bool) -> "Builder":
        """Deferred acknowledgment for the default router."""
        self._deferred_response = enabled
        return self

    def with_ephemeral_deferral(self, enabled: bool) -> "Builder":
        self._ephemeral = enabled
        return self

    def with_application_command(
        self, command: ApplicationCommand, handler: CommandHandler
    ) -> "Builder":
        self._commands.append((command, handler))
        return self

    def with_application_commands(
        self, commands: Iterable[Tuple[ApplicationCommand, CommandHandler]]
    ) -> "Builder":
        for command, handler in commands:
            self.with_application_command(command, handler)
        return self

    def build(self) -> Bot:
        router = self._router
        migrator = self._migrator

        if self._commands:
            if router is None:
                router = Router(
                    logger=self._logger_factory("hookwire.router"),
                    deferred_response=self._deferred_response,
                    ephemeral=self._ephemeral,
                )

            if migrator is None and self._migration_enabled:
                migrator = Migrator(
                    self._session,
                    self._application_id,
                    guild_id=self._guild_id,
                    logger=self._logger_factory("hookwire.migrator"),
                )

            for command, handler in self._commands:
                router.register_command(command.name, command.type, handler)
                if migrator is not None:
                    migrator.with_command(command)

        return Bot(
            self._application_id,
            self._session,
            router=router,
            migrator=migrator,
            logger=self._logger_factory("hookwire.bot"),
            webhook_logger=self._logger_factory("hookwire.webhook"),
        )
