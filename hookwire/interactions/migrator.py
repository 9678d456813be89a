"""Application command migration for hookwire.

Makes the platform's registered command set equal to the locally
declared set with a single bulk overwrite. No diff is computed: the
remote set is always replaced as a whole, so running a migration twice
with the same declarations leaves the same remote state.
"""

from __future__ import annotations

from typing import Iterable, List, Protocol, Sequence, runtime_checkable

from ..logging_config import discard_logger
from .types import ApplicationCommand


@runtime_checkable
class CommandUpdater(Protocol):
    """Anything that can replace an application's command set remotely.

    DiscordSession implements this; tests substitute an in-memory store.
    """

    async def bulk_overwrite_commands(
        self,
        application_id: str,
        guild_id: str,
        commands: Sequence[ApplicationCommand],
    ) -> List[ApplicationCommand]:
        """Replace all commands in scope. Empty guild_id means global."""
        ...


class Migrator:
    """Migrates application commands for one application.

    A guild ID scopes the overwrite to that guild instead of the
    global command set, which is how new commands are staged in a
    test guild before going global.

    Args:
        updater: CommandUpdater (normally the bot's DiscordSession).
        application_id: Discord application ID.
        guild_id: Guild scope, or "" for global commands.
        logger: structlog logger. Defaults to a discard logger.
    """

    def __init__(
        self,
        updater: CommandUpdater,
        application_id: str,
        guild_id: str = "",
        logger=None,
    ):
        self._updater = updater
        self.application_id = application_id
        self._guild_id = guild_id
        self._commands: List[ApplicationCommand] = []
        self.log = logger or discard_logger()

    @property
    def guild_id(self) -> str:
        return self._guild_id

    @property
    def commands(self) -> List[ApplicationCommand]:
        """Declared commands, in declaration order (copy)."""
        return list(self._commands)

    def with_command(self, command: ApplicationCommand) -> "Migrator":
        """Declare a command to be created by migrate()."""
        self._commands.append(command)
        return self

    def with_commands(self, commands: Iterable[ApplicationCommand]) -> "Migrator":
        self._commands.extend(commands)
        return self

    async def migrate(self) -> List[ApplicationCommand]:
        """Overwrite the remote command set with the declared commands.

        Returns:
            The command set as stored by the platform.

        Raises:
            Whatever the updater raises, unmodified. No retries.
        """
        scope = self._guild_id or "global"
        self.log.info(
            "command_migration_started",
            application_id=self.application_id,
            scope=scope,
            commands=[c.name for c in self._commands],
        )
        try:
            result = await self._updater.bulk_overwrite_commands(
                self.application_id, self._guild_id, list(self._commands)
            )
        except Exception as e:
            self.log.error(
                "command_migration_failed",
                application_id=self.application_id,
                scope=scope,
                error=str(e),
            )
            raise
        self.log.info(
            "command_migration_complete",
            application_id=self.application_id,
            scope=scope,
            count=len(result),
        )
        return result
