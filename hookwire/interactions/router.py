"""Interaction routing for hookwire.

Dispatches decoded interactions to the command handler registered for
the invoked command's name and type. Both transports share one
dispatch protocol:

    gateway  -> Router.handle(session, interaction)        -> None
    webhook  -> Router.handle_with_context(ctx, s, i)      -> response | None

For application commands the optional deferred acknowledgment is sent
before the handler runs, so slow handlers do not miss the platform's
initial response deadline. Dispatch failures (ack send failure, no
handler, handler exception) are logged and never raised to the
transport.

Key classes:
    Router: Registry owner and dispatcher.
    CommandRegistry: (name, type) -> handler mapping.
    InteractionContext: Per-dispatch values passed to handlers.
    DispatchResult / DispatchOutcome: Structured result of one dispatch.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from ..logging_config import discard_logger
from .types import (
    ApplicationCommandInteractionData,
    ApplicationCommandType,
    CommandKey,
    Interaction,
    InteractionResponse,
    InteractionType,
)

if TYPE_CHECKING:
    from ..session import DiscordSession

# Handler signature: async (ctx, session, interaction, data) -> None
# A raised exception marks the dispatch as failed; the return value is ignored.
CommandHandler = Callable[
    ["InteractionContext", "DiscordSession", Interaction, ApplicationCommandInteractionData],
    Awaitable[Any],
]

UNEXPECTED_INTERACTION_CONTENT = "Unexpected interaction"


@dataclass
class InteractionContext:
    """Values carried from the transport down to a command handler.

    Cancellation is not carried here: it follows the asyncio task the
    dispatch runs in.

    Attributes:
        interaction_id: ID of the interaction being handled.
        logger: structlog logger bound with the interaction id.
        received_at: Monotonic timestamp taken when the event arrived.
        deferred: Set by the router once the deferred acknowledgment
            was sent; handlers then edit the original response rather
            than sending a callback.
        values: Free-form values supplied by the transport
            (e.g. request metadata in webhook mode).
    """

    interaction_id: str = ""
    logger: Any = field(default_factory=discard_logger, repr=False)
    received_at: float = field(default_factory=time.monotonic)
    deferred: bool = False
    values: Dict[str, Any] = field(default_factory=dict)


class DispatchOutcome(str, Enum):
    """Terminal state of one dispatch."""
    PONG = "pong"
    UNEXPECTED = "unexpected"
    HANDLED = "handled"
    HANDLER_FAILED = "handler_failed"
    HANDLER_NOT_FOUND = "handler_not_found"
    ACK_FAILED = "ack_failed"


@dataclass(frozen=True)
class DispatchResult:
    """Outcome plus the synchronous response, if the interaction has one."""

    outcome: DispatchOutcome
    response: Optional[InteractionResponse] = None


class CommandRegistry:
    """Maps CommandKey to handler callables.

    The last registration for a key wins. Overwrites are logged but
    not rejected.
    """

    def __init__(self, logger=None):
        self._handlers: Dict[CommandKey, CommandHandler] = {}
        self._log = logger or discard_logger()

    def register(self, key: CommandKey, handler: CommandHandler) -> None:
        if key in self._handlers:
            self._log.warning(
                "command_handler_overwritten",
                command=key.name,
                command_type=int(key.command_type),
            )
        self._handlers[key] = handler

    def get(self, key: CommandKey) -> Optional[CommandHandler]:
        """Look up a handler for a (name, type) pair."""
        return self._handlers.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    @property
    def keys(self) -> frozenset:
        """All registered command keys."""
        return frozenset(self._handlers.keys())


class Router:
    """Routes interactions to registered application command handlers.

    Registration is expected to finish before serving starts; the
    registry is read without locking during dispatch.

    Args:
        logger: structlog logger. Defaults to a discard logger.
        deferred_response: Send a deferred acknowledgment before
            running each command handler.
        ephemeral: Make the deferred acknowledgment (and so the
            handler's eventual edit of it) visible only to the invoker.
    """

    def __init__(
        self,
        logger=None,
        deferred_response: bool = False,
        ephemeral: bool = True,
    ):
        self.log = logger or discard_logger()
        self.deferred_response = deferred_response
        self.ephemeral = ephemeral
        self.registry = CommandRegistry(self.log)

    def register_command(
        self,
        name: str,
        command_type: int,
        handler: CommandHandler,
    ) -> None:
        """Register (or overwrite) the handler for ``(name, command_type)``."""
        self.registry.register(CommandKey(name, command_type), handler)

    def command(
        self,
        name: str,
        command_type: int = ApplicationCommandType.CHAT_INPUT,
    ) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator form of register_command."""
        def decorator(func: CommandHandler) -> CommandHandler:
            self.register_command(name, command_type, func)
            return func
        return decorator

    async def handle(self, session: "DiscordSession", interaction: Interaction) -> None:
        """Gateway entry point: dispatch and discard the response.

        Any reply reaches the platform through ``session``.
        """
        await self.handle_with_context(
            self._new_context(interaction), session, interaction
        )

    async def handle_with_context(
        self,
        ctx: Optional[InteractionContext],
        session: "DiscordSession",
        interaction: Interaction,
    ) -> Optional[InteractionResponse]:
        """Request/response entry point.

        Returns:
            PONG for pings, ``None`` for application commands (replies
            travel through the session), and an "Unexpected interaction"
            message for every other kind.
        """
        if ctx is None:
            ctx = self._new_context(interaction)
        result = await self.dispatch(ctx, session, interaction)
        return result.response

    async def dispatch(
        self,
        ctx: InteractionContext,
        session: "DiscordSession",
        interaction: Interaction,
    ) -> DispatchResult:
        """Run the dispatch protocol for one interaction."""
        # TODO: route MESSAGE_COMPONENT, autocomplete and MODAL_SUBMIT through
        # their own registries once handlers for them exist.
        if interaction.type == InteractionType.PING:
            return DispatchResult(DispatchOutcome.PONG, InteractionResponse.pong())

        if interaction.type == InteractionType.APPLICATION_COMMAND:
            outcome = await self._handle_application_command(ctx, session, interaction)
            return DispatchResult(outcome)

        self.log.error(
            "unexpected_interaction_type",
            type=interaction.type,
            interaction_id=interaction.id,
        )
        return DispatchResult(
            DispatchOutcome.UNEXPECTED,
            InteractionResponse.message(UNEXPECTED_INTERACTION_CONTENT),
        )

    async def _handle_application_command(
        self,
        ctx: InteractionContext,
        session: "DiscordSession",
        interaction: Interaction,
    ) -> DispatchOutcome:
        if self.deferred_response:
            try:
                await session.interaction_respond(
                    interaction, InteractionResponse.deferred(ephemeral=self.ephemeral)
                )
            except Exception as e:
                self.log.error(
                    "deferred_response_failed",
                    interaction_id=interaction.id,
                    error=str(e),
                    exc_type=type(e).__name__,
                )
                return DispatchOutcome.ACK_FAILED
            ctx.deferred = True

        try:
            data = interaction.application_command_data()
        except ValueError as e:
            # pydantic's ValidationError is a ValueError
            self.log.error(
                "invalid_command_data",
                interaction_id=interaction.id,
                error=str(e),
            )
            return DispatchOutcome.HANDLER_NOT_FOUND

        handler = self.registry.get(data.key)
        if handler is None:
            self.log.error(
                "handler_not_found",
                command=data.name,
                command_type=data.type,
                interaction_id=interaction.id,
            )
            return DispatchOutcome.HANDLER_NOT_FOUND

        self.log.debug(
            "command_routing",
            command=data.name,
            command_type=data.type,
            interaction_id=interaction.id,
        )
        try:
            await handler(ctx, session, interaction, data)
        except Exception as e:
            self.log.error(
                "command_handler_failed",
                command=data.name,
                interaction_id=interaction.id,
                error=str(e),
                exc_type=type(e).__name__,
            )
            return DispatchOutcome.HANDLER_FAILED

        return DispatchOutcome.HANDLED

    def _new_context(self, interaction: Interaction) -> InteractionContext:
        return InteractionContext(
            interaction_id=interaction.id,
            logger=self.log.bind(interaction_id=interaction.id),
        )
