"""Interaction routing and command migration for hookwire.

Provides the Router (command registry + dispatch protocol), the
Migrator (bulk overwrite of the remote command set) and the pydantic
models both operate on.
"""

from .migrator import CommandUpdater, Migrator
from .router import (
    CommandHandler,
    CommandRegistry,
    DispatchOutcome,
    DispatchResult,
    InteractionContext,
    Router,
)
from .types import (
    ApplicationCommand,
    ApplicationCommandInteractionData,
    ApplicationCommandOption,
    ApplicationCommandOptionType,
    ApplicationCommandType,
    CommandKey,
    Interaction,
    InteractionResponse,
    InteractionResponseData,
    InteractionResponseType,
    InteractionType,
    MessageFlags,
)

__all__ = [
    "ApplicationCommand",
    "ApplicationCommandInteractionData",
    "ApplicationCommandOption",
    "ApplicationCommandOptionType",
    "ApplicationCommandType",
    "CommandHandler",
    "CommandKey",
    "CommandRegistry",
    "CommandUpdater",
    "DispatchOutcome",
    "DispatchResult",
    "Interaction",
    "InteractionContext",
    "InteractionResponse",
    "InteractionResponseData",
    "InteractionResponseType",
    "InteractionType",
    "MessageFlags",
    "Migrator",
    "Router",
]
