"""Built-in application commands shipped with the hookwire runner.

Each entry pairs the declared definition (migrated to Discord) with its
handler (registered with the router). Handlers answer through the
session: by editing the deferred response when the router already sent
one, or with a direct callback otherwise.
"""

import time
from typing import List, Tuple

from .interactions.router import CommandHandler, InteractionContext
from .interactions.types import (
    ApplicationCommand,
    ApplicationCommandInteractionData,
    ApplicationCommandOption,
    ApplicationCommandOptionType,
    ApplicationCommandType,
    Interaction,
    InteractionResponse,
    InteractionResponseData,
)
from .session import DiscordSession


async def reply(
    ctx: InteractionContext,
    session: DiscordSession,
    interaction: Interaction,
    content: str,
) -> None:
    """Send the final answer for an interaction."""
    if ctx.deferred:
        await session.edit_original_response(
            interaction, InteractionResponseData(content=content)
        )
    else:
        await session.interaction_respond(interaction, InteractionResponse.message(content))


async def handle_ping(
    ctx: InteractionContext,
    session: DiscordSession,
    interaction: Interaction,
    data: ApplicationCommandInteractionData,
) -> None:
    elapsed_ms = (time.monotonic() - ctx.received_at) * 1000
    await reply(ctx, session, interaction, f"Pong! ({elapsed_ms:.0f}ms)")


async def handle_echo(
    ctx: InteractionContext,
    session: DiscordSession,
    interaction: Interaction,
    data: ApplicationCommandInteractionData,
) -> None:
    text = data.option("text", "")
    if not text:
        raise ValueError("echo invoked without text")
    await reply(ctx, session, interaction, str(text)[:2000])


PING_COMMAND = ApplicationCommand(
    name="ping",
    type=ApplicationCommandType.CHAT_INPUT,
    description="Check that the bot is responding",
)

ECHO_COMMAND = ApplicationCommand(
    name="echo",
    type=ApplicationCommandType.CHAT_INPUT,
    description="Repeat a message back",
    options=[
        ApplicationCommandOption(
            type=ApplicationCommandOptionType.STRING,
            name="text",
            description="What to repeat",
            required=True,
            max_length=2000,
        ),
    ],
)


def builtin_commands() -> List[Tuple[ApplicationCommand, CommandHandler]]:
    return [
        (PING_COMMAND, handle_ping),
        (ECHO_COMMAND, handle_echo),
    ]
