"""Pydantic models for Discord interactions and application commands.

Covers the subset of the Discord interaction payload that hookwire
routes on, while preserving every unknown field so handlers can read
the rest of the payload without a model change.

Enums:
    InteractionType, ApplicationCommandType, ApplicationCommandOptionType,
    InteractionResponseType, MessageFlags

Inbound models:
    Interaction, ApplicationCommandInteractionData,
    ApplicationCommandInteractionDataOption

Outbound models:
    InteractionResponse, InteractionResponseData, ApplicationCommand,
    ApplicationCommandOption, ApplicationCommandOptionChoice
"""

from enum import IntEnum, IntFlag
from typing import Any, Dict, List, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class InteractionType(IntEnum):
    """Kind of inbound interaction."""
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    APPLICATION_COMMAND_AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


class ApplicationCommandType(IntEnum):
    """Kind of application command: slash, user context, message context."""
    CHAT_INPUT = 1
    USER = 2
    MESSAGE = 3


class ApplicationCommandOptionType(IntEnum):
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11


class InteractionResponseType(IntEnum):
    """Callback type sent back for an interaction."""
    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5
    DEFERRED_UPDATE_MESSAGE = 6
    UPDATE_MESSAGE = 7
    APPLICATION_COMMAND_AUTOCOMPLETE_RESULT = 8
    MODAL = 9


class MessageFlags(IntFlag):
    SUPPRESS_EMBEDS = 1 << 2
    EPHEMERAL = 1 << 6
    SUPPRESS_NOTIFICATIONS = 1 << 12


class CommandKey(NamedTuple):
    """Registry key: a command is identified by name and type together.

    A chat command and a user context command may share a name.
    """
    name: str
    command_type: int


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------

class ApplicationCommandInteractionDataOption(BaseModel):
    """An argument supplied with a command invocation."""

    model_config = ConfigDict(extra="allow")

    name: str
    type: int
    value: Optional[Union[str, int, float, bool]] = None
    options: Optional[List["ApplicationCommandInteractionDataOption"]] = None
    focused: Optional[bool] = None


class ApplicationCommandInteractionData(BaseModel):
    """The ``data`` object of an APPLICATION_COMMAND interaction."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    name: str
    type: int = ApplicationCommandType.CHAT_INPUT
    options: List[ApplicationCommandInteractionDataOption] = Field(default_factory=list)
    resolved: Optional[Dict[str, Any]] = None
    guild_id: Optional[str] = None
    target_id: Optional[str] = None

    @property
    def key(self) -> CommandKey:
        return CommandKey(self.name, self.type)

    def option(self, name: str, default: Any = None) -> Any:
        """Return the value of a top-level option, or ``default``."""
        for opt in self.options:
            if opt.name == name:
                return opt.value
        return default


class Interaction(BaseModel):
    """An inbound interaction event.

    ``type`` is kept as a plain int so that interaction kinds added by
    the platform later still decode; compare it against InteractionType.
    ``data`` stays raw until a typed accessor decodes it.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    application_id: str = ""
    type: int
    token: str = ""
    version: int = 1
    data: Optional[Dict[str, Any]] = None
    guild_id: Optional[str] = None
    channel_id: Optional[str] = None
    member: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None
    locale: Optional[str] = None
    guild_locale: Optional[str] = None

    def application_command_data(self) -> ApplicationCommandInteractionData:
        """Decode ``data`` as application command data.

        Raises:
            ValueError: If this is not an application command
                (or autocomplete) interaction.
        """
        if self.type not in (
            InteractionType.APPLICATION_COMMAND,
            InteractionType.APPLICATION_COMMAND_AUTOCOMPLETE,
        ):
            raise ValueError(f"interaction type {self.type} has no application command data")
        return ApplicationCommandInteractionData.model_validate(self.data or {})

    @property
    def invoker_id(self) -> Optional[str]:
        """ID of the invoking user, in a guild (member) or DM (user)."""
        source = self.user or (self.member or {}).get("user") or {}
        return source.get("id")


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------

class InteractionResponseData(BaseModel):
    """Message payload for an interaction callback or follow-up."""

    model_config = ConfigDict(extra="allow")

    content: Optional[str] = None
    flags: Optional[int] = None
    tts: Optional[bool] = None
    embeds: Optional[List[Dict[str, Any]]] = None
    components: Optional[List[Dict[str, Any]]] = None
    allowed_mentions: Optional[Dict[str, Any]] = None


class InteractionResponse(BaseModel):
    """Callback body. ``None`` in place of a response means the reply,
    if any, is delivered out-of-band through the session."""

    type: int
    data: Optional[InteractionResponseData] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def pong(cls) -> "InteractionResponse":
        return cls(type=InteractionResponseType.PONG)

    @classmethod
    def deferred(cls, ephemeral: bool = True) -> "InteractionResponse":
        flags = int(MessageFlags.EPHEMERAL) if ephemeral else None
        return cls(
            type=InteractionResponseType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE,
            data=InteractionResponseData(flags=flags),
        )

    @classmethod
    def message(cls, content: str, ephemeral: bool = False) -> "InteractionResponse":
        flags = int(MessageFlags.EPHEMERAL) if ephemeral else None
        return cls(
            type=InteractionResponseType.CHANNEL_MESSAGE_WITH_SOURCE,
            data=InteractionResponseData(content=content, flags=flags),
        )


class ApplicationCommandOptionChoice(BaseModel):
    name: str
    value: Union[str, int, float]
    name_localizations: Optional[Dict[str, str]] = None


class ApplicationCommandOption(BaseModel):
    """Argument schema for a declared command."""

    model_config = ConfigDict(extra="allow")

    type: int
    name: str
    description: str
    required: Optional[bool] = None
    choices: Optional[List[ApplicationCommandOptionChoice]] = None
    options: Optional[List["ApplicationCommandOption"]] = None
    channel_types: Optional[List[int]] = None
    min_value: Optional[Union[int, float]] = None
    max_value: Optional[Union[int, float]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    autocomplete: Optional[bool] = None
    name_localizations: Optional[Dict[str, str]] = None
    description_localizations: Optional[Dict[str, str]] = None


class ApplicationCommand(BaseModel):
    """A command definition: the desired remote state for one command.

    ``id``, ``application_id``, ``guild_id`` and ``version`` are only
    set on definitions returned by the platform.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    type: int = ApplicationCommandType.CHAT_INPUT
    description: str = ""
    options: Optional[List[ApplicationCommandOption]] = None
    default_member_permissions: Optional[str] = None
    dm_permission: Optional[bool] = None
    nsfw: Optional[bool] = None
    name_localizations: Optional[Dict[str, str]] = None
    description_localizations: Optional[Dict[str, str]] = None
    id: Optional[str] = None
    application_id: Optional[str] = None
    guild_id: Optional[str] = None
    version: Optional[str] = None

    @property
    def key(self) -> CommandKey:
        return CommandKey(self.name, self.type)

    def to_payload(self) -> Dict[str, Any]:
        """Body for a create/overwrite call: server-assigned fields dropped."""
        return self.model_dump(
            mode="json",
            exclude_none=True,
            exclude={"id", "application_id", "guild_id", "version"},
        )


ApplicationCommandInteractionDataOption.model_rebuild()
ApplicationCommandOption.model_rebuild()
