"""Discord HTTP API session for hookwire.

DiscordSession is the capability handlers and the router use to talk
back to the platform: interaction callbacks, edits of the original
(deferred) response, follow-up messages, and the bulk command
overwrite used by the Migrator.

A session either carries a bot token (shared, long-lived) or is
scoped to one interaction (no bot token; interaction routes are
authorised by the interaction token in the URL). One
aiohttp.ClientSession is created lazily per DiscordSession and is
safe to share between concurrent dispatches on the same event loop.
Nothing here retries.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

import aiohttp

from .exceptions import DiscordAPIError, HookwireError
from .interactions.types import (
    ApplicationCommand,
    Interaction,
    InteractionResponse,
    InteractionResponseData,
)
from .logging_config import discard_logger

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"
USER_AGENT = "DiscordBot (https://github.com/hookwire/hookwire, 0.3.0)"

MessageData = Union[InteractionResponseData, Dict[str, Any]]


def _message_payload(data: MessageData) -> Dict[str, Any]:
    if isinstance(data, InteractionResponseData):
        return data.model_dump(mode="json", exclude_none=True)
    return dict(data)


class DiscordSession:
    """REST client for the Discord HTTP API.

    Args:
        token: Bot token, without the ``Bot `` prefix. Optional for
            sessions that only answer interactions.
        api_base_url: API root including version.
        timeout: Total timeout in seconds per request.
        interaction_id: Set on per-interaction sessions, for logging.
        logger: structlog logger. Defaults to a discard logger.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10.0,
        interaction_id: Optional[str] = None,
        logger=None,
    ):
        self.token = token
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.interaction_id = interaction_id
        self._session: Optional[aiohttp.ClientSession] = None
        self.log = logger or discard_logger()

    @classmethod
    def for_interaction(cls, interaction: Interaction, **kwargs) -> "DiscordSession":
        """Build a session scoped to a single interaction."""
        return cls(token=None, interaction_id=interaction.id, **kwargs)

    @property
    def is_interaction_scoped(self) -> bool:
        return self.token is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the underlying aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self):
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "DiscordSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _build_headers(self, authenticated: bool) -> dict:
        headers = {"User-Agent": USER_AGENT}
        if authenticated:
            if not self.token:
                raise HookwireError(
                    "bot token required for this request", module="session"
                )
            headers["Authorization"] = f"Bot {self.token}"
        return headers

    async def request(
        self,
        method: str,
        route: str,
        payload: Optional[Any] = None,
        authenticated: bool = True,
    ) -> Any:
        """Perform one API request and return the decoded JSON body.

        Returns None for empty (204) responses.

        Raises:
            DiscordAPIError: On any non-2xx status.
            aiohttp.ClientError / asyncio.TimeoutError: On transport failure.
        """
        url = f"{self.api_base_url}{route}"
        headers = self._build_headers(authenticated)
        session = await self._get_session()
        async with session.request(method, url, json=payload, headers=headers) as resp:
            if 200 <= resp.status < 300:
                if resp.status == 204 or resp.content_length == 0:
                    return None
                return await resp.json(content_type=None)

            body = await resp.text()
            code = None
            message = body[:200]
            try:
                error = await resp.json(content_type=None)
            except ValueError:
                error = None
            if isinstance(error, dict):
                code = error.get("code")
                message = error.get("message", message)
            self.log.warning(
                "discord_api_error",
                method=method,
                route=route,
                status=resp.status,
                code=code,
                body=body[:200],
            )
            raise DiscordAPIError(
                f"{method} {route} failed: {message}",
                status=resp.status,
                code=code,
            )

    # ------------------------------------------------------------------
    # Interaction responses
    # ------------------------------------------------------------------

    async def interaction_respond(
        self, interaction: Interaction, response: InteractionResponse
    ) -> None:
        """Send the initial callback for an interaction."""
        await self.request(
            "POST",
            f"/interactions/{interaction.id}/{interaction.token}/callback",
            payload=response.to_payload(),
            authenticated=False,
        )
        self.log.debug(
            "interaction_responded",
            interaction_id=interaction.id,
            response_type=response.type,
        )

    async def edit_original_response(
        self, interaction: Interaction, data: MessageData
    ) -> Optional[dict]:
        """Edit the initial (possibly deferred) response message."""
        return await self.request(
            "PATCH",
            f"/webhooks/{interaction.application_id}/{interaction.token}/messages/@original",
            payload=_message_payload(data),
            authenticated=False,
        )

    async def delete_original_response(self, interaction: Interaction) -> None:
        await self.request(
            "DELETE",
            f"/webhooks/{interaction.application_id}/{interaction.token}/messages/@original",
            authenticated=False,
        )

    async def followup_message(
        self, interaction: Interaction, data: MessageData
    ) -> Optional[dict]:
        """Send an additional message after the initial response."""
        return await self.request(
            "POST",
            f"/webhooks/{interaction.application_id}/{interaction.token}",
            payload=_message_payload(data),
            authenticated=False,
        )

    # ------------------------------------------------------------------
    # Application commands
    # ------------------------------------------------------------------

    @staticmethod
    def _commands_route(application_id: str, guild_id: str) -> str:
        if guild_id:
            return f"/applications/{application_id}/guilds/{guild_id}/commands"
        return f"/applications/{application_id}/commands"

    async def bulk_overwrite_commands(
        self,
        application_id: str,
        guild_id: str,
        commands: Sequence[ApplicationCommand],
    ) -> List[ApplicationCommand]:
        """Replace every command in scope with ``commands`` in one call."""
        data = await self.request(
            "PUT",
            self._commands_route(application_id, guild_id),
            payload=[c.to_payload() for c in commands],
        )
        return [ApplicationCommand.model_validate(c) for c in data or []]

    async def get_commands(
        self, application_id: str, guild_id: str = ""
    ) -> List[ApplicationCommand]:
        data = await self.request("GET", self._commands_route(application_id, guild_id))
        return [ApplicationCommand.model_validate(c) for c in data or []]
