"""Webhook endpoint for hookwire.

Adapts one HTTP request/response cycle to the router's
request/response dispatch:

    body check -> signature verification -> decode -> session
    -> Router.handle_with_context -> 401 | 202 | 200 + JSON

Verification failures return 401 with an empty body; the reason is
only logged. A ``None`` response from the router becomes 202: the
reply (deferred ack, edits, follow-ups) travels through the session.
Malformed bodies raise InteractionDecodeError for the HTTP layer to
map to a server error.

Key classes:
    WebhookRequest / WebhookResponse: Transport-neutral request shape.
    Endpoint: The glue itself.

Key functions:
    create_app: aiohttp.web application serving an Endpoint.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Union

from aiohttp import web
from pydantic import ValidationError

from ..exceptions import InteractionDecodeError, VerificationError
from ..interactions.router import CommandHandler, InteractionContext, Router
from ..interactions.types import ApplicationCommandType, Interaction
from ..logging_config import discard_logger
from ..session import DiscordSession
from ..session_provider import SessionProvider, cached
from .verifier import SignatureVerifier


@dataclass
class WebhookRequest:
    headers: Mapping[str, str]
    body: Union[bytes, str]
    method: str = "POST"
    user_agent: str = ""


@dataclass
class WebhookResponse:
    status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)


class Endpoint:
    """Serves Discord interactions delivered over HTTP.

    Args:
        public_key: Application public key (hex or bytes). None or
            empty disables signature verification.
        router: Router to dispatch to. A new one is created by default.
        session_provider: Source of a shared bot session, used when
            no session was set with with_session(). It is called at
            most once successfully; close() closes what it returned.
        logger: structlog logger. Defaults to a discard logger.
    """

    def __init__(
        self,
        public_key: Optional[Union[str, bytes]] = None,
        router: Optional[Router] = None,
        session_provider: Optional[SessionProvider] = None,
        logger=None,
    ):
        self.log = logger or discard_logger()
        self.verifier = SignatureVerifier(public_key, logger=self.log)
        self.router = router or Router(logger=self.log)
        self.session_provider = cached(session_provider) if session_provider else None
        self.session: Optional[DiscordSession] = None
        self._provided: Optional[DiscordSession] = None

    def with_session(self, session: DiscordSession) -> "Endpoint":
        """Use one shared session instead of per-interaction sessions."""
        self.session = session
        return self

    def with_router(self, router: Router) -> "Endpoint":
        self.router = router
        return self

    def with_application_command(
        self, name: str, command_type: int, handler: CommandHandler
    ) -> "Endpoint":
        """Register an application command handler with the router."""
        self.router.register_command(name, command_type, handler)
        return self

    def with_chat_application_command(self, name: str, handler: CommandHandler) -> "Endpoint":
        return self.with_application_command(name, ApplicationCommandType.CHAT_INPUT, handler)

    def with_user_application_command(self, name: str, handler: CommandHandler) -> "Endpoint":
        return self.with_application_command(name, ApplicationCommandType.USER, handler)

    def with_message_application_command(self, name: str, handler: CommandHandler) -> "Endpoint":
        return self.with_application_command(name, ApplicationCommandType.MESSAGE, handler)

    async def close(self) -> None:
        """Close the session obtained from the session provider, if any.

        A session set with with_session() belongs to the caller and is
        left open.
        """
        if self._provided is not None:
            await self._provided.close()

    async def handle(
        self,
        request: Optional[WebhookRequest],
        ctx: Optional[InteractionContext] = None,
    ) -> WebhookResponse:
        """Handle one webhook delivery.

        Raises:
            ValueError: If request is None.
            InteractionDecodeError: If the body is empty or not a
                valid interaction.
        """
        if request is None:
            raise ValueError("received nil request")
        if not request.body:
            raise InteractionDecodeError("empty request body")

        self.log.info(
            "request_received",
            method=request.method,
            user_agent=request.user_agent,
        )

        try:
            self.verifier.verify(request.headers, request.body)
        except VerificationError as e:
            self.log.error("signature_verification_failed", reason=e.reason, error=str(e))
            return WebhookResponse(status=401)

        interaction = self._decode(request.body)

        response = await self._handle_interaction(interaction, ctx)
        if response is None:
            return WebhookResponse(status=202)

        return WebhookResponse(
            status=200,
            body=json.dumps(response.to_payload()).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

    def _decode(self, body: Union[bytes, str]) -> Interaction:
        try:
            return Interaction.model_validate_json(body)
        except ValidationError as e:
            raise InteractionDecodeError(
                f"invalid interaction payload: {e.error_count()} error(s)",
                errors=e.errors(include_url=False)[:3],
            ) from e

    async def _handle_interaction(
        self, interaction: Interaction, ctx: Optional[InteractionContext]
    ):
        self.log.info(
            "handling_interaction",
            type=interaction.type,
            interaction_id=interaction.id,
        )
        if ctx is None:
            ctx = InteractionContext(
                interaction_id=interaction.id,
                logger=self.log.bind(interaction_id=interaction.id),
            )

        session = self.session
        if session is None and self.session_provider is not None:
            session = self._provided = await self.session_provider()
        if session is not None:
            return await self.router.handle_with_context(ctx, session, interaction)

        # Scoped to this interaction only; closed once dispatch returns.
        async with DiscordSession.for_interaction(interaction) as scoped:
            return await self.router.handle_with_context(ctx, scoped, interaction)


def create_app(endpoint: Endpoint, path: str = "/interactions") -> web.Application:
    """Build an aiohttp application serving ``endpoint`` at ``POST path``.

    InteractionDecodeError is mapped to HTTP 500 with an empty body.
    The endpoint is closed on application cleanup.
    """

    async def interactions(request: web.Request) -> web.Response:
        body = await request.read()
        webhook_request = WebhookRequest(
            headers=request.headers,
            body=body,
            method=request.method,
            user_agent=request.headers.get("User-Agent", ""),
        )
        try:
            result = await endpoint.handle(webhook_request)
        except InteractionDecodeError as e:
            endpoint.log.error("interaction_decode_failed", error=str(e))
            return web.Response(status=500)
        return web.Response(status=result.status, body=result.body, headers=result.headers)

    async def close_endpoint(app: web.Application) -> None:
        await endpoint.close()

    app = web.Application()
    app.router.add_post(path, interactions)
    app.on_cleanup.append(close_endpoint)
    return app
