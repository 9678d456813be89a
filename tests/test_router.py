"""Tests for interaction routing."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from hookwire.interactions.router import (
    DispatchOutcome,
    InteractionContext,
    Router,
    UNEXPECTED_INTERACTION_CONTENT,
)
from hookwire.interactions.types import (
    ApplicationCommandType,
    CommandKey,
    Interaction,
    InteractionResponseType,
    InteractionType,
    MessageFlags,
)


def _command_interaction(name="foo", command_type=ApplicationCommandType.CHAT_INPUT, **data):
    return Interaction.model_validate({
        "id": "111",
        "application_id": "app",
        "type": InteractionType.APPLICATION_COMMAND,
        "token": "interaction-token",
        "data": {"id": "cmd1", "name": name, "type": int(command_type), **data},
    })


def _ping():
    return Interaction(id="222", application_id="app", type=InteractionType.PING, token="t")


def _session(events=None):
    session = MagicMock()
    if events is None:
        session.interaction_respond = AsyncMock()
    else:
        session.interaction_respond = AsyncMock(
            side_effect=lambda *a, **kw: events.append("ack")
        )
    return session


class TestRegistration:

    @pytest.mark.asyncio
    async def test_registered_command_invoked_once(self):
        router = Router()
        handler = AsyncMock()
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, handler)

        await router.handle(_session(), _command_interaction("foo"))

        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unregistered_name_invokes_nothing(self):
        router = Router()
        handler = AsyncMock()
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, handler)

        result = await router.dispatch(
            InteractionContext(), _session(), _command_interaction("bar")
        )

        assert result.outcome == DispatchOutcome.HANDLER_NOT_FOUND
        assert result.response is None
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_name_different_type_is_a_different_key(self):
        router = Router()
        chat = AsyncMock()
        user = AsyncMock()
        router.register_command("inspect", ApplicationCommandType.CHAT_INPUT, chat)
        router.register_command("inspect", ApplicationCommandType.USER, user)

        await router.handle(
            _session(),
            _command_interaction("inspect", ApplicationCommandType.USER, target_id="42"),
        )

        user.assert_awaited_once()
        chat.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_message_command_with_no_registration_invokes_nothing(self):
        router = Router()
        chat = AsyncMock()
        router.register_command("inspect", ApplicationCommandType.CHAT_INPUT, chat)

        await router.handle(
            _session(), _command_interaction("inspect", ApplicationCommandType.MESSAGE)
        )

        chat.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_last_registration_wins(self):
        router = Router()
        first = AsyncMock()
        second = AsyncMock()
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, first)
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, second)

        await router.handle(_session(), _command_interaction("foo"))

        first.assert_not_awaited()
        second.assert_awaited_once()
        assert len(router.registry) == 1

    def test_decorator_registers_handler(self):
        router = Router()

        @router.command("hello")
        async def hello(ctx, session, interaction, data):
            pass

        assert router.registry.get(CommandKey("hello", ApplicationCommandType.CHAT_INPUT)) is hello
        assert CommandKey("hello", ApplicationCommandType.USER) not in router.registry

    @pytest.mark.asyncio
    async def test_handler_receives_context_session_interaction_and_data(self):
        router = Router()
        handler = AsyncMock()
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, handler)
        session = _session()
        interaction = _command_interaction(
            "foo", options=[{"name": "text", "type": 3, "value": "hi"}]
        )
        ctx = InteractionContext(interaction_id="111", values={"source": "test"})

        await router.handle_with_context(ctx, session, interaction)

        args = handler.await_args.args
        assert args[0] is ctx
        assert args[1] is session
        assert args[2] is interaction
        assert args[3].name == "foo"
        assert args[3].option("text") == "hi"


class TestDeferredResponse:

    @pytest.mark.asyncio
    async def test_ack_sent_before_handler_runs(self):
        events = []
        router = Router(deferred_response=True)
        router.register_command(
            "foo",
            ApplicationCommandType.CHAT_INPUT,
            AsyncMock(side_effect=lambda *a: events.append("handler")),
        )

        await router.handle(_session(events), _command_interaction("foo"))

        assert events == ["ack", "handler"]

    @pytest.mark.asyncio
    async def test_ack_payload_is_ephemeral_deferred_message(self):
        router = Router(deferred_response=True)
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, AsyncMock())
        session = _session()
        interaction = _command_interaction("foo")

        await router.handle(session, interaction)

        sent_interaction, response = session.interaction_respond.await_args.args
        assert sent_interaction is interaction
        assert response.type == InteractionResponseType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE
        assert response.data.flags == MessageFlags.EPHEMERAL

    @pytest.mark.asyncio
    async def test_non_ephemeral_ack_has_no_flags(self):
        router = Router(deferred_response=True, ephemeral=False)
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, AsyncMock())
        session = _session()

        await router.handle(session, _command_interaction("foo"))

        _, response = session.interaction_respond.await_args.args
        assert "flags" not in response.to_payload().get("data", {})

    @pytest.mark.asyncio
    async def test_ack_failure_aborts_dispatch(self):
        router = Router(deferred_response=True)
        handler = AsyncMock()
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, handler)
        session = _session()
        session.interaction_respond.side_effect = ConnectionError("network down")

        result = await router.dispatch(InteractionContext(), session, _command_interaction("foo"))

        assert result.outcome == DispatchOutcome.ACK_FAILED
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ack_sent_even_when_no_handler_registered(self):
        router = Router(deferred_response=True)
        session = _session()

        result = await router.dispatch(InteractionContext(), session, _command_interaction("nope"))

        assert result.outcome == DispatchOutcome.HANDLER_NOT_FOUND
        session.interaction_respond.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_context_marked_deferred(self):
        router = Router(deferred_response=True)
        seen = {}

        async def handler(ctx, session, interaction, data):
            seen["deferred"] = ctx.deferred

        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, handler)
        await router.handle(_session(), _command_interaction("foo"))

        assert seen["deferred"] is True

    @pytest.mark.asyncio
    async def test_no_ack_when_disabled(self):
        router = Router(deferred_response=False)
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, AsyncMock())
        session = _session()

        await router.handle(session, _command_interaction("foo"))

        session.interaction_respond.assert_not_awaited()


class TestHandlerFailure:

    @pytest.mark.asyncio
    async def test_handler_exception_is_logged_not_raised(self):
        logger = MagicMock()
        router = Router(logger=logger)
        router.register_command(
            "foo", ApplicationCommandType.CHAT_INPUT, AsyncMock(side_effect=RuntimeError("boom"))
        )

        result = await router.dispatch(InteractionContext(), _session(), _command_interaction("foo"))

        assert result.outcome == DispatchOutcome.HANDLER_FAILED
        assert result.response is None
        logger.error.assert_called_once()
        assert logger.error.call_args.args[0] == "command_handler_failed"

    @pytest.mark.asyncio
    async def test_handler_failure_sends_nothing_further(self):
        router = Router(deferred_response=True)
        router.register_command(
            "foo", ApplicationCommandType.CHAT_INPUT, AsyncMock(side_effect=RuntimeError("boom"))
        )
        session = _session()

        await router.handle(session, _command_interaction("foo"))

        # Only the ack; the router never answers on the handler's behalf.
        assert session.interaction_respond.await_count == 1

    @pytest.mark.asyncio
    async def test_handler_return_value_is_ignored(self):
        router = Router()
        router.register_command(
            "foo", ApplicationCommandType.CHAT_INPUT, AsyncMock(return_value="ignored")
        )

        response = await router.handle_with_context(None, _session(), _command_interaction("foo"))

        assert response is None

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        router = Router()
        router.register_command(
            "foo", ApplicationCommandType.CHAT_INPUT,
            AsyncMock(side_effect=asyncio.CancelledError()),
        )

        with pytest.raises(asyncio.CancelledError):
            await router.handle(_session(), _command_interaction("foo"))

    @pytest.mark.asyncio
    async def test_command_data_without_name_is_not_dispatched(self):
        router = Router()
        interaction = Interaction(id="1", type=InteractionType.APPLICATION_COMMAND, data={"type": 1})

        result = await router.dispatch(InteractionContext(), _session(), interaction)

        assert result.outcome == DispatchOutcome.HANDLER_NOT_FOUND


class TestOtherInteractionTypes:

    @pytest.mark.asyncio
    async def test_ping_returns_pong_without_lookup(self):
        router = Router()
        router.registry = MagicMock()
        session = _session()

        response = await router.handle_with_context(InteractionContext(), session, _ping())

        assert response.type == InteractionResponseType.PONG
        assert response.to_payload() == {"type": 1}
        router.registry.get.assert_not_called()
        session.interaction_respond.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ping_returns_pong_even_in_deferred_mode(self):
        router = Router(deferred_response=True)
        session = _session()

        result = await router.dispatch(InteractionContext(), session, _ping())

        assert result.outcome == DispatchOutcome.PONG
        session.interaction_respond.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_application_command_returns_no_response(self):
        router = Router(deferred_response=True)
        router.register_command("foo", ApplicationCommandType.CHAT_INPUT, AsyncMock())

        response = await router.handle_with_context(
            InteractionContext(), _session(), _command_interaction("foo")
        )

        assert response is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("interaction_type", [
        InteractionType.MESSAGE_COMPONENT,
        InteractionType.MODAL_SUBMIT,
        99,
    ])
    async def test_unexpected_type_returns_message(self, interaction_type):
        router = Router()
        interaction = Interaction(id="3", type=interaction_type, token="t")

        response = await router.handle_with_context(InteractionContext(), _session(), interaction)

        assert response.type == InteractionResponseType.CHANNEL_MESSAGE_WITH_SOURCE
        assert response.data.content == UNEXPECTED_INTERACTION_CONTENT

    @pytest.mark.asyncio
    async def test_handle_returns_none_for_ping(self):
        router = Router()
        assert await router.handle(_session(), _ping()) is None
