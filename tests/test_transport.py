"""Tests for the port and local transports driving a real worker."""

import asyncio

import pytest
from conftest import REASONING_TURN, ScriptedProvider, StubProviderManager, chunk

from chatbox.core.app import create_transport
from chatbox.core.conversation import ConversationCard
from chatbox.stream.decoder import DONE_SENTINEL
from chatbox.transport.base import CancellationToken, outbound_message
from chatbox.transport.keepalive import KeepAlive, Ticker
from chatbox.transport.local import LocalTransport
from chatbox.transport.port import PortTransport, create_channel
from chatbox.transport.worker import BackgroundWorker
from chatbox.utils.errors import AuthenticationRequiredError, ConfigError, ProviderError


async def wait_until_ready(card: ConversationCard, timeout: float = 2.0) -> None:
    async def poll():
        while not card.is_ready:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


def make_card(session, config, provider, mode="local"):
    worker = BackgroundWorker(StubProviderManager(provider), config)
    transport = create_transport(mode, worker)
    card = ConversationCard(session, transport, question="Why?")
    return card, transport


class TestCreateTransport:
    def test_modes(self, config):
        worker = BackgroundWorker(StubProviderManager(None), config)
        assert isinstance(create_transport("port", worker), PortTransport)
        assert isinstance(create_transport("local", worker), LocalTransport)

    def test_unknown_mode(self, config):
        worker = BackgroundWorker(StubProviderManager(None), config)
        with pytest.raises(ConfigError):
            create_transport("carrier-pigeon", worker)


class TestEndToEnd:
    """Full turns through both transport strategies."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["local", "port"])
    async def test_reasoning_turn(self, session, config, mode):
        provider = ScriptedProvider(REASONING_TURN)
        card, transport = make_card(session, config, provider, mode)

        await card.start()
        await wait_until_ready(card)
        await transport.close()

        answer = card.items[1]
        assert answer.content == "Hello world"
        assert answer.done
        assert answer.thinking.has_reasoning
        assert answer.thinking.reasoning_content == "Let me think"

        records = card.session.conversation_records
        assert len(records) == 1
        assert records[0].answer == "Hello world"
        assert records[0].thinking_data.reasoning_content == "Let me think"
        assert provider.requests[0].messages[-1] == {"role": "user", "content": "Why?"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["local", "port"])
    async def test_throttled_reasoning_is_saved(self, session, config, mode):
        provider = ScriptedProvider(
            [
                chunk(reasoning="a" * 60),
                chunk(reasoning="b" * 60, finish_reason="stop"),
                DONE_SENTINEL,
            ]
        )
        card, transport = make_card(session, config, provider, mode)

        await card.start()
        await wait_until_ready(card)
        await transport.close()

        expected = "a" * 60 + "b" * 60
        assert card.items[1].thinking.reasoning_content == expected
        assert card.session.conversation_records[-1].thinking_data.reasoning_content == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["local", "port"])
    async def test_provider_error_becomes_error_item(self, session, config, mode):
        provider = ScriptedProvider([], error=ProviderError('{"code": 500}'))
        card, transport = make_card(session, config, provider, mode)

        await card.start()
        await wait_until_ready(card)
        await transport.close()

        assert [item.kind for item in card.items] == ["question", "error"]
        assert card.items[1].content == '{\n  "code": 500\n}'

    @pytest.mark.asyncio
    async def test_auth_error_uses_category(self, session, config):
        provider = ScriptedProvider([], error=AuthenticationRequiredError("401"))
        card, _ = make_card(session, config, provider)

        await card.start()

        assert card.items[1].content.startswith("UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_stream_error_payload(self, session, config):
        provider = ScriptedProvider([chunk(content="par"), {"error": {"message": "overloaded"}}])
        card, _ = make_card(session, config, provider)

        await card.start()

        kinds = [item.kind for item in card.items]
        assert kinds == ["question", "answer", "error"]
        assert card.items[1].content == "par"
        assert '"message": "overloaded"' in card.items[2].content

    @pytest.mark.asyncio
    async def test_missing_provider(self, session, config):
        card, _ = make_card(session, config, None)

        await card.start()

        assert card.items[1].kind == "error"
        assert "not available" in card.items[1].content
        assert card.is_ready

    @pytest.mark.asyncio
    async def test_follow_up_sends_history(self, session, config):
        provider = ScriptedProvider([chunk(content="A1"), DONE_SENTINEL])
        card, _ = make_card(session, config, provider)

        await card.start()
        await card.submit("Again?")

        assert len(card.session.conversation_records) == 2
        assert provider.requests[1].messages == [
            {"role": "user", "content": "Why?"},
            {"role": "assistant", "content": "A1"},
            {"role": "user", "content": "Again?"},
        ]


class TestStop:
    """Tests for cancelling an outstanding request."""

    @pytest.mark.asyncio
    async def test_local_stop_cancels_provider(self, session, config):
        provider = ScriptedProvider([chunk(reasoning="partial thought")], hang=True)
        card, _ = make_card(session, config, provider)

        turn = asyncio.create_task(card.start())
        while not card.items[1].thinking.reasoning_content:
            await asyncio.sleep(0.01)
        await card.stop()
        await asyncio.wait_for(turn, 1.0)

        assert provider.cancelled
        assert card.is_ready
        assert card.items[1].done
        assert card.items[1].thinking.reasoning_content == "partial thought"
        assert not any(item.kind == "error" for item in card.items)

    @pytest.mark.asyncio
    async def test_port_stop_cancels_provider(self, session, config):
        provider = ScriptedProvider([chunk(reasoning="partial thought")], hang=True)
        card, transport = make_card(session, config, provider, "port")

        await card.start()
        while not card.items[1].thinking.reasoning_content:
            await asyncio.sleep(0.01)
        await card.stop()
        while transport.worker.busy:
            await asyncio.sleep(0.01)

        assert provider.cancelled
        assert card.is_ready
        assert not transport.worker.busy
        await transport.close()

    @pytest.mark.asyncio
    async def test_new_turn_cancels_previous(self, session, config):
        provider = ScriptedProvider([chunk(reasoning="slow")], hang=True)
        worker = BackgroundWorker(StubProviderManager(provider), config)
        posted = []

        first = worker.handle(
            outbound_message(session.model_copy(update={"question": "1"})), posted.append
        )
        await asyncio.sleep(0.05)
        second = worker.handle(
            outbound_message(session.model_copy(update={"question": "2"})), posted.append
        )
        await asyncio.sleep(0.05)

        assert first.cancelled()
        assert not second.done()
        worker.stop()
        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(second, 1.0)
        assert second.cancelled()
        assert not worker.busy


class TestPort:
    """Tests for the in-process port pair."""

    @pytest.mark.asyncio
    async def test_messages_flow_both_ways(self):
        card, background = create_channel()
        card.post_message({"session": {}})
        background.post_message({"done": True})

        assert await background.__anext__() == {"session": {}}
        assert await card.__anext__() == {"done": True}

    @pytest.mark.asyncio
    async def test_disconnect_ends_iteration(self):
        card, background = create_channel()
        card.post_message({"stop": True})
        card.disconnect()

        received = [message async for message in background]
        assert received == [{"stop": True}]
        assert not background.connected

    @pytest.mark.asyncio
    async def test_closed_port_drops_messages(self):
        card, background = create_channel()
        card.disconnect()
        card.post_message({"stop": True})

        received = [message async for message in background]
        assert received == []

    @pytest.mark.asyncio
    async def test_send_reconnects_after_close(self, session, config):
        provider = ScriptedProvider([chunk(content="A"), DONE_SENTINEL])
        card, transport = make_card(session, config, provider, "port")
        await transport.close()
        assert not transport.connected

        await card.start()
        await wait_until_ready(card)

        assert transport.connected
        assert card.items[1].content == "A"
        await transport.close()


    @pytest.mark.asyncio
    async def test_reconnect_makes_card_ready(self, session, config):
        provider = ScriptedProvider([chunk(reasoning="slow")], hang=True)
        card, transport = make_card(session, config, provider, "port")
        transport.on_disconnect = card.handle_disconnect

        await card.start()
        while not card.items[1].thinking.reasoning_content:
            await asyncio.sleep(0.01)
        await transport.reconnect()

        assert transport.connected
        assert card.is_ready
        await transport.close()
        while transport.worker.busy:
            await asyncio.sleep(0.01)
        assert provider.cancelled


class TestTimers:
    """Tests for the keep-alive and progress tickers."""

    @pytest.mark.asyncio
    async def test_keep_alive_ticks_until_stopped(self):
        keep_alive = KeepAlive(0.01)
        keep_alive.start()
        await asyncio.sleep(0.05)
        keep_alive.stop()
        ticks = keep_alive.ticks
        await asyncio.sleep(0.03)

        assert ticks >= 1
        assert keep_alive.ticks == ticks
        assert not keep_alive.running

    @pytest.mark.asyncio
    async def test_zero_interval_never_starts(self):
        ticker = Ticker(0, lambda: None)
        ticker.start()
        assert not ticker.running


class TestCancellationToken:
    @pytest.mark.asyncio
    async def test_cancel_before_bind(self):
        token = CancellationToken()
        token.cancel()
        task = asyncio.get_running_loop().create_task(asyncio.sleep(10))
        token.bind(task)

        with pytest.raises(asyncio.CancelledError):
            await task
        assert token.cancelled

    @pytest.mark.asyncio
    async def test_cancel_after_bind(self):
        token = CancellationToken()
        task = asyncio.get_running_loop().create_task(asyncio.sleep(10))
        token.bind(task)
        token.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
