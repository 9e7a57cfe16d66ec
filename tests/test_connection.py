"""ConnectionManager against an in-memory socket."""

import pytest
from websockets.exceptions import ConnectionClosedError

from jisi_code.models.events import ListAgents, ListSessions, PromptAccepted, SendPrompt
from jisi_code.transport.websocket import ConnectionManager, ConnectionStatus

CONNECTING = ConnectionStatus.CONNECTING
CONNECTED = ConnectionStatus.CONNECTED
DISCONNECTED = ConnectionStatus.DISCONNECTED
ERROR = ConnectionStatus.ERROR


def make_manager(server, **kwargs) -> ConnectionManager:
    kwargs.setdefault("reconnect_delay", 0)
    return ConnectionManager("ws://test/ws", connect_factory=server.connect, **kwargs)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_connects(self, server, settle):
        manager = make_manager(server)
        statuses = []
        manager.add_status_handler(statuses.append)

        manager.connect()
        await settle()

        assert statuses == [CONNECTING, CONNECTED]
        assert manager.connected
        assert server.urls == ["ws://test/ws"]
        await manager.disconnect()
        assert statuses[-1] == DISCONNECTED
        assert not manager.connected
        assert server.latest.closed

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, server, settle):
        manager = make_manager(server)
        manager.connect()
        manager.connect()
        await settle()
        manager.connect()
        await settle()
        assert len(server.sockets) == 1
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_reconnects_after_drop(self, server, settle):
        manager = make_manager(server)
        statuses = []
        manager.add_status_handler(statuses.append)
        manager.connect()
        await settle()

        server.latest.drop()
        await settle()

        assert len(server.sockets) == 2
        assert statuses == [CONNECTING, CONNECTED, DISCONNECTED, CONNECTING, CONNECTED]
        assert manager.reconnect_attempts == 0
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_abnormal_close_reports_error(self, server, settle):
        manager = make_manager(server, max_reconnect_attempts=0)
        statuses = []
        manager.add_status_handler(statuses.append)
        manager.connect()
        await settle()

        server.latest.fail(ConnectionClosedError(None, None))
        await settle()

        assert statuses == [CONNECTING, CONNECTED, ERROR, DISCONNECTED]
        assert len(server.sockets) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, server, settle):
        server.refuse = 10
        manager = make_manager(server, max_reconnect_attempts=2)
        statuses = []
        manager.add_status_handler(statuses.append)
        manager.connect()
        await settle(50)

        assert len(server.urls) == 3
        assert statuses == [CONNECTING, ERROR, DISCONNECTED] * 3
        assert manager.status == DISCONNECTED

    @pytest.mark.asyncio
    async def test_successful_open_resets_attempts(self, server, settle):
        server.refuse = 2
        manager = make_manager(server, max_reconnect_attempts=3)
        manager.connect()
        await settle(50)
        assert manager.connected
        assert manager.reconnect_attempts == 0
        assert len(server.urls) == 3
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_stops_pending_reconnect(self, server, settle):
        manager = make_manager(server, reconnect_delay=60)
        manager.connect()
        await settle()
        server.latest.drop()
        await settle()
        assert manager.status == DISCONNECTED

        await manager.disconnect()
        await settle()
        assert len(server.sockets) == 1
        assert manager.status == DISCONNECTED


class TestSend:
    @pytest.mark.asyncio
    async def test_send_without_connection_fails(self, server):
        manager = make_manager(server)
        assert manager.send(ListAgents()) is False

    @pytest.mark.asyncio
    async def test_frames_sent_in_order(self, server, settle):
        manager = make_manager(server)
        manager.connect()
        await settle()

        assert manager.send(ListAgents())
        assert manager.send(ListSessions())
        assert manager.send(SendPrompt(session_id="s1", prompt="hi"))
        await settle()

        assert [f["type"] for f in server.latest.sent_json()] == ["list_agents", "list_sessions", "send_prompt"]
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_send_after_drop_fails(self, server, settle):
        manager = make_manager(server, reconnect_delay=60)
        manager.connect()
        await settle()
        server.latest.drop()
        await settle()
        assert manager.send(ListAgents()) is False
        await manager.disconnect()


class TestMessages:
    @pytest.mark.asyncio
    async def test_decoded_messages_reach_handlers(self, server, settle):
        manager = make_manager(server)
        received = []
        manager.add_message_handler(received.append)
        manager.connect()
        await settle()

        sock = server.latest
        sock.feed({"type": "prompt_accepted", "session_id": "s1"})
        sock.feed("not json")
        sock.feed({"type": "mystery"})
        sock.feed({"type": "prompt_accepted", "session_id": "s2"})
        await settle()

        assert received == [PromptAccepted(session_id="s1"), PromptAccepted(session_id="s2")]
        assert manager.connected
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_removed_handler_stops_receiving(self, server, settle):
        manager = make_manager(server)
        received = []
        remove = manager.add_message_handler(received.append)
        manager.connect()
        await settle()

        remove()
        remove()
        server.latest.feed({"type": "prompt_accepted", "session_id": "s1"})
        await settle()

        assert received == []
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_dispatch(self, server, settle):
        manager = make_manager(server)
        received = []

        def broken(message):
            raise ValueError("handler bug")

        manager.add_message_handler(broken)
        manager.add_message_handler(received.append)
        manager.connect()
        await settle()

        server.latest.feed({"type": "prompt_accepted", "session_id": "s1"})
        server.latest.feed({"type": "prompt_accepted", "session_id": "s2"})
        await settle()

        assert len(received) == 2
        await manager.disconnect()
