import asyncio
import json
import logging

from fakes import FakeWebSocket

from api.websocket import WebSocketSession


async def open_session(**kwargs) -> tuple[WebSocketSession, FakeWebSocket]:
    websocket = FakeWebSocket()
    session = WebSocketSession(websocket, **kwargs)
    await session.accept()
    return session, websocket


def test_full_outbox_drops_new_frames_with_warning(caplog) -> None:
    async def scenario() -> None:
        session, websocket = await open_session(max_pending=3)

        with caplog.at_level(logging.WARNING):
            results = [session.send_text(f"f{i}") for i in range(4)]

        assert results == [True, True, True, False]
        assert "Send queue full" in caplog.text

        session.close()
        await session._drain()
        assert websocket.outbound == ["f0", "f1", "f2"]

    asyncio.run(scenario())


def test_close_flushes_queued_frames_then_closes_socket() -> None:
    async def scenario() -> None:
        session, websocket = await open_session(max_pending=3)
        for i in range(3):
            session.send_text(f"f{i}")

        session.close()
        session.close()
        await session._drain()

        assert websocket.outbound == ["f0", "f1", "f2"]
        assert websocket.close_calls == 1
        assert session.is_open is False

    asyncio.run(scenario())


def test_close_with_empty_outbox_closes_socket() -> None:
    async def scenario() -> None:
        session, websocket = await open_session()
        await asyncio.sleep(0)  # writer is now parked on the empty outbox

        session.close()
        await session._drain()

        assert websocket.outbound == []
        assert websocket.close_calls == 1

    asyncio.run(scenario())


def test_send_after_close_is_dropped_quietly(caplog) -> None:
    async def scenario() -> None:
        session, websocket = await open_session()
        session.close()

        with caplog.at_level(logging.WARNING):
            assert session.send({"type": "device_online"}) is False
        assert caplog.records == []

        await session._drain()
        assert websocket.outbound == []

    asyncio.run(scenario())


def test_drain_gives_up_on_a_stalled_writer(caplog) -> None:
    async def scenario() -> None:
        session, websocket = await open_session(close_timeout=0.05)
        websocket.hold = asyncio.Event()
        session.send_text("stuck")
        session.close()

        with caplog.at_level(logging.WARNING):
            await session._drain()

        assert "did not finish within 0.05s" in caplog.text
        assert websocket.outbound == []

    asyncio.run(scenario())


def test_serve_routes_frames_in_order_and_answers_garbage() -> None:
    async def scenario() -> None:
        session, websocket = await open_session()
        routed = []
        closed = []

        async def on_frame(s, frame, raw) -> None:
            routed.append((frame["type"], raw))

        async def on_close(s) -> None:
            closed.append(s)

        websocket.feed('{"type": "register_client", "clientId": "c1"}')
        websocket.feed("not json")
        websocket.feed('{"type": "get_devices"}')
        websocket.hang_up()
        await session.serve(on_frame, on_close)

        assert routed == [
            ("register_client", '{"type": "register_client", "clientId": "c1"}'),
            ("get_devices", '{"type": "get_devices"}'),
        ]
        [error] = [json.loads(raw) for raw in websocket.outbound]
        assert error["error"] == "Invalid message format"
        assert closed == [session]
        # The peer already left, so the server does not close again
        assert websocket.close_calls == 0

    asyncio.run(scenario())


def test_frames_arriving_after_close_are_not_routed() -> None:
    async def scenario() -> None:
        session, websocket = await open_session()
        routed = []
        first_routed = asyncio.Event()

        async def on_frame(s, frame, raw) -> None:
            routed.append(frame["type"])
            first_routed.set()

        async def on_close(s) -> None:
            pass

        websocket.feed('{"type": "get_devices"}')
        serving = asyncio.create_task(session.serve(on_frame, on_close))
        await first_routed.wait()

        session.close()
        websocket.feed('{"type": "register_host", "deviceId": "h1", "deviceName": "old", "platform": "linux"}')
        websocket.hang_up()
        await serving

        assert routed == ["get_devices"]
        assert websocket.close_calls == 1

    asyncio.run(scenario())
