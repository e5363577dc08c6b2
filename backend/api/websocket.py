"""WebSocket session transport for signaling connections."""

import asyncio
import logging
from typing import Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from config import CLOSE_TIMEOUT, SEND_QUEUE_SIZE
from signaling.codec import INVALID_MESSAGE_FORMAT, FrameDecodeError, decode_frame
from signaling.transport import SessionTransport

logger = logging.getLogger(__name__)

FrameHandler = Callable[[SessionTransport, dict, str], Awaitable[None]]
CloseHandler = Callable[[SessionTransport], Awaitable[object]]


class WebSocketSession(SessionTransport):
    """
    One signaling connection over a FastAPI WebSocket.

    Outbound frames go through a bounded queue drained by a writer task,
    so ``send`` never waits on the network. Inbound frames are read one at a
    time and handed to the router in arrival order.
    """

    def __init__(
        self,
        websocket: WebSocket,
        max_pending: int = SEND_QUEUE_SIZE,
        close_timeout: float = CLOSE_TIMEOUT,
    ) -> None:
        super().__init__()
        self._websocket = websocket
        self._outbox: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_pending)
        self._close_timeout = close_timeout
        self._writer: asyncio.Task | None = None
        self._closing = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closing
            and self._websocket.application_state == WebSocketState.CONNECTED
            and self._websocket.client_state == WebSocketState.CONNECTED
        )

    async def accept(self) -> None:
        await self._websocket.accept()
        self._writer = asyncio.create_task(self._write_loop())

    def send_text(self, raw: str) -> bool:
        if not self.is_open:
            logger.debug(f"Dropping frame for closed connection {self.label}")
            return False
        try:
            self._outbox.put_nowait(raw)
        except asyncio.QueueFull:
            logger.warning(f"Send queue full for {self.label}, dropping frame")
            return False
        return True

    def close(self) -> None:
        """Flush already-queued frames, then close the socket."""
        if self._closing:
            return
        self._closing = True
        # A full outbox needs no wake-up: the writer stops once it runs dry
        try:
            self._outbox.put_nowait(None)
        except asyncio.QueueFull:
            pass

    async def serve(self, on_frame: FrameHandler, on_close: CloseHandler) -> None:
        """Read frames until the peer goes away or the session is closed."""
        try:
            while not self._closing:
                message = await self._websocket.receive()
                if self._closing or message["type"] == "websocket.disconnect":
                    break

                data = message.get("text")
                if data is None:
                    data = message.get("bytes")
                try:
                    frame = decode_frame(data)
                except FrameDecodeError as e:
                    logger.warning(f"Unparsable frame from {self.label}: {e}")
                    self.send_error(INVALID_MESSAGE_FORMAT, str(e))
                    continue

                raw = data if isinstance(data, str) else data.decode("utf-8")
                await on_frame(self, frame, raw)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"WebSocket error on {self.label}: {e}", exc_info=True)
        finally:
            await on_close(self)
            self.close()
            await self._drain()

    async def _write_loop(self) -> None:
        while True:
            raw = await self._outbox.get()
            if raw is None:
                break
            try:
                await self._websocket.send_text(raw)
            except Exception as e:
                logger.debug(f"Send failed on {self.label}: {e}")
                self._closing = True
                return
            if self._closing and self._outbox.empty():
                break

        if (
            self._websocket.application_state == WebSocketState.CONNECTED
            and self._websocket.client_state == WebSocketState.CONNECTED
        ):
            try:
                await self._websocket.close()
            except Exception as e:
                logger.debug(f"Close failed on {self.label}: {e}")

    async def _drain(self) -> None:
        if self._writer is None:
            return
        try:
            await asyncio.wait_for(self._writer, timeout=self._close_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Writer for {self.label} did not finish within {self._close_timeout}s")
