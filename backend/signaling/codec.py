"""
JSON framing for signaling messages.

One WebSocket text frame carries exactly one JSON object with at least a
string ``type``. Server-built messages also carry a ``timestamp`` in
milliseconds since the epoch.
"""

import json
import threading
import time

from signaling.models import MessageType

INVALID_MESSAGE_FORMAT = "Invalid message format"

_clock_lock = threading.Lock()
_last_ms = 0


class FrameDecodeError(ValueError):
    """A frame that cannot be parsed into a typed message."""


def now_ms() -> int:
    """Wall-clock milliseconds that never go backwards within the process."""
    global _last_ms
    with _clock_lock:
        _last_ms = max(_last_ms, int(time.time() * 1000))
        return _last_ms


def make_message(msg_type: MessageType, **fields) -> dict:
    """Build an outbound message stamped with the current time."""
    message = {"type": msg_type.value, "timestamp": now_ms()}
    message.update(fields)
    return message


def encode_frame(message: dict) -> str:
    return json.dumps(message)


def decode_frame(data: str | bytes | None) -> dict:
    """
    Parse one inbound frame.

    Raises:
        FrameDecodeError: the frame is not UTF-8 JSON, not an object,
            or has no string ``type``.
    """
    if data is None:
        raise FrameDecodeError("empty frame")
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"frame is not valid UTF-8: {e}") from e

    try:
        frame = json.loads(data)
    except json.JSONDecodeError as e:
        raise FrameDecodeError(f"frame is not valid JSON: {e}") from e

    if not isinstance(frame, dict):
        raise FrameDecodeError("frame must be a JSON object")
    if not isinstance(frame.get("type"), str):
        raise FrameDecodeError("frame is missing a string 'type'")
    return frame
