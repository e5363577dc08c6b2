"""Transport-agnostic base for a per-connection signaling channel."""

import uuid

from signaling.codec import encode_frame, make_message
from signaling.models import MessageType, ParticipantState, Role


class SessionTransport:
    """
    One duplex message channel owned by a single participant.

    Subclasses supply ``is_open``, ``send_text`` and ``close``. None of them
    may block: a frame that cannot be delivered is dropped.
    """

    def __init__(self) -> None:
        self.connection_id = uuid.uuid4().hex[:8]
        self.participant_id: str | None = None
        self.role: Role | None = None
        self.state = ParticipantState.CONNECTED

    @property
    def is_open(self) -> bool:
        raise NotImplementedError

    @property
    def label(self) -> str:
        return f"{self.participant_id or '-'}@{self.connection_id}"

    def send_text(self, raw: str) -> bool:
        """Queue one already-encoded frame. Returns False if it was dropped."""
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def send(self, message: dict) -> bool:
        return self.send_text(encode_frame(message))

    def send_error(self, error: str, details: str | None = None) -> bool:
        fields = {"error": error}
        if details:
            fields["details"] = details
        return self.send(make_message(MessageType.ERROR, **fields))
