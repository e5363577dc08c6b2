"""
Lifecycle supervisor.

Moves each connection through CONNECTED -> REGISTERED -> ACTIVE -> CLOSED and
reconciles the registry when a connection goes away.
"""

import logging

from signaling.codec import make_message
from signaling.models import MessageType, ParticipantState, Role
from signaling.registry import ConnectionRegistry
from signaling.transport import SessionTransport

logger = logging.getLogger(__name__)


class LifecycleSupervisor:
    """Tracks connection state and runs close-time cleanup exactly once."""

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    def on_connect(self, session: SessionTransport) -> None:
        session.state = ParticipantState.CONNECTED
        logger.info(f"Connection opened: {session.connection_id}")

    def mark_registered(self, session: SessionTransport, participant_id: str, role: Role) -> None:
        session.participant_id = participant_id
        session.role = role
        if session.state == ParticipantState.CONNECTED:
            session.state = ParticipantState.REGISTERED

    def mark_active(self, session: SessionTransport) -> None:
        if session.state == ParticipantState.REGISTERED:
            session.state = ParticipantState.ACTIVE

    async def close(self, session: SessionTransport, reason: str = "transport closed") -> bool:
        """
        Enter CLOSED for ``session``.

        Safe to call any number of times from the transport close path and
        from an explicit DISCONNECT; only the first call does anything.
        Returns True if this call performed the cleanup.
        """
        if session.state == ParticipantState.CLOSED:
            return False
        # Set before any await so a racing close sees it
        session.state = ParticipantState.CLOSED
        session.close()
        logger.info(f"Connection closed: {session.label} ({reason})")
        await self.release(session)
        return True

    async def release(self, session: SessionTransport) -> None:
        """
        Remove the session's current id from the registry.

        If it was an advertised host, every client is told the device went
        offline. Does nothing if the id now belongs to another connection.
        """
        if session.participant_id is None:
            return

        removed = await self._registry.remove(session.participant_id, transport=session)
        if removed is None:
            logger.debug(f"Nothing to release for {session.label}")
            return

        logger.info(f"{removed.role.value.capitalize()} unregistered: {removed.id}")
        if removed.device is not None:
            await self.announce_offline(removed.device.to_wire())

    async def announce_offline(self, device: dict) -> None:
        await self._registry.broadcast(
            make_message(MessageType.DEVICE_OFFLINE, device=device), Role.CLIENT
        )
