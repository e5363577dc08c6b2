"""
Connection registry.

Tracks every registered participant by id, and the subset of hosts that are
advertised as online devices. This is the only shared mutable state in the
server; every access goes through one asyncio lock and no critical section
awaits anything else.
"""

import asyncio
import logging
from dataclasses import dataclass

from signaling.codec import now_ms
from signaling.models import Device, Role
from signaling.transport import SessionTransport

logger = logging.getLogger(__name__)


@dataclass
class Participant:
    """One registered connection."""
    id: str
    role: Role
    transport: SessionTransport
    device: Device | None = None  # hosts only


class ConnectionRegistry:
    """In-memory registry of participants and online devices."""

    def __init__(self) -> None:
        self._participants: dict[str, Participant] = {}
        self._devices: dict[str, Device] = {}
        self._lock = asyncio.Lock()

    async def register(
        self,
        participant_id: str,
        role: Role,
        transport: SessionTransport,
        metadata: dict | None = None,
    ) -> tuple[Participant, Participant | None]:
        """
        Create or replace the entry for ``participant_id``.

        Hosts also get a Device built from ``metadata`` (``device_name``,
        ``platform``), marked online with ``last_seen`` set to now.
        Last writer wins on id collision.

        Returns:
            (participant, previous) where ``previous`` is the entry that
            was replaced, if any.
        """
        metadata = metadata or {}
        device = None
        if role == Role.HOST:
            device = Device(
                deviceId=participant_id,
                deviceName=metadata.get("device_name", ""),
                platform=metadata.get("platform", ""),
                online=True,
                lastSeen=now_ms(),
            )
        participant = Participant(
            id=participant_id, role=role, transport=transport, device=device
        )

        async with self._lock:
            # Pop first so a re-registration moves to the end of the order
            previous = self._participants.pop(participant_id, None)
            self._devices.pop(participant_id, None)
            self._participants[participant_id] = participant
            if device is not None:
                self._devices[participant_id] = device

        if previous is not None and previous.transport is not transport:
            logger.warning(
                f"Id {participant_id} taken over by connection "
                f"{transport.connection_id} (was {previous.transport.connection_id})"
            )
        return participant, previous

    async def lookup(self, participant_id: str) -> Participant | None:
        async with self._lock:
            return self._participants.get(participant_id)

    async def list_devices(self) -> list[Device]:
        """Snapshot of all online devices, in registration order."""
        async with self._lock:
            return [d.model_copy() for d in self._devices.values()]

    async def remove(
        self, participant_id: str, transport: SessionTransport | None = None
    ) -> Participant | None:
        """
        Delete the entry for ``participant_id``.

        If ``transport`` is given, the entry is only removed while it still
        belongs to that transport (an id taken over by a newer connection is
        left alone). For a host, the returned participant carries its last
        Device marked offline with ``last_seen`` set to now.
        Removing an absent id is a no-op returning None.
        """
        async with self._lock:
            participant = self._participants.get(participant_id)
            if participant is None:
                return None
            if transport is not None and participant.transport is not transport:
                return None
            del self._participants[participant_id]
            device = self._devices.pop(participant_id, None)

        if device is not None:
            participant.device = device.model_copy(
                update={"online": False, "last_seen": now_ms()}
            )
        return participant

    async def participants(self, role: Role | None = None) -> list[Participant]:
        async with self._lock:
            return [
                p for p in self._participants.values()
                if role is None or p.role == role
            ]

    async def broadcast(self, message: dict, role: Role) -> int:
        """Send ``message`` to every participant with ``role``. Returns the delivery count."""
        recipients = await self.participants(role)
        delivered = 0
        for participant in recipients:
            if participant.transport.send(message):
                delivered += 1
        logger.debug(f"Broadcast {message.get('type')} to {delivered}/{len(recipients)} {role.value}s")
        return delivered

    async def counts(self) -> dict[str, int]:
        async with self._lock:
            hosts = sum(1 for p in self._participants.values() if p.role == Role.HOST)
            return {"hosts": hosts, "clients": len(self._participants) - hosts}

    async def shutdown(self) -> None:
        """Close every registered transport and forget all state."""
        async with self._lock:
            participants = list(self._participants.values())
            self._participants.clear()
            self._devices.clear()
        for participant in participants:
            participant.transport.close()
        logger.info(f"Registry cleared ({len(participants)} participants closed)")
