"""
Message router.

Classifies each parsed frame by its ``type`` tag, validates it, and performs
exactly one of: reply to the sender (after updating the registry), forward to
one addressed participant, or broadcast a notification to a role.
"""

import logging
import uuid
from typing import Callable

from pydantic import ValidationError

from signaling.codec import INVALID_MESSAGE_FORMAT, make_message, now_ms
from signaling.models import (
    RELAY_TYPES,
    ConnectRequestMessage,
    MessageType,
    ParticipantState,
    RegisterClientMessage,
    RegisterHostMessage,
    RelayMessage,
    Role,
)
from signaling.registry import ConnectionRegistry, Participant
from signaling.supervisor import LifecycleSupervisor
from signaling.transport import SessionTransport

logger = logging.getLogger(__name__)

TARGET_NOT_FOUND = "Target device not found or offline"
ROLE_CHANGE_REFUSED = "Role cannot change after registration"


def _new_client_id() -> str:
    return str(uuid.uuid4())


def _summarize(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in e['loc']) or 'message'}: {e['msg']}"
        for e in error.errors()
    )


class MessageRouter:
    """Dispatches inbound signaling messages for every connection."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        supervisor: LifecycleSupervisor,
        id_factory: Callable[[], str] = _new_client_id,
    ) -> None:
        self._registry = registry
        self._supervisor = supervisor
        self._id_factory = id_factory
        self._handlers = {
            MessageType.REGISTER_HOST: self._handle_register_host,
            MessageType.REGISTER_CLIENT: self._handle_register_client,
            MessageType.GET_DEVICES: self._handle_get_devices,
            MessageType.CONNECT_REQUEST: self._handle_connect_request,
            MessageType.DISCONNECT: self._handle_disconnect,
        }
        for relay_type in RELAY_TYPES:
            self._handlers[relay_type] = self._handle_relay

    async def route(self, session: SessionTransport, frame: dict, raw: str) -> None:
        """
        Handle one parsed frame from ``session``.

        ``raw`` is the frame text exactly as received; relay messages are
        forwarded as-is.
        """
        type_tag = frame.get("type")
        if session.state == ParticipantState.CLOSED:
            logger.debug(f"Ignoring {type_tag} from closed connection {session.label}")
            return
        logger.debug(f"Received {type_tag} from {session.label}")

        try:
            handler = self._handlers.get(MessageType(type_tag))
        except ValueError:
            handler = None
        if handler is None:
            logger.warning(f"Unknown message type from {session.label}: {type_tag!r}")
            return

        try:
            await handler(session, frame, raw)
        except ValidationError as e:
            logger.warning(f"Invalid {type_tag} from {session.label}: {e.error_count()} error(s)")
            session.send_error(INVALID_MESSAGE_FORMAT, _summarize(e))

    # --- Registration ---

    async def _handle_register_host(self, session: SessionTransport, frame: dict, raw: str) -> None:
        msg = RegisterHostMessage.model_validate(frame)
        participant = await self._register(
            session,
            msg.device_id,
            Role.HOST,
            {"device_name": msg.device_name, "platform": msg.platform},
        )
        if participant is None:
            return

        logger.info(f"Host registered: {msg.device_name} ({msg.device_id})")
        session.send(make_message(MessageType.AUTH_SUCCESS, id=participant.id))
        await self._registry.broadcast(
            make_message(MessageType.DEVICE_ONLINE, device=participant.device.to_wire()),
            Role.CLIENT,
        )

    async def _handle_register_client(self, session: SessionTransport, frame: dict, raw: str) -> None:
        msg = RegisterClientMessage.model_validate(frame)
        client_id = msg.client_id or self._id_factory()
        participant = await self._register(session, client_id, Role.CLIENT)
        if participant is None:
            return

        logger.info(f"Client registered: {client_id}")
        session.send(make_message(MessageType.AUTH_SUCCESS, id=participant.id))

    async def _register(
        self,
        session: SessionTransport,
        participant_id: str,
        role: Role,
        metadata: dict | None = None,
    ) -> Participant | None:
        if session.role is not None and session.role != role:
            logger.warning(
                f"Refusing {role.value} registration on {session.label}, "
                f"already registered as {session.role.value}"
            )
            session.send_error(ROLE_CHANGE_REFUSED, f"connection is registered as {session.role.value}")
            return None

        # Same connection switching ids gives up the old one first
        if session.participant_id is not None and session.participant_id != participant_id:
            await self._supervisor.release(session)

        participant, previous = await self._registry.register(
            participant_id, role, session, metadata
        )
        self._supervisor.mark_registered(session, participant_id, role)

        if previous is not None and previous.transport is not session:
            await self._supervisor.close(
                previous.transport, reason=f"id taken over by {session.connection_id}"
            )
            if previous.device is not None and role != Role.HOST:
                await self._supervisor.announce_offline(
                    previous.device.model_copy(
                        update={"online": False, "last_seen": now_ms()}
                    ).to_wire()
                )
        return participant

    # --- Discovery ---

    async def _handle_get_devices(self, session: SessionTransport, frame: dict, raw: str) -> None:
        devices = await self._registry.list_devices()
        session.send(make_message(
            MessageType.DEVICE_LIST,
            devices=[d.to_wire() for d in devices],
        ))

    # --- Connection signaling ---

    async def _handle_connect_request(self, session: SessionTransport, frame: dict, raw: str) -> None:
        msg = ConnectRequestMessage.model_validate(frame)
        client_id = msg.client_id or session.participant_id
        if not client_id:
            session.send_error(INVALID_MESSAGE_FORMAT, "clientId is required before registration")
            return

        target = await self._registry.lookup(msg.target_device_id)
        if target is None or target.role != Role.HOST:
            logger.warning(f"Connection request from {client_id} to unknown device {msg.target_device_id}")
            session.send_error(TARGET_NOT_FOUND)
            return

        logger.info(f"Connection request from {client_id} to {msg.target_device_id}")
        target.transport.send(make_message(
            MessageType.CONNECT_REQUEST,
            targetDeviceId=msg.target_device_id,
            clientId=client_id,
        ))
        # No host-side approval step: the requester is accepted optimistically
        session.send(make_message(
            MessageType.CONNECTION_ACCEPTED,
            hostId=msg.target_device_id,
        ))

    async def _handle_relay(self, session: SessionTransport, frame: dict, raw: str) -> None:
        msg = RelayMessage.model_validate(frame)
        type_tag = frame["type"]

        target = await self._registry.lookup(msg.to)
        if target is None:
            logger.warning(f"Target {msg.to} not found for {type_tag} from {msg.sender or session.label}")
            return

        logger.info(f"Forwarding {type_tag} from {msg.sender or session.label} to {msg.to}")
        target.transport.send_text(raw)
        self._supervisor.mark_active(session)
        self._supervisor.mark_active(target.transport)

    async def _handle_disconnect(self, session: SessionTransport, frame: dict, raw: str) -> None:
        await self._supervisor.close(session, reason="disconnect requested")
