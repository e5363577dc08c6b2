"""Pydantic models and enums for the signaling protocol."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageType(str, Enum):
    """Every message type tag that can appear on the wire."""
    # Registration
    REGISTER_HOST = "register_host"
    REGISTER_CLIENT = "register_client"
    AUTH_SUCCESS = "auth_success"
    AUTH_ERROR = "auth_error"

    # Device management
    GET_DEVICES = "get_devices"
    DEVICE_LIST = "device_list"
    DEVICE_ONLINE = "device_online"
    DEVICE_OFFLINE = "device_offline"

    # Connection signaling (WebRTC)
    CONNECT_REQUEST = "connect_request"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice_candidate"

    # Connection status
    CONNECTION_ACCEPTED = "connection_accepted"
    CONNECTION_REJECTED = "connection_rejected"
    DISCONNECT = "disconnect"

    ERROR = "error"


RELAY_TYPES = frozenset({MessageType.OFFER, MessageType.ANSWER, MessageType.ICE_CANDIDATE})


class Role(str, Enum):
    HOST = "host"
    CLIENT = "client"


class ParticipantState(str, Enum):
    """Lifecycle of one connection, from accept to close."""
    CONNECTED = "connected"
    REGISTERED = "registered"
    ACTIVE = "active"
    CLOSED = "closed"


class SignalingModel(BaseModel):
    """Base for wire models: snake_case in Python, camelCase on the wire only."""
    model_config = ConfigDict(alias_generator=to_camel)


class Device(SignalingModel):
    """Public advertisement of an online host."""
    device_id: str
    device_name: str
    platform: str  # free-form, e.g. "darwin" | "win32" | "linux"
    online: bool = True
    last_seen: int  # ms since epoch

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


# --- Inbound message schemas ---

class RegisterHostMessage(SignalingModel):
    device_id: str = Field(min_length=1)
    device_name: str
    platform: str


class RegisterClientMessage(SignalingModel):
    client_id: str | None = None


class ConnectRequestMessage(SignalingModel):
    target_device_id: str = Field(min_length=1)
    client_id: str | None = None


class RelayMessage(SignalingModel):
    """OFFER / ANSWER / ICE_CANDIDATE. Only the addressing is validated."""
    model_config = ConfigDict(extra="allow")

    sender: str | None = Field(default=None, alias="from")
    to: str = Field(min_length=1)
