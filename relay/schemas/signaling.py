"""Data contracts for the signaling websocket."""
from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

SIGNAL_KINDS: dict[str, str] = {
    "offer": "offer",
    "answer": "answer",
    "ice-candidate": "candidate",
}
"""Signal message type mapped to the field carrying its opaque payload."""


class _Inbound(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RegisterMessage(_Inbound):
    type: Literal["register"]
    username: str = Field(..., description="Display name; not unique, not validated")


class OfferMessage(_Inbound):
    type: Literal["offer"]
    target: str = Field(..., min_length=1)
    offer: Any = Field(..., description="Opaque session description")


class AnswerMessage(_Inbound):
    type: Literal["answer"]
    target: str = Field(..., min_length=1)
    answer: Any = Field(..., description="Opaque session description")


class IceCandidateMessage(_Inbound):
    type: Literal["ice-candidate"]
    target: str = Field(..., min_length=1)
    candidate: Any = Field(..., description="Opaque network-path candidate")


class ConnectionStatusMessage(_Inbound):
    type: Literal["connection-status"]
    status: str
    target: str | None = None


class HeartbeatMessage(_Inbound):
    type: Literal["heartbeat"]


SignalMessage = Union[OfferMessage, AnswerMessage, IceCandidateMessage]

InboundMessage = Annotated[
    Union[
        RegisterMessage,
        OfferMessage,
        AnswerMessage,
        IceCandidateMessage,
        ConnectionStatusMessage,
        HeartbeatMessage,
    ],
    Field(discriminator="type"),
]

inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


def parse_inbound(message: object) -> InboundMessage:
    """Validate a decoded frame; raises ``pydantic.ValidationError`` when malformed."""

    return inbound_adapter.validate_python(message)


class UserEntry(BaseModel):
    username: str
    connection_id: str


class HealthResponse(BaseModel):
    status: str = Field(default="ok")
    timestamp: str = Field(..., description="ISO-8601 server time")
