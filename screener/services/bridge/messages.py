"""
Wire messages exchanged by the call bridge.

Both peers speak JSON objects tagged by a discriminator field: Twilio media
streams use ``event``, the OpenAI Realtime API uses ``type``. Each direction
is modelled as a discriminated union so the bridge handles a closed set of
variants.
"""
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from screener.core.exceptions import MalformedFrameError


class _WireModel(BaseModel):
    """Base for wire models: camelCase aliases, unknown fields ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Inbound (Twilio media stream -> bridge)
# ---------------------------------------------------------------------------


class StartMetadata(_WireModel):
    """Metadata carried by a Twilio ``start`` event."""

    call_sid: Optional[str] = Field(default=None, alias="callSid")
    stream_sid: Optional[str] = Field(default=None, alias="streamSid")
    custom_parameters: Dict[str, Any] = Field(
        default_factory=dict, alias="customParameters"
    )


class ConnectedEvent(_WireModel):
    event: Literal["connected"]


class StartEvent(_WireModel):
    event: Literal["start"]
    stream_sid: Optional[str] = Field(default=None, alias="streamSid")
    start: StartMetadata = Field(default_factory=StartMetadata)

    @property
    def resolved_stream_sid(self) -> Optional[str]:
        """Stream SID from the top level, falling back to the start block."""
        return self.stream_sid or self.start.stream_sid


class MediaPayload(_WireModel):
    payload: str = ""
    track: Optional[str] = None


class MediaEvent(_WireModel):
    event: Literal["media"]
    stream_sid: Optional[str] = Field(default=None, alias="streamSid")
    media: MediaPayload = Field(default_factory=MediaPayload)


class MarkEvent(_WireModel):
    event: Literal["mark"]


class StopEvent(_WireModel):
    event: Literal["stop"]
    stream_sid: Optional[str] = Field(default=None, alias="streamSid")


InboundEvent = Annotated[
    Union[ConnectedEvent, StartEvent, MediaEvent, MarkEvent, StopEvent],
    Field(discriminator="event"),
]


# ---------------------------------------------------------------------------
# Upstream (OpenAI Realtime -> bridge)
# ---------------------------------------------------------------------------


class AudioDeltaEvent(_WireModel):
    type: Literal["response.audio.delta", "response.output_audio.delta"]
    delta: str = ""


class FunctionCallDoneEvent(_WireModel):
    type: Literal["response.function_call_arguments.done"]
    name: Optional[str] = None
    call_id: Optional[str] = None
    arguments: str = "{}"


class ErrorEvent(_WireModel):
    type: Literal["error"]
    error: Dict[str, Any] = Field(default_factory=dict)


class SessionLifecycleEvent(_WireModel):
    type: Literal["session.created", "session.updated"]


UpstreamEvent = Annotated[
    Union[AudioDeltaEvent, FunctionCallDoneEvent, ErrorEvent, SessionLifecycleEvent],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


class TurnDetection(_WireModel):
    model_config = ConfigDict(frozen=True)

    type: str = "server_vad"


class ToolDeclaration(_WireModel):
    """A function the agent may call. Tools take no arguments."""

    model_config = ConfigDict(frozen=True)

    type: Literal["function"] = "function"
    name: str
    description: str


class SessionConfig(_WireModel):
    """Immutable session parameters sent once per upstream session."""

    model_config = ConfigDict(frozen=True)

    turn_detection: TurnDetection = Field(default_factory=TurnDetection)
    input_audio_format: str = "g711_ulaw"
    output_audio_format: str = "g711_ulaw"
    voice: str = "alloy"
    instructions: str
    modalities: tuple[str, ...] = ("text", "audio")
    temperature: float = 0.7
    tools: tuple[ToolDeclaration, ...]
    tool_choice: Literal["auto"] = "auto"


class SessionUpdateMessage(_WireModel):
    type: Literal["session.update"] = "session.update"
    session: SessionConfig


class AudioAppendMessage(_WireModel):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str


class OutboundMedia(_WireModel):
    payload: str


class MediaFrame(_WireModel):
    """Audio frame sent back to the caller over the Twilio media stream."""

    event: Literal["media"] = "media"
    stream_sid: str = Field(alias="streamSid")
    media: OutboundMedia


_inbound_adapter: TypeAdapter = TypeAdapter(InboundEvent)
_upstream_adapter: TypeAdapter = TypeAdapter(UpstreamEvent)


def _parse(adapter: TypeAdapter, raw: Union[str, bytes]):
    try:
        return adapter.validate_json(raw)
    except ValidationError as e:
        # A well-formed message whose tag we don't model
        if all(error["type"] == "union_tag_invalid" for error in e.errors()):
            return None
        raise MalformedFrameError(str(e)) from e


def parse_inbound(raw: Union[str, bytes]) -> Optional[InboundEvent]:
    """
    Parse a Twilio media stream message.

    Returns:
        The event, or None for an event type the bridge does not handle

    Raises:
        MalformedFrameError: If the message is not a valid event
    """
    return _parse(_inbound_adapter, raw)


def parse_upstream(raw: Union[str, bytes]) -> Optional[UpstreamEvent]:
    """Parse an OpenAI Realtime server event. Same contract as parse_inbound."""
    return _parse(_upstream_adapter, raw)


def encode(message: BaseModel) -> str:
    """Serialize an outbound message to its wire JSON."""
    return message.model_dump_json(by_alias=True, exclude_none=True)
