"""Core data types that flow through the request pipeline.

Requests are described by immutable envelopes; the pipeline turns an envelope
into a provider-neutral ``GenerationRequest``, hands it to an adapter, and
receives a provider-neutral ``ProviderResponse`` back. Nothing here imports
the provider SDK.
"""

from __future__ import annotations

import base64
import dataclasses
from enum import Enum
import typing

# --- Minimal guard helpers ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Result type ---

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful pipeline result."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed pipeline result, containing the classified error."""

    error: TFailure


type Result[TSuccess, TFailure] = Success[TSuccess] | Failure[TFailure]


# --- Operations ---


class Operation(str, Enum):
    """Kinds of calls the pipeline executes."""

    REPORT_ANALYSIS = "report_analysis"
    SYMPTOM_PREDICTION = "symptom_prediction"
    CHAT = "chat"
    SPEECH = "speech"
    HOSPITAL_LOOKUP = "hospital_lookup"
    TIPS = "tips"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


# --- Request envelope payloads ---


@dataclasses.dataclass(frozen=True, slots=True)
class TextPayload:
    text: str

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.text, str),
            message="must be str",
            field_name="text",
            exc=TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class InlineData:
    """Binary content sent inline with its media type.

    ``data`` is the base64 text exactly as received from callers; ``raw()``
    decodes it for the provider SDK.
    """

    data: str
    mime_type: str

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.data, str) and self.data != "",
            message="must be a non-empty base64 str",
            field_name="data",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.mime_type, str) and self.mime_type.strip() != "",
            message="must be a non-empty str",
            field_name="mime_type",
            exc=TypeError,
        )

    def raw(self) -> bytes:
        """Decode ``data``; raises ``binascii.Error`` if it is not strict base64."""
        return base64.b64decode(self.data, validate=True)


@dataclasses.dataclass(frozen=True, slots=True)
class GeoPoint:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        _require(
            condition=-90.0 <= float(self.latitude) <= 90.0,
            message=f"must be within [-90, 90], got {self.latitude!r}",
            field_name="latitude",
        )
        _require(
            condition=-180.0 <= float(self.longitude) <= 180.0,
            message=f"must be within [-180, 180], got {self.longitude!r}",
            field_name="longitude",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class LocationQuery:
    query: str


type Payload = TextPayload | InlineData | GeoPoint | LocationQuery


@dataclasses.dataclass(frozen=True, slots=True)
class RequestEnvelope:
    """The single active payload of one call plus optional refinements.

    Use ``from_parts`` to apply precedence: inline data beats text, and
    coordinates beat a free-form location query (the query is then kept as
    ``refinement`` and folded into the prompt).
    """

    payload: Payload
    refinement: str | None = None

    @classmethod
    def from_parts(
        cls,
        *,
        text: str | None = None,
        inline: InlineData | None = None,
        point: GeoPoint | None = None,
        query: str | None = None,
    ) -> RequestEnvelope | None:
        if inline is not None:
            return cls(inline)
        if text:
            return cls(TextPayload(text))
        if point is not None:
            return cls(point, refinement=query or None)
        if query:
            return cls(LocationQuery(query))
        return None


# --- Conversation and personalisation ---


@dataclasses.dataclass(frozen=True, slots=True)
class ChatTurn:
    """A single prior turn supplied by the caller's history store."""

    role: typing.Literal["user", "model"]
    text: str

    def __post_init__(self) -> None:
        _require(
            condition=self.role in ("user", "model"),
            message=f"must be 'user' or 'model', got {self.role!r}",
            field_name="role",
        )
        _require(
            condition=isinstance(self.text, str),
            message="must be str",
            field_name="text",
            exc=TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class UserContext:
    age: int | None = None
    weight: float | None = None
    medical_conditions: str | None = None
    symptoms: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class VoiceConfig:
    voice_name: str


@dataclasses.dataclass(frozen=True, slots=True)
class ChatReply:
    """Assistant text plus optional base64 audio of that text."""

    text: str
    audio: str | None = None


# --- Provider-neutral call description ---


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Everything an adapter needs to issue one provider call."""

    model_name: str
    prompt: str
    inline: InlineData | None = None
    history: tuple[ChatTurn, ...] = ()
    system_instruction: str | None = None
    response_schema: typing.Any | None = None
    maps_grounding: bool = False
    location: GeoPoint | None = None
    voice: VoiceConfig | None = None

    def with_model(self, model_name: str) -> GenerationRequest:
        return dataclasses.replace(self, model_name=model_name)


@dataclasses.dataclass(frozen=True, slots=True)
class GroundingPlace:
    title: str | None
    uri: str | None


@dataclasses.dataclass(frozen=True, slots=True)
class ProviderResponse:
    """What came back from the provider, before any validation."""

    text: str | None = None
    places: tuple[GroundingPlace, ...] = ()
    audio: bytes | None = None
    model_name: str | None = None
