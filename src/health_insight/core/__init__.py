"""Core types shared by the pipeline, the assistant and the HTTP layer."""

from health_insight.core.types import (
    ChatReply,
    ChatTurn,
    Failure,
    GenerationRequest,
    GeoPoint,
    GroundingPlace,
    InlineData,
    LocationQuery,
    Operation,
    Payload,
    ProviderResponse,
    RequestEnvelope,
    Result,
    Success,
    TextPayload,
    UserContext,
    VoiceConfig,
)

__all__ = [
    "ChatReply",
    "ChatTurn",
    "Failure",
    "GenerationRequest",
    "GeoPoint",
    "GroundingPlace",
    "InlineData",
    "LocationQuery",
    "Operation",
    "Payload",
    "ProviderResponse",
    "RequestEnvelope",
    "Result",
    "Success",
    "TextPayload",
    "UserContext",
    "VoiceConfig",
]
