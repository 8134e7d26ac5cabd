"""Google GenAI adapter.

Translates a ``GenerationRequest`` into a ``generate_content`` call on the
async client and flattens the SDK response into a ``ProviderResponse``.
``google.genai.errors.APIError`` is left to propagate; its ``code`` carries
the HTTP status the retry policy inspects.
"""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types

from health_insight.constants import AUDIO_MODALITY, JSON_MIME_TYPE
from health_insight.core.types import (
    GenerationRequest,
    GroundingPlace,
    ProviderResponse,
)

log = logging.getLogger(__name__)


class GoogleGenAIAdapter:
    """Adapter bound to a single API key."""

    def __init__(self, api_key: str, *, client: genai.Client | None = None):
        self._client = client or genai.Client(api_key=api_key)

    async def generate(self, request: GenerationRequest) -> ProviderResponse:
        log.debug(
            "generate_content model=%s inline=%s history=%d",
            request.model_name,
            request.inline is not None,
            len(request.history),
        )
        response = await self._client.aio.models.generate_content(
            model=request.model_name,
            contents=build_contents(request),
            config=build_config(request),
        )
        return to_provider_response(response, request.model_name)


def build_contents(request: GenerationRequest) -> list[types.Content]:
    contents = [
        types.Content(role=turn.role, parts=[types.Part.from_text(text=turn.text)])
        for turn in request.history
    ]
    parts = [types.Part.from_text(text=request.prompt)]
    if request.inline is not None:
        parts.append(
            types.Part.from_bytes(
                data=request.inline.raw(),
                mime_type=request.inline.mime_type,
            )
        )
    contents.append(types.Content(role="user", parts=parts))
    return contents


def build_config(request: GenerationRequest) -> types.GenerateContentConfig:
    options: dict[str, Any] = {}

    if request.system_instruction:
        options["system_instruction"] = request.system_instruction

    if request.response_schema is not None:
        options["response_mime_type"] = JSON_MIME_TYPE
        options["response_schema"] = request.response_schema

    if request.maps_grounding:
        options["tools"] = [types.Tool(google_maps=types.GoogleMaps())]
        if request.location is not None:
            options["tool_config"] = types.ToolConfig(
                retrieval_config=types.RetrievalConfig(
                    lat_lng=types.LatLng(
                        latitude=request.location.latitude,
                        longitude=request.location.longitude,
                    )
                )
            )

    if request.voice is not None:
        options["response_modalities"] = [AUDIO_MODALITY]
        options["speech_config"] = types.SpeechConfig(
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(
                    voice_name=request.voice.voice_name,
                )
            )
        )

    return types.GenerateContentConfig(**options)


def to_provider_response(response: Any, model_name: str) -> ProviderResponse:
    """Flatten text, inline audio and maps grounding from the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ProviderResponse(model_name=model_name)
    candidate = candidates[0]

    texts: list[str] = []
    audio: bytes | None = None
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
        if getattr(part, "thought", False):
            continue
        if getattr(part, "text", None):
            texts.append(part.text)
        inline = getattr(part, "inline_data", None)
        if audio is None and inline is not None and inline.data:
            audio = inline.data

    places: list[GroundingPlace] = []
    metadata = getattr(candidate, "grounding_metadata", None)
    for chunk in getattr(metadata, "grounding_chunks", None) or []:
        maps = getattr(chunk, "maps", None)
        if maps is not None:
            places.append(
                GroundingPlace(
                    title=getattr(maps, "title", None),
                    uri=getattr(maps, "uri", None),
                )
            )

    return ProviderResponse(
        text="".join(texts) if texts else None,
        places=tuple(places),
        audio=audio,
        model_name=model_name,
    )
