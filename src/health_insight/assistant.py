"""Health assistant: one coroutine per AI-backed operation.

Each method validates its input before any network call, builds the
provider-neutral request, and delegates execution to ``RequestPipeline``.
Failures surface as ``HealthInsightError`` subclasses; the only failure that
is absorbed is speech synthesis during a voiced chat turn.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping, Sequence
import logging
from typing import TYPE_CHECKING, Any

from health_insight.constants import DEFAULT_HOSPITAL_SUMMARY
from health_insight.core.types import (
    ChatReply,
    ChatTurn,
    GenerationRequest,
    GeoPoint,
    InlineData,
    LocationQuery,
    Operation,
    ProviderResponse,
    RequestEnvelope,
    UserContext,
    VoiceConfig,
)
from health_insight.exceptions import (
    HealthInsightError,
    InputError,
    ResponseFormatError,
)
from health_insight.pipeline import prompts
from health_insight.pipeline.contracts import (
    REPORT_CONTRACT,
    SYMPTOM_CONTRACT,
    TIPS_CONTRACT,
)
from health_insight.pipeline.escalation import EscalationPolicy
from health_insight.pipeline.handler import RequestPipeline
from health_insight.pipeline.retry import RetryPolicy

if TYPE_CHECKING:
    from health_insight.config import HealthConfig
    from health_insight.pipeline.adapters.base import AdapterFactory

log = logging.getLogger(__name__)


class HealthAssistant:
    """Facade over the request pipeline for every health operation.

    Retry presets per call site: report analysis uses the patient preset
    (large inline files are slow to process); everything else uses the
    standard preset. Symptom prediction additionally escalates to the fallback
    model on 503.
    """

    def __init__(
        self,
        config: HealthConfig,
        *,
        pipeline: RequestPipeline | None = None,
        adapter_factory: AdapterFactory | None = None,
    ):
        self.config = config
        self.pipeline = pipeline or RequestPipeline(
            config, adapter_factory=adapter_factory
        )
        self.report_retry = RetryPolicy.patient()
        self.default_retry = RetryPolicy.standard()
        self.symptom_escalation = EscalationPolicy.on_unavailable(config.fallback_model)

    # --- Report analysis ---

    async def analyze_report(
        self,
        text: str | None = None,
        file: InlineData | None = None,
    ) -> dict[str, Any]:
        """Summarise a report given as text or as an inline file.

        An attached file takes precedence over text.

        Returns:
            ``{"summary", "predictions", "healthScore", "recommendations"}`` as
            emitted by the model.
        """
        envelope = RequestEnvelope.from_parts(text=text, inline=file)
        if envelope is None:
            raise InputError("Report text or file is required.")

        payload = envelope.payload
        if isinstance(payload, InlineData):
            try:
                payload.raw()
            except binascii.Error as e:
                raise InputError("File data must be base64 encoded.") from e
            request = GenerationRequest(
                model_name=self.config.model,
                prompt=prompts.report_prompt(),
                inline=payload,
                response_schema=REPORT_CONTRACT.schema,
            )
        else:
            request = GenerationRequest(
                model_name=self.config.model,
                prompt=prompts.report_prompt(payload.text),
                response_schema=REPORT_CONTRACT.schema,
            )
        return await self.pipeline.run(
            Operation.REPORT_ANALYSIS,
            request,
            retry=self.report_retry,
            contract=REPORT_CONTRACT,
        )

    # --- Symptom prediction ---

    async def predict_symptoms(self, symptoms: str | None) -> dict[str, Any]:
        """Rank likely conditions for a free-text symptom description.

        Returns:
            ``{"predictions": [{"disease", "probability", "description", "specialist"}]}``
        """
        if not symptoms or not symptoms.strip():
            raise InputError("Symptoms text is required.")
        request = GenerationRequest(
            model_name=self.config.model,
            prompt=prompts.symptom_prompt(symptoms.strip()),
            response_schema=SYMPTOM_CONTRACT.schema,
        )
        return await self.pipeline.run(
            Operation.SYMPTOM_PREDICTION,
            request,
            retry=self.default_retry,
            escalation=self.symptom_escalation,
            contract=SYMPTOM_CONTRACT,
        )

    # --- Conversation ---

    async def chat(
        self,
        message: str | None,
        history: Sequence[ChatTurn] = (),
        user_context: UserContext | None = None,
        voice: VoiceConfig | None = None,
    ) -> ChatReply:
        """Answer one conversational turn.

        When ``voice`` is given the reply text is also synthesised. A synthesis
        failure is logged and yields ``audio=None``; the text still returns.
        """
        if not message or not message.strip():
            raise InputError("Message is required.")
        request = GenerationRequest(
            model_name=self.config.model,
            prompt=message,
            history=tuple(history),
            system_instruction=prompts.chat_instruction(user_context),
        )
        response: ProviderResponse = await self.pipeline.run(
            Operation.CHAT, request, retry=self.default_retry
        )
        text = (response.text or "").strip()
        if not text:
            raise ResponseFormatError(Operation.CHAT.label, "The response was empty.")

        if voice is None:
            return ChatReply(text=text)
        try:
            audio = await self.synthesize_speech(text, voice)
        except HealthInsightError as e:
            log.warning("Speech synthesis failed; replying with text only: %s", e)
            audio = None
        return ChatReply(text=text, audio=audio)

    async def synthesize_speech(
        self, text: str | None, voice: VoiceConfig | None = None
    ) -> str:
        """Speak ``text`` with a prebuilt voice; returns base64 audio."""
        if not text or not text.strip():
            raise InputError("Text to synthesize is required.")
        request = GenerationRequest(
            model_name=self.config.tts_model,
            prompt=prompts.speech_prompt(text),
            voice=voice or VoiceConfig(self.config.voice_name),
        )
        response: ProviderResponse = await self.pipeline.run(
            Operation.SPEECH, request, retry=self.default_retry
        )
        if not response.audio:
            raise ResponseFormatError(Operation.SPEECH.label, "No audio was returned.")
        return base64.b64encode(response.audio).decode("ascii")

    # --- Hospital lookup ---

    async def find_hospitals(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        query: str | None = None,
    ) -> dict[str, Any]:
        """Find hospitals near coordinates or a named place.

        Returns:
            ``{"summary": str, "hospitals": [{"name", "uri"}]}``. Grounding
            entries lacking a title or a URI are dropped.
        """
        point = None
        if latitude is not None and longitude is not None:
            try:
                point = GeoPoint(float(latitude), float(longitude))
            except (TypeError, ValueError) as e:
                raise InputError(f"Invalid coordinates: {e}") from e
        query = query.strip() if query else None

        envelope = RequestEnvelope.from_parts(point=point, query=query)
        if envelope is None:
            raise InputError("Either coordinates or a location query is required.")

        payload = envelope.payload
        if isinstance(payload, GeoPoint):
            prompt = prompts.hospital_prompt(payload, envelope.refinement)
            location = payload
        elif isinstance(payload, LocationQuery):
            prompt = prompts.hospital_prompt(query=payload.query)
            location = None
        else:
            raise InputError("Either coordinates or a location query is required.")

        request = GenerationRequest(
            model_name=self.config.model,
            prompt=prompt,
            maps_grounding=True,
            location=location,
        )
        response: ProviderResponse = await self.pipeline.run(
            Operation.HOSPITAL_LOOKUP, request, retry=self.default_retry
        )
        return {
            "summary": (response.text or "").strip() or DEFAULT_HOSPITAL_SUMMARY,
            "hospitals": [
                {"name": place.title, "uri": place.uri}
                for place in response.places
                if place.title and place.uri
            ],
        }

    # --- Tips ---

    async def generate_tips(self, analysis: Mapping[str, Any] | None) -> list[str]:
        """Personalised tips derived from a previous report analysis."""
        if not analysis:
            raise InputError("Analysis data is required.")
        missing = [k for k in ("healthScore", "summary") if analysis.get(k) is None]
        if missing:
            raise InputError(f"Analysis data is missing: {', '.join(missing)}.")
        request = GenerationRequest(
            model_name=self.config.model,
            prompt=prompts.tips_prompt(analysis),
            response_schema=TIPS_CONTRACT.schema,
        )
        data = await self.pipeline.run(
            Operation.TIPS,
            request,
            retry=self.default_retry,
            contract=TIPS_CONTRACT,
        )
        return data["tips"]
