"""HTTP surface for the health insight service.

Thin FastAPI layer: parse the JSON body, call the matching
``HealthAssistant`` coroutine, and map ``HealthInsightError`` onto
``{"error": "..."}`` responses. Anything else becomes a generic 500 with the
same body. Authentication and persistence are left to
the deployment (a reverse proxy sets ``X-User-Id``).
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from health_insight.assistant import HealthAssistant
from health_insight.config import HealthConfig, resolve_config
from health_insight.constants import MAX_REQUEST_BYTES
from health_insight.core.types import UserContext
from health_insight.exceptions import (
    HealthInsightError,
    InputError,
    ServiceUnavailableError,
)

from .profiles import ProfileStore
from .schemas import (
    AnalyzeRequest,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HospitalListing,
    HospitalRequest,
    SymptomRequest,
    TipsRequest,
    TipsResponse,
)

log = logging.getLogger(__name__)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Missing or invalid input"},
    500: {"model": ErrorResponse, "description": "Unexpected AI response or failure"},
    502: {"model": ErrorResponse, "description": "AI service unavailable"},
}


INTERNAL_ERROR_MESSAGE = "An internal error occurred."


def status_for(error: HealthInsightError) -> int:
    if isinstance(error, InputError):
        return 400
    if isinstance(error, ServiceUnavailableError):
        return 502
    return 500


def create_app(
    config: HealthConfig | None = None,
    *,
    assistant: HealthAssistant | None = None,
    profiles: ProfileStore | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        config: Frozen configuration; resolved from the environment when None.
        assistant: Pre-built assistant, mainly for tests.
        profiles: Optional profile store used to personalise chat.
    """
    if config is None:
        config = assistant.config if assistant else resolve_config().to_frozen()
    assistant = assistant or HealthAssistant(config)

    app = FastAPI(title="Health Insight", version="0.1.0")
    app.state.assistant = assistant
    app.state.profiles = profiles

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = str(uuid4())
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            response = await internal_error_handler(request, exc)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        response.headers["X-Request-ID"] = request_id
        log.info(
            "%s %s -> %d in %dms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response

    @app.exception_handler(HealthInsightError)
    async def health_error_handler(request: Request, exc: HealthInsightError):
        status = status_for(exc)
        if status >= 500:
            log.error("%s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=status, content={"error": str(exc)})

    app.add_exception_handler(Exception, internal_error_handler)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request body")
        return JSONResponse(
            status_code=400,
            content={"error": f"{where}: {message}" if where else message},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "health-insight"}

    @app.post("/ai/analyze", responses=ERROR_RESPONSES)
    async def analyze(body: AnalyzeRequest) -> dict[str, Any]:
        file = None
        if body.fileData is not None:
            _check_inline(body.fileData.data)
            file = body.fileData.to_inline()
        return await assistant.analyze_report(text=body.reportText, file=file)

    @app.post(
        "/ai/chat",
        response_model=ChatResponse,
        response_model_exclude_none=True,
        responses=ERROR_RESPONSES,
    )
    async def chat(
        body: ChatRequest,
        x_user_id: str | None = Header(default=None),
    ) -> ChatResponse:
        user_context = await _lookup_profile(profiles, x_user_id)
        voice = (
            body.voiceConfig.to_voice(config.voice_name) if body.voiceConfig else None
        )
        reply = await assistant.chat(
            body.message,
            history=[m.to_turn() for m in body.history],
            user_context=user_context,
            voice=voice,
        )
        return ChatResponse(response=reply.text, audio=reply.audio)

    @app.post("/ai/predict-symptoms", responses=ERROR_RESPONSES)
    async def predict_symptoms(body: SymptomRequest) -> dict[str, Any]:
        return await assistant.predict_symptoms(body.symptoms)

    @app.post("/ai/find-hospitals", responses=ERROR_RESPONSES)
    async def find_hospitals(body: HospitalRequest) -> HospitalListing:
        result = await assistant.find_hospitals(
            latitude=body.lat, longitude=body.lon, query=body.query
        )
        return HospitalListing.model_validate(result)

    @app.post("/ai/health-tips", responses=ERROR_RESPONSES)
    async def health_tips(body: TipsRequest) -> TipsResponse:
        return TipsResponse(tips=await assistant.generate_tips(body.analysis))

    return app


def _check_inline(data: str) -> None:
    if len(data) * 3 // 4 > MAX_REQUEST_BYTES:
        raise InputError(f"File exceeds the {MAX_REQUEST_BYTES // (1024 * 1024)}MB limit.")
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InputError("File data must be base64 encoded.") from e


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})


async def _lookup_profile(
    profiles: ProfileStore | None, user_id: str | None
) -> UserContext | None:
    if profiles is None or not user_id:
        return None
    try:
        return await profiles.get_user_context(user_id)
    except Exception as e:
        log.warning("Profile lookup failed for %s; continuing without it: %s", user_id, e)
        return None
