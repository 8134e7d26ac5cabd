"""Health insight service: Gemini-backed report analysis, chat and lookups."""

import importlib.metadata
import logging

from health_insight.assistant import HealthAssistant
from health_insight.config import HealthConfig, ResolvedConfig, resolve_config
from health_insight.core.types import (
    ChatReply,
    ChatTurn,
    Failure,
    InlineData,
    Operation,
    Result,
    Success,
    UserContext,
    VoiceConfig,
)
from health_insight.exceptions import (
    ConfigurationError,
    HealthInsightError,
    IncompleteResponseError,
    InputError,
    MissingKeyError,
    ProviderError,
    ResponseFormatError,
    ServiceUnavailableError,
)
from health_insight.pipeline import EscalationPolicy, RequestPipeline, RetryPolicy
from health_insight.telemetry import TelemetryContext

try:
    __version__ = importlib.metadata.version("health-insight")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Facade
    "HealthAssistant",
    # Configuration
    "HealthConfig",
    "ResolvedConfig",
    "resolve_config",
    # Pipeline
    "RequestPipeline",
    "RetryPolicy",
    "EscalationPolicy",
    # Telemetry
    "TelemetryContext",
    # Core types
    "ChatReply",
    "ChatTurn",
    "InlineData",
    "Operation",
    "UserContext",
    "VoiceConfig",
    "Result",
    "Success",
    "Failure",
    # Exceptions
    "HealthInsightError",
    "ConfigurationError",
    "MissingKeyError",
    "InputError",
    "ProviderError",
    "ServiceUnavailableError",
    "ResponseFormatError",
    "IncompleteResponseError",
]
