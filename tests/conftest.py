"""
Global test configuration: environment isolation, scripted provider adapters
and a recording sleep so retry timing is observable without waiting.
"""

from collections.abc import Callable, Iterable
import logging
import os

import pytest

from health_insight.assistant import HealthAssistant
from health_insight.config import HealthConfig, resolve_config
from health_insight.core.types import GenerationRequest, ProviderResponse
from health_insight.pipeline.handler import RequestPipeline

# --- Environment Isolation (Autouse) ---


@pytest.fixture(autouse=True)
def isolate_health_env(request, monkeypatch):
    """Ensure a clean HEALTH_INSIGHT_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the env unchanged.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("HEALTH_INSIGHT_"):
            monkeypatch.delenv(key, raising=False)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Behavioural guarantees of the request pipeline",
        "api: HTTP surface tests through FastAPI's TestClient",
        "allow_env_pollution: Keep HEALTH_INSIGHT_* variables for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Provider doubles ---


class ProviderFailure(Exception):
    """Stand-in for ``google.genai.errors.APIError``: status lives on ``code``."""

    def __init__(self, code: int | None, message: str = "provider failure"):
        super().__init__(message)
        self.code = code
        self.message = message


class ScriptedAdapter:
    """Adapter that replays a script of responses and exceptions in order.

    Once the script runs out, the last entry repeats. Every request is recorded.
    """

    def __init__(self, script: Iterable[ProviderResponse | Exception]):
        self.script = list(script)
        self.requests: list[GenerationRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def models(self) -> list[str]:
        return [r.model_name for r in self.requests]

    async def generate(self, request: GenerationRequest) -> ProviderResponse:
        self.requests.append(request)
        index = min(len(self.requests), len(self.script)) - 1
        outcome = self.script[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# --- Core Fixtures ---


@pytest.fixture
def mock_api_key():
    """Provide a consistent, fake API key for tests."""
    return "test_api_key_12345_67890_abcdef_ghijkl"


@pytest.fixture
def health_config(mock_api_key) -> HealthConfig:
    return resolve_config({"api_key": mock_api_key}).to_frozen()


@pytest.fixture
def provider_failure() -> type[ProviderFailure]:
    return ProviderFailure


@pytest.fixture
def text_response() -> Callable[..., ProviderResponse]:
    def make(text: str | None = None, **kwargs) -> ProviderResponse:
        return ProviderResponse(text=text, **kwargs)

    return make


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def scripted_adapter() -> Callable[..., ScriptedAdapter]:
    def make(*script: ProviderResponse | Exception) -> ScriptedAdapter:
        return ScriptedAdapter(script)

    return make


@pytest.fixture
def make_pipeline(health_config, recording_sleep):
    """Build a pipeline whose every API key maps to the given adapter."""

    def make(
        adapter: ScriptedAdapter,
        config: HealthConfig | None = None,
        **kwargs,
    ) -> RequestPipeline:
        kwargs.setdefault("sleep", recording_sleep)
        kwargs.setdefault("uniform", lambda low, high: high)
        return RequestPipeline(
            config or health_config,
            adapter_factory=lambda _key: adapter,
            **kwargs,
        )

    return make


@pytest.fixture
def make_assistant(health_config, make_pipeline):
    """Build a ``HealthAssistant`` driven by a scripted adapter."""

    def make(
        adapter: ScriptedAdapter, config: HealthConfig | None = None
    ) -> HealthAssistant:
        config = config or health_config
        return HealthAssistant(config, pipeline=make_pipeline(adapter, config))

    return make
