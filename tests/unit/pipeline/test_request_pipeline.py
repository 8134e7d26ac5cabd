import asyncio
import json

import pytest

from health_insight.config import resolve_config
from health_insight.core.types import (
    Failure,
    GenerationRequest,
    Operation,
    ProviderResponse,
    Success,
)
from health_insight.exceptions import (
    IncompleteResponseError,
    MissingKeyError,
    ProviderError,
    ResponseFormatError,
    ServiceUnavailableError,
)
from health_insight.pipeline.contracts import SYMPTOM_CONTRACT
from health_insight.pipeline.escalation import EscalationPolicy
from health_insight.pipeline.handler import RequestPipeline, translate_provider_error
from health_insight.pipeline.retry import RetryPolicy
from health_insight.telemetry import InMemoryReporter, TelemetryContext

pytestmark = pytest.mark.contract

PRIMARY = "gemini-2.5-flash"
FALLBACK = "gemini-2.0-flash"


def make_request(prompt: str = "hello") -> GenerationRequest:
    return GenerationRequest(model_name=PRIMARY, prompt=prompt)


def symptoms_json() -> str:
    return json.dumps(
        {
            "predictions": [
                {
                    "disease": "Migraine",
                    "probability": 0.7,
                    "description": "Recurring headaches.",
                    "specialist": "Neurologist",
                }
            ]
        }
    )


# --- Escalation ---


@pytest.mark.asyncio
async def test_503_exhaustion_escalates_exactly_once(
    scripted_adapter, make_pipeline, provider_failure, recording_sleep
):
    adapter = scripted_adapter(
        provider_failure(503),
        provider_failure(503),
        provider_failure(503),
        ProviderResponse(text=symptoms_json()),
    )
    pipeline = make_pipeline(adapter)

    data = await pipeline.run(
        Operation.SYMPTOM_PREDICTION,
        make_request(),
        escalation=EscalationPolicy.on_unavailable(FALLBACK),
        contract=SYMPTOM_CONTRACT,
    )

    assert data["predictions"][0]["disease"] == "Migraine"
    assert adapter.models == [PRIMARY, PRIMARY, PRIMARY, FALLBACK]
    assert recording_sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_fallback_failure_is_not_retried(
    scripted_adapter, make_pipeline, provider_failure
):
    adapter = scripted_adapter(provider_failure(503))
    pipeline = make_pipeline(adapter)

    with pytest.raises(ServiceUnavailableError) as exc_info:
        await pipeline.run(
            Operation.SYMPTOM_PREDICTION,
            make_request(),
            escalation=EscalationPolicy.on_unavailable(FALLBACK),
        )

    assert adapter.models == [PRIMARY] * 3 + [FALLBACK]
    assert exc_info.value.status == 503


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [500, 502, 504])
async def test_other_server_errors_do_not_escalate(
    scripted_adapter, make_pipeline, provider_failure, status
):
    adapter = scripted_adapter(provider_failure(status))
    pipeline = make_pipeline(adapter)

    with pytest.raises(ServiceUnavailableError):
        await pipeline.run(
            Operation.SYMPTOM_PREDICTION,
            make_request(),
            escalation=EscalationPolicy.on_unavailable(FALLBACK),
        )

    assert FALLBACK not in adapter.models
    assert adapter.calls == 3


@pytest.mark.asyncio
async def test_escalation_is_off_unless_requested(
    scripted_adapter, make_pipeline, provider_failure
):
    adapter = scripted_adapter(provider_failure(503))
    with pytest.raises(ServiceUnavailableError):
        await make_pipeline(adapter).run(Operation.CHAT, make_request())
    assert adapter.models == [PRIMARY] * 3


# --- Error translation ---


@pytest.mark.asyncio
async def test_client_error_surfaces_as_provider_error_without_retry(
    scripted_adapter, make_pipeline, provider_failure, recording_sleep
):
    adapter = scripted_adapter(provider_failure(429, "Resource exhausted"))
    with pytest.raises(ProviderError) as exc_info:
        await make_pipeline(adapter).run(Operation.CHAT, make_request())

    error = exc_info.value
    assert not isinstance(error, ServiceUnavailableError)
    assert error.status == 429
    assert "Resource exhausted" in str(error)
    assert adapter.calls == 1
    assert recording_sleep.delays == []


@pytest.mark.unit
def test_translate_provider_error_shapes(provider_failure):
    unavailable = translate_provider_error(provider_failure(500))
    assert isinstance(unavailable, ServiceUnavailableError)
    assert str(unavailable) == "Could not reach the AI service."

    rejected = translate_provider_error(provider_failure(400, "bad\nrequest"))
    assert rejected.status == 400
    assert "\n" not in str(rejected)

    unknown = translate_provider_error(RuntimeError("socket closed"))
    assert unknown.status is None
    assert "socket closed" in str(unknown)


# --- Contracts through the pipeline ---


@pytest.mark.asyncio
async def test_execute_returns_failure_for_unparseable_json(
    scripted_adapter, make_pipeline
):
    adapter = scripted_adapter(ProviderResponse(text="not json"))
    result = await make_pipeline(adapter).execute(
        Operation.SYMPTOM_PREDICTION, make_request(), contract=SYMPTOM_CONTRACT
    )
    assert isinstance(result, Failure)
    assert isinstance(result.error, ResponseFormatError)


@pytest.mark.asyncio
async def test_execute_returns_failure_for_missing_fields(
    scripted_adapter, make_pipeline
):
    adapter = scripted_adapter(ProviderResponse(text="{}"))
    result = await make_pipeline(adapter).execute(
        Operation.SYMPTOM_PREDICTION, make_request(), contract=SYMPTOM_CONTRACT
    )
    assert isinstance(result, Failure)
    assert isinstance(result.error, IncompleteResponseError)
    assert result.error.fields == ("predictions",)


@pytest.mark.asyncio
async def test_execute_without_contract_returns_raw_response(
    scripted_adapter, make_pipeline
):
    response = ProviderResponse(text="hi there")
    result = await make_pipeline(scripted_adapter(response)).execute(
        Operation.CHAT, make_request()
    )
    assert isinstance(result, Success)
    assert result.value is response


# --- Keys and adapters ---


@pytest.mark.asyncio
async def test_missing_key_fails_before_any_call(scripted_adapter, make_pipeline):
    adapter = scripted_adapter(ProviderResponse(text="unused"))
    config = resolve_config().to_frozen()
    with pytest.raises(MissingKeyError):
        await make_pipeline(adapter, config).run(Operation.CHAT, make_request())
    assert adapter.calls == 0


@pytest.mark.unit
def test_adapters_are_cached_per_key():
    config = resolve_config(
        {"api_key": "shared", "chat_api_key": "chat-only"}
    ).to_frozen()
    built: list[str] = []

    def factory(key):
        built.append(key)
        return object()

    pipeline = RequestPipeline(config, adapter_factory=factory)
    chat = pipeline.adapter_for(Operation.CHAT)
    speech = pipeline.adapter_for(Operation.SPEECH)
    tips = pipeline.adapter_for(Operation.TIPS)
    report = pipeline.adapter_for(Operation.REPORT_ANALYSIS)

    assert chat is speech
    assert tips is report
    assert chat is not tips
    assert built == ["chat-only", "shared"]


# --- Deadline ---


class SlowAdapter:
    async def generate(self, request):
        await asyncio.sleep(10)
        return ProviderResponse(text="late")


@pytest.mark.asyncio
async def test_request_timeout_bounds_the_whole_call(mock_api_key):
    config = resolve_config(
        {"api_key": mock_api_key, "request_timeout": 0.05}
    ).to_frozen()
    pipeline = RequestPipeline(config, adapter_factory=lambda _key: SlowAdapter())

    with pytest.raises(ProviderError) as exc_info:
        await pipeline.run(Operation.CHAT, make_request(), retry=RetryPolicy.none())

    assert "did not respond within 0.05 seconds" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, TimeoutError)


# --- Telemetry ---


@pytest.mark.asyncio
async def test_pipeline_records_scoped_timings(scripted_adapter, make_pipeline):
    reporter = InMemoryReporter()
    pipeline = make_pipeline(
        scripted_adapter(ProviderResponse(text="ok")),
        telemetry=TelemetryContext(reporter, enabled=True),
    )
    await pipeline.run(Operation.CHAT, make_request())
    assert "pipeline.chat" in reporter.timings
