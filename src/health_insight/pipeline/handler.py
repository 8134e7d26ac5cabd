"""Request pipeline: one provider call from request to validated result.

Stages, in order:

- Adapter selection by operation key (fails fast on a missing key)
- Provider call inside the retry wrapper, under an optional overall deadline
- One escalation to a fallback model when the escalation policy matches
- Error translation into the ``HealthInsightError`` hierarchy
- Contract parsing and validation for structured operations

``execute`` returns a ``Result``; ``run`` unwraps it and raises the failure.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, overload

from health_insight.core.types import (
    Failure,
    GenerationRequest,
    Operation,
    ProviderResponse,
    Result,
    Success,
)
from health_insight.exceptions import (
    HealthInsightError,
    ProviderError,
    ServiceUnavailableError,
)
from health_insight.telemetry import TelemetryContext

from .adapters.gemini import GoogleGenAIAdapter
from .retry import RetryPolicy, is_server_error, retry_with_backoff, status_of

if TYPE_CHECKING:
    from health_insight.config import HealthConfig
    from health_insight.telemetry import TelemetryContextProtocol

    from .adapters.base import AdapterFactory, GenerationAdapter
    from .contracts import ResponseContract
    from .escalation import EscalationPolicy
    from .retry import Sleep, Uniform

log = logging.getLogger(__name__)


class RequestPipeline:
    """Executes provider calls for every operation.

    The pipeline keeps one adapter per distinct API key; it holds no other
    state, so independent calls may run concurrently.
    """

    def __init__(
        self,
        config: HealthConfig,
        *,
        adapter_factory: AdapterFactory | None = None,
        sleep: Sleep | None = None,
        uniform: Uniform | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ):
        self.config = config
        self._adapter_factory: AdapterFactory = adapter_factory or GoogleGenAIAdapter
        self._adapters: dict[str, GenerationAdapter] = {}
        self._sleep = sleep
        self._uniform = uniform
        self._tele = telemetry or TelemetryContext()

    def adapter_for(self, operation: Operation) -> GenerationAdapter:
        key = self.config.key_for(operation)
        adapter = self._adapters.get(key)
        if adapter is None:
            adapter = self._adapter_factory(key)
            self._adapters[key] = adapter
        return adapter

    @overload
    async def execute(
        self,
        operation: Operation,
        request: GenerationRequest,
        *,
        retry: RetryPolicy | None = ...,
        escalation: EscalationPolicy | None = ...,
        contract: ResponseContract,
    ) -> Result[dict[str, Any], HealthInsightError]: ...

    @overload
    async def execute(
        self,
        operation: Operation,
        request: GenerationRequest,
        *,
        retry: RetryPolicy | None = ...,
        escalation: EscalationPolicy | None = ...,
        contract: None = ...,
    ) -> Result[ProviderResponse, HealthInsightError]: ...

    async def execute(
        self,
        operation: Operation,
        request: GenerationRequest,
        *,
        retry: RetryPolicy | None = None,
        escalation: EscalationPolicy | None = None,
        contract: ResponseContract | None = None,
    ) -> Result[Any, HealthInsightError]:
        """Run one call and classify the outcome.

        With a contract, a success holds the parsed JSON object; without one,
        it holds the raw ``ProviderResponse``.
        """
        with self._tele(f"pipeline.{operation.value}", model=request.model_name):
            try:
                adapter = self.adapter_for(operation)
                response = await self._call_with_deadline(
                    adapter, operation, request, retry, escalation
                )
                if contract is None:
                    return Success(response)
                return Success(contract.accept(response.text))
            except HealthInsightError as e:
                self._tele.count("pipeline.failure", kind=type(e).__name__)
                return Failure(e)

    async def run(
        self,
        operation: Operation,
        request: GenerationRequest,
        *,
        retry: RetryPolicy | None = None,
        escalation: EscalationPolicy | None = None,
        contract: ResponseContract | None = None,
    ) -> Any:
        result = await self.execute(
            operation, request, retry=retry, escalation=escalation, contract=contract
        )
        if isinstance(result, Failure):
            raise result.error
        return result.value

    async def _call_with_deadline(
        self,
        adapter: GenerationAdapter,
        operation: Operation,
        request: GenerationRequest,
        retry: RetryPolicy | None,
        escalation: EscalationPolicy | None,
    ) -> ProviderResponse:
        timeout = self.config.request_timeout
        try:
            async with asyncio.timeout(timeout):
                return await self._call(adapter, operation, request, retry, escalation)
        except TimeoutError as e:
            if timeout is None:
                raise translate_provider_error(e) from e
            log.error("%s exceeded its %.1fs deadline.", operation.label, timeout)
            raise ProviderError(
                f"The AI service did not respond within {timeout:g} seconds."
            ) from e
        except HealthInsightError:
            raise
        except Exception as e:
            raise translate_provider_error(e) from e

    async def _call(
        self,
        adapter: GenerationAdapter,
        operation: Operation,
        request: GenerationRequest,
        retry: RetryPolicy | None,
        escalation: EscalationPolicy | None,
    ) -> ProviderResponse:
        label = f"{operation.label} ({request.model_name})"
        try:
            return await retry_with_backoff(
                lambda: adapter.generate(request),
                retry,
                label=label,
                sleep=self._sleep,
                uniform=self._uniform,
                tele=self._tele,
            )
        except Exception as primary_error:
            fallback = escalation.fallback_for(primary_error) if escalation else None
            if fallback is None:
                raise
            log.warning(
                "%s failed with status %s; escalating once to %s.",
                label,
                status_of(primary_error),
                fallback,
            )
            with self._tele("escalation.fallback", model=fallback):
                try:
                    return await adapter.generate(request.with_model(fallback))
                except Exception:
                    log.error(
                        "Fallback model %s failed after primary error: %s",
                        fallback,
                        primary_error,
                    )
                    raise


def translate_provider_error(error: Exception) -> ProviderError:
    """Map a raw provider exception onto the error hierarchy."""
    status = status_of(error)
    if is_server_error(status):
        return ServiceUnavailableError(status=status)
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    if status is not None:
        return ProviderError(f"AI service rejected the request ({status}): {message}", status=status)
    return ProviderError(f"AI service call failed: {message}")
