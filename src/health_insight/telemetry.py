"""Scoped timings and counters for pipeline calls.

Disabled by default: ``TelemetryContext()`` returns a shared no-op instance
whose scopes and metrics cost nothing. Set ``HEALTH_INSIGHT_TELEMETRY=1`` (or
pass ``enabled=True``) and supply reporters to collect scoped timings and
metrics.
"""

from collections import deque
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import time
from types import TracebackType
from typing import Any, Protocol, Self, runtime_checkable

log = logging.getLogger(__name__)

_scope_stack_var: ContextVar[tuple[str, ...]] = ContextVar(
    "health_insight_scope_stack",
    default=(),
)


def _env_enabled() -> bool:
    return os.getenv("HEALTH_INSIGHT_TELEMETRY") == "1"


@runtime_checkable
class TelemetryReporter(Protocol):
    """Receives every timing and metric recorded while telemetry is on."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """Stateless context used whenever telemetry is off."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        return None

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _ReportingTelemetryContext:
    """Scoped timings and metrics fanned out to every reporter."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    def __call__(
        self, name: str, **metadata: Any
    ) -> AbstractContextManager["_ReportingTelemetryContext"]:
        return self._scope(name, **metadata)

    @contextmanager
    def _scope(
        self, name: str, **metadata: Any
    ) -> Iterator["_ReportingTelemetryContext"]:
        if not name or not isinstance(name, str):
            raise ValueError("Scope name must be a non-empty string")

        parents = _scope_stack_var.get()
        scope_path = ".".join((*parents, name))
        token = _scope_stack_var.set((*parents, name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            duration = time.perf_counter() - started
            _scope_stack_var.reset(token)
            self._fan_out(
                "record_timing",
                scope_path,
                duration,
                depth=len(parents),
                parent_scope=".".join(parents) or None,
                **metadata,
            )

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Record a metric under the current scope path."""
        parents = _scope_stack_var.get()
        self._fan_out(
            "record_metric",
            ".".join((*parents, name)),
            value,
            depth=len(parents),
            parent_scope=".".join(parents) or None,
            **metadata,
        )

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        self.metric(name, increment, metric_type="counter", **metadata)

    def _fan_out(self, method: str, scope: str, value: Any, **metadata: Any) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(scope, value, **metadata)
            except Exception as e:
                log.error(
                    "Dropping telemetry for %s: reporter %s raised %s",
                    scope,
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )


_NO_OP_SINGLETON = _NoOpTelemetryContext()

type TelemetryContextProtocol = _ReportingTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(  # noqa: N802
    *reporters: TelemetryReporter, enabled: bool | None = None
) -> TelemetryContextProtocol:
    """Return a reporting context, or the shared no-op when disabled."""
    active = _env_enabled() if enabled is None else enabled
    if active and reporters:
        return _ReportingTelemetryContext(*reporters)
    return _NO_OP_SINGLETON


class InMemoryReporter:
    """Reporter that keeps the most recent entries per scope in memory."""

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self.timings.setdefault(scope, deque(maxlen=self.max_entries)).append(
            (duration, metadata)
        )

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self.metrics.setdefault(scope, deque(maxlen=self.max_entries)).append(
            (value, metadata)
        )

    def total(self, scope: str) -> float:
        """Sum of numeric values recorded for a metric scope."""
        return sum(
            v for v, _ in self.metrics.get(scope, ()) if isinstance(v, int | float)
        )
