"""Retry with exponential backoff for provider calls.

Only server-side failures (status 500..599) are retried. Everything else,
including rate limiting (429) and malformed requests, propagates on first
occurrence. The wrapper holds no state between invocations.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
import random
from typing import TYPE_CHECKING

from health_insight.constants import (
    BACKOFF_MULTIPLIER,
    PATIENT_RETRY_ATTEMPTS,
    PATIENT_RETRY_JITTER,
    RETRY_ATTEMPTS,
    RETRY_BASE_DELAY,
    SERVER_ERROR_MAX,
    SERVER_ERROR_MIN,
)
from health_insight.telemetry import TelemetryContext

if TYPE_CHECKING:
    from health_insight.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

type Sleep = Callable[[float], Awaitable[object]]
type Uniform = Callable[[float, float], float]


def status_of(error: BaseException) -> int | None:
    """Return the HTTP-style status carried by a provider error, if any.

    ``google.genai.errors.APIError`` exposes it as ``code``; other clients use
    an integer ``status`` or ``status_code``.
    """
    for attr in ("code", "status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_server_error(status: int | None) -> bool:
    return status is not None and SERVER_ERROR_MIN <= status <= SERVER_ERROR_MAX


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many times to try a call and how long to wait in between.

    The wait before retry ``n`` (1-based) is
    ``initial_delay * multiplier ** (n - 1)`` plus ``uniform(0, jitter)``.
    Jitter only ever adds to the delay.
    """

    max_attempts: int = RETRY_ATTEMPTS
    initial_delay: float = RETRY_BASE_DELAY
    jitter: float = 0.0
    multiplier: float = BACKOFF_MULTIPLIER

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_delay < 0:
            raise ValueError(f"initial_delay must be >= 0, got {self.initial_delay}")
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {self.multiplier}")

    @classmethod
    def standard(cls) -> RetryPolicy:
        return cls()

    @classmethod
    def patient(cls) -> RetryPolicy:
        """More attempts, with jitter, for slow multimodal calls."""
        return cls(
            max_attempts=PATIENT_RETRY_ATTEMPTS,
            jitter=PATIENT_RETRY_JITTER,
        )

    @classmethod
    def none(cls) -> RetryPolicy:
        return cls(max_attempts=1)


async def retry_with_backoff[T](
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    label: str = "provider call",
    sleep: Sleep | None = None,
    uniform: Uniform | None = None,
    tele: TelemetryContextProtocol | None = None,
) -> T:
    """Await ``call()``, retrying server errors per ``policy``.

    Raises:
        Exception: The first non-server error, or the last server error once
            every attempt has failed.
    """
    policy = policy or RetryPolicy.standard()
    sleep = sleep or asyncio.sleep
    uniform = uniform or random.uniform
    tele = tele or TelemetryContext()

    delay = policy.initial_delay
    last_error: Exception | None = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await call()
        except Exception as error:
            status = status_of(error)
            if not is_server_error(status):
                raise
            last_error = error
            tele.count("retry.attempt", status=status)
            if attempt == policy.max_attempts:
                break
            wait = delay + (uniform(0.0, policy.jitter) if policy.jitter > 0 else 0.0)
            log.warning(
                "%s attempt %d/%d failed with status %d. Retrying in %.2fs",
                label,
                attempt,
                policy.max_attempts,
                status,
                wait,
            )
            tele.metric("retry.wait_seconds", wait, attempt=attempt)
            await sleep(wait)
            delay *= policy.multiplier
        else:
            if attempt > 1:
                tele.count("retry.recovered", attempt=attempt)
            return result

    log.error("%s failed after %d attempts.", label, policy.max_attempts)
    tele.count("retry.exhausted")
    if last_error is None:  # pragma: no cover - loop always records an error
        raise RuntimeError(f"{label} exhausted retries without an error")
    raise last_error
