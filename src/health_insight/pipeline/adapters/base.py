"""Provider adapter seam.

The pipeline speaks only in ``GenerationRequest`` and ``ProviderResponse``.
Adapters translate those to and from a concrete SDK. Errors raised by an
adapter should expose the provider status (``code``, ``status`` or
``status_code``) so the retry policy can classify them.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from health_insight.core.types import GenerationRequest, ProviderResponse


@runtime_checkable
class GenerationAdapter(Protocol):
    """Issues one provider call. Never retries."""

    async def generate(self, request: GenerationRequest) -> ProviderResponse: ...


# Builds an adapter bound to one API key.
type AdapterFactory = Callable[[str], GenerationAdapter]
