"""Configuration introspection for debugging deployments."""

import json
from typing import Any, TextIO

from .types import ResolvedConfig

# ruff: noqa: T201


def get_config_info(resolved: ResolvedConfig) -> dict[str, Any]:
    """Structured, redacted view of the effective configuration."""
    frozen = resolved.to_frozen()
    return {
        "config": resolved.redacted(),
        "sources": dict(resolved.origin),
        "warnings": _get_config_warnings(resolved),
        "has_shared_key": frozen.api_key is not None,
    }


def print_effective_config(
    resolved: ResolvedConfig, *, as_json: bool = False, out: TextIO | None = None
) -> None:
    if as_json:
        print(json.dumps(get_config_info(resolved), indent=2, default=str), file=out)
        return

    print("=== Effective Configuration ===", file=out)
    for line in resolved.audit().splitlines():
        print(f"  {line}", file=out)

    warnings = _get_config_warnings(resolved)
    if warnings:
        print("\nWarnings:", file=out)
        for warning in warnings:
            print(f"  - {warning}", file=out)


def _get_config_warnings(resolved: ResolvedConfig) -> list[str]:
    values = resolved.values
    warnings = []
    missing = [
        name
        for name in (
            "report_api_key",
            "chat_api_key",
            "symptoms_api_key",
            "hospitals_api_key",
            "tips_api_key",
        )
        if not values.get(name)
    ]
    if not values.get("api_key") and missing:
        warnings.append(
            "No shared API key and no operation key for: " + ", ".join(missing)
        )
    if values.get("model") == values.get("fallback_model"):
        warnings.append("fallback_model equals model; escalation will retry the same model")
    if values.get("request_timeout") is None:
        warnings.append("request_timeout is unset; calls are bounded only by the transport")
    return warnings
