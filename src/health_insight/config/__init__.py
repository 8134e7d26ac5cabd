"""Configuration management for the health insight service.

Resolve once, freeze, then pass the frozen ``HealthConfig`` explicitly:

    config = resolve_config().to_frozen()
    assistant = HealthAssistant(config)
"""

from .introspection import get_config_info, print_effective_config
from .resolver import resolve_config
from .schema import HealthSettings
from .types import (
    OPERATION_KEY_FIELD,
    ConfigOrigin,
    HealthConfig,
    ResolvedConfig,
    SourceMap,
)

__all__ = [
    "OPERATION_KEY_FIELD",
    "ConfigOrigin",
    "HealthConfig",
    "HealthSettings",
    "ResolvedConfig",
    "SourceMap",
    "get_config_info",
    "print_effective_config",
    "resolve_config",
]
