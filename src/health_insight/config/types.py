"""Core configuration data types.

Configuration is resolved once at process start (``ResolvedConfig``, which
remembers where each value came from) and then frozen into ``HealthConfig``,
the object passed by reference into the pipeline and every call site.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, NamedTuple

from health_insight.core.types import Operation
from health_insight.exceptions import MissingKeyError

ConfigOrigin = Literal["programmatic", "env", "default"]
SourceMap = Mapping[str, ConfigOrigin]

# Which settings field holds the key for each operation.
OPERATION_KEY_FIELD: Mapping[Operation, str] = MappingProxyType(
    {
        Operation.REPORT_ANALYSIS: "report_api_key",
        Operation.CHAT: "chat_api_key",
        Operation.SPEECH: "chat_api_key",
        Operation.SYMPTOM_PREDICTION: "symptoms_api_key",
        Operation.HOSPITAL_LOOKUP: "hospitals_api_key",
        Operation.TIPS: "tips_api_key",
    }
)

_SECRET_SUFFIX = "api_key"


class ResolvedConfig(NamedTuple):
    """Configuration after merging all sources, before freezing."""

    values: Mapping[str, Any]
    origin: SourceMap

    def __str__(self) -> str:
        shown = {k: _redact(k, v) for k, v in self.values.items()}
        return f"ResolvedConfig(values={shown!r}, origin={dict(self.origin)!r})"

    def __repr__(self) -> str:
        return self.__str__()

    def to_frozen(self) -> "HealthConfig":
        v = self.values
        keys = {name: v.get(name) for name in set(OPERATION_KEY_FIELD.values())}
        return HealthConfig(
            api_key=v.get("api_key"),
            operation_keys=MappingProxyType(keys),
            model=v["model"],
            fallback_model=v["fallback_model"],
            tts_model=v["tts_model"],
            voice_name=v["voice_name"],
            request_timeout=v.get("request_timeout"),
            cors_origins=tuple(
                o.strip() for o in str(v.get("cors_origins", "*")).split(",") if o.strip()
            ),
        )

    def audit(self) -> str:
        """Redacted report of each field and the source it came from."""
        lines = []
        for name in sorted(self.values):
            shown = _redact(name, self.values[name])
            lines.append(f"{name}: {shown} ({self.origin.get(name, 'default')})")
        return "\n".join(lines)

    def redacted(self) -> dict[str, Any]:
        return {k: _redact(k, v) for k, v in self.values.items()}


@dataclass(frozen=True)
class HealthConfig:
    """Immutable configuration handed to the pipeline."""

    api_key: str | None
    model: str
    fallback_model: str
    tts_model: str
    voice_name: str
    operation_keys: Mapping[str, str | None] = field(
        default_factory=lambda: MappingProxyType({})
    )
    request_timeout: float | None = None
    cors_origins: tuple[str, ...] = ("*",)

    def key_for(self, operation: Operation) -> str:
        """Return the operation's own key, else the shared key.

        Raises:
            MissingKeyError: If neither is configured.
        """
        own = self.operation_keys.get(OPERATION_KEY_FIELD[operation])
        key = own or self.api_key
        if not key:
            raise MissingKeyError(
                f"No API key configured for {operation.label}. Set "
                f"HEALTH_INSIGHT_{OPERATION_KEY_FIELD[operation].upper()} or "
                "HEALTH_INSIGHT_API_KEY."
            )
        return key

    def __repr__(self) -> str:
        return (
            f"HealthConfig(model={self.model!r}, fallback_model={self.fallback_model!r}, "
            f"tts_model={self.tts_model!r}, voice_name={self.voice_name!r}, "
            f"request_timeout={self.request_timeout!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None})"
        )


def _redact(name: str, value: Any) -> Any:
    if name.endswith(_SECRET_SUFFIX):
        return "[REDACTED]" if value else None
    return value
