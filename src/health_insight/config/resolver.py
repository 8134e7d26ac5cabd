"""Configuration resolution with precedence handling.

Precedence: Programmatic > Environment (optionally primed from a .env file)
> Defaults.
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from health_insight.exceptions import ConfigurationError

from .schema import HealthSettings, env_var_for
from .types import ConfigOrigin, ResolvedConfig


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    use_env_file: str | Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources.

    Args:
        programmatic: Overrides with the highest precedence. Unknown fields are
            ignored.
        use_env_file: Optional ``.env`` file loaded into the environment first.
            Variables already set in the environment are not overridden.

    Returns:
        ResolvedConfig with merged values and the origin of every field.

    Raises:
        ConfigurationError: If the env file is missing or the merged values
            fail validation.

    Example:
        config = resolve_config({"model": "gemini-2.5-pro"}).to_frozen()
    """
    if use_env_file is not None:
        env_path = Path(use_env_file)
        if not env_path.exists():
            raise ConfigurationError(f"Environment file not found: {env_path}")
        load_dotenv(env_path, override=False)

    merged: dict[str, Any] = {}
    origin: dict[str, ConfigOrigin] = {}

    # Step 1: schema defaults
    for name, info in HealthSettings.model_fields.items():
        merged[name] = info.default
        origin[name] = "default"

    # Step 2: environment
    for name in HealthSettings.model_fields:
        env_name = env_var_for(name)
        if env_name in os.environ:
            merged[name] = os.environ[env_name]
            origin[name] = "env"

    # Step 3: programmatic overrides
    for name, value in (programmatic or {}).items():
        if name in merged:
            merged[name] = value
            origin[name] = "programmatic"

    # Step 4: validate the final mapping
    try:
        settings = HealthSettings(**merged)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed: {e.error_count()} error(s); "
            + "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
        ) from e

    return ResolvedConfig(values=settings.to_dict(), origin=origin)
