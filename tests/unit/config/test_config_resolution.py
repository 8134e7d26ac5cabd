import io
import json

import pytest

from health_insight.config import (
    get_config_info,
    print_effective_config,
    resolve_config,
)
from health_insight.core.types import Operation
from health_insight.exceptions import ConfigurationError, MissingKeyError

pytestmark = pytest.mark.unit


def test_defaults_apply_when_nothing_is_set():
    resolved = resolve_config()
    config = resolved.to_frozen()
    assert config.model == "gemini-2.5-flash"
    assert config.fallback_model == "gemini-2.0-flash"
    assert config.tts_model == "gemini-2.5-flash-preview-tts"
    assert config.voice_name == "Kore"
    assert config.request_timeout is None
    assert config.cors_origins == ("*",)
    assert set(resolved.origin.values()) == {"default"}


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("HEALTH_INSIGHT_MODEL", "gemini-2.5-pro")
    monkeypatch.setenv("HEALTH_INSIGHT_REQUEST_TIMEOUT", "30")
    resolved = resolve_config()
    assert resolved.to_frozen().model == "gemini-2.5-pro"
    assert resolved.to_frozen().request_timeout == 30.0
    assert resolved.origin["model"] == "env"


def test_programmatic_overrides_environment(monkeypatch):
    monkeypatch.setenv("HEALTH_INSIGHT_MODEL", "from-env")
    resolved = resolve_config({"model": "from-code", "unknown_field": 1})
    assert resolved.to_frozen().model == "from-code"
    assert resolved.origin["model"] == "programmatic"
    assert "unknown_field" not in resolved.values


def test_env_file_primes_but_never_overrides(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "HEALTH_INSIGHT_API_KEY=from-file\nHEALTH_INSIGHT_VOICE_NAME=Puck\n"
    )
    monkeypatch.setenv("HEALTH_INSIGHT_VOICE_NAME", "Charon")
    # load_dotenv writes into os.environ; register the key so monkeypatch
    # restores it afterwards.
    monkeypatch.setenv("HEALTH_INSIGHT_API_KEY", "")
    monkeypatch.delenv("HEALTH_INSIGHT_API_KEY")

    config = resolve_config(use_env_file=env_file).to_frozen()

    assert config.api_key == "from-file"
    assert config.voice_name == "Charon"


def test_missing_env_file_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        resolve_config(use_env_file=tmp_path / "absent.env")


def test_invalid_values_raise_configuration_error(monkeypatch):
    monkeypatch.setenv("HEALTH_INSIGHT_REQUEST_TIMEOUT", "-5")
    with pytest.raises(ConfigurationError, match="request_timeout"):
        resolve_config()


def test_operation_key_falls_back_to_shared_key():
    config = resolve_config(
        {"api_key": "shared", "symptoms_api_key": "symptoms"}
    ).to_frozen()
    assert config.key_for(Operation.SYMPTOM_PREDICTION) == "symptoms"
    assert config.key_for(Operation.TIPS) == "shared"
    assert config.key_for(Operation.SPEECH) == "shared"


def test_speech_uses_the_chat_key():
    config = resolve_config({"chat_api_key": "chat"}).to_frozen()
    assert config.key_for(Operation.SPEECH) == "chat"
    assert config.key_for(Operation.CHAT) == "chat"


def test_missing_key_names_the_variables():
    config = resolve_config({"report_api_key": "   "}).to_frozen()
    with pytest.raises(MissingKeyError) as exc_info:
        config.key_for(Operation.REPORT_ANALYSIS)
    message = str(exc_info.value)
    assert "HEALTH_INSIGHT_REPORT_API_KEY" in message
    assert "HEALTH_INSIGHT_API_KEY" in message


def test_cors_origins_are_split():
    config = resolve_config(
        {"cors_origins": "https://a.example, https://b.example,"}
    ).to_frozen()
    assert config.cors_origins == ("https://a.example", "https://b.example")


def test_secrets_are_redacted_everywhere():
    resolved = resolve_config({"api_key": "sk-secret", "tips_api_key": "tk-secret"})
    frozen = resolved.to_frozen()
    for rendered in (str(resolved), repr(resolved), repr(frozen), resolved.audit()):
        assert "sk-secret" not in rendered
        assert "tk-secret" not in rendered
    assert resolved.redacted()["api_key"] == "[REDACTED]"
    assert resolved.redacted()["chat_api_key"] is None


def test_config_info_reports_sources_and_warnings():
    info = get_config_info(resolve_config({"model": "gemini-2.0-flash"}))
    assert info["sources"]["model"] == "programmatic"
    assert info["has_shared_key"] is False
    assert any("No shared API key" in w for w in info["warnings"])
    assert any("fallback_model equals model" in w for w in info["warnings"])


def test_print_effective_config_json_is_parseable():
    out = io.StringIO()
    print_effective_config(resolve_config({"api_key": "k"}), as_json=True, out=out)
    data = json.loads(out.getvalue())
    assert data["config"]["api_key"] == "[REDACTED]"


def test_print_effective_config_text_lists_origins():
    out = io.StringIO()
    print_effective_config(resolve_config({"api_key": "k"}), out=out)
    text = out.getvalue()
    assert "api_key: [REDACTED] (programmatic)" in text
    assert "model: gemini-2.5-flash (default)" in text
