import pytest
from pydantic import ValidationError

from core.config import AppConfig, load_config


def test_defaults_without_files(tmp_path, monkeypatch):
    monkeypatch.setenv("RULEDESK_HOME", str(tmp_path / "home"))

    config = load_config(tmp_path / "missing.yaml", tmp_path / "missing.env")

    assert config.home_path == tmp_path / "home"
    assert (tmp_path / "home" / "events").is_dir()
    assert config.server.port == 8321
    assert config.market_data.index_symbol == "^IXIC"
    assert config.market_data.top_n == 4
    assert config.ai.default_provider == "gemini"
    assert config.rules.crash_threshold_percent == -3.0
    assert (config.rules.base_wait_days, config.rules.extended_wait_days) == (32, 62)
    assert config.refresh.interval == "60s"


def test_yaml_and_env_resolution(tmp_path, monkeypatch):
    monkeypatch.setenv("RULEDESK_HOME", str(tmp_path))
    monkeypatch.delenv("RULEDESK_TEST_KEY", raising=False)
    (tmp_path / ".env").write_text("RULEDESK_TEST_KEY=secret-123\n")
    (tmp_path / "config.yaml").write_text(
        "server:\n"
        "  port: 9000\n"
        "ai:\n"
        "  providers:\n"
        "    gemini:\n"
        "      api_key: ${RULEDESK_TEST_KEY}\n"
        "    openai:\n"
        "      api_key: ${RULEDESK_UNSET_KEY}\n"
        "rules:\n"
        "  base_wait_days: 10\n"
    )

    config = load_config()

    assert config.server.port == 9000
    assert config.ai.providers["gemini"].api_key == "secret-123"
    assert config.ai.providers["openai"].api_key == "${RULEDESK_UNSET_KEY}"
    assert config.rules.base_wait_days == 10


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        AppConfig(market_data={"top_n": 0})
