"""Configuration loader -- reads config.yaml + .env, validates with Pydantic.

Resolves ${ENV_VAR} references in YAML values from environment variables.
Every section has defaults, so a missing config file still yields a working
dashboard running on demo data and the deterministic briefing.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Default home directory for all state files
DEFAULT_HOME = Path.home() / ".ruledesk"
HOME_ENV_VAR = "RULEDESK_HOME"

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} references in config values."""
    if isinstance(value, str):
        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                logger.warning("Environment variable %s not set", var_name)
                return match.group(0)  # leave unresolved
            return env_value
        return _ENV_REF.sub(replacer, value)
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8321


class MarketDataProviderConfig(BaseModel):
    enabled: bool = True
    extra: dict = Field(default_factory=dict)


class MarketDataConfig(BaseModel):
    index_symbol: str = "^IXIC"
    index_name: str = "NASDAQ Composite"
    universe: list[str] = Field(
        default_factory=lambda: ["AAPL", "NVDA", "MSFT", "GOOGL", "AMZN", "META"]
    )
    top_n: int = Field(default=4, ge=1)
    history_range: str = "1y"
    request_timeout: str = "15s"
    providers: dict[str, MarketDataProviderConfig] = Field(
        default_factory=lambda: {"yahoo_finance": MarketDataProviderConfig()}
    )


class AIProviderConfig(BaseModel):
    api_key: str = ""
    model: str = ""
    base_url: str = ""
    max_tokens: int = 500
    temperature: float = 0.3


class AIConfig(BaseModel):
    default_provider: str = "gemini"
    timeout: str = "20s"
    providers: dict[str, AIProviderConfig] = Field(default_factory=dict)


class RulesConfig(BaseModel):
    """Manual constants. Defaults match the written rules."""

    crash_threshold_percent: float = -3.0
    leadership_gap_percent: float = 10.0
    base_wait_days: int = 32
    extended_wait_days: int = 62
    extended_after_drops: int = 4


class RefreshConfig(BaseModel):
    enabled: bool = True
    interval: str = "60s"
    include_briefing: bool = True


class LoggingConfig(BaseModel):
    level: str = "INFO"
    audit_events: bool = True


class AppConfig(BaseModel):
    """Top-level application configuration."""

    home_dir: str = str(DEFAULT_HOME)
    server: ServerConfig = Field(default_factory=ServerConfig)
    market_data: MarketDataConfig = Field(default_factory=MarketDataConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def home_path(self) -> Path:
        """Resolved home directory as a Path."""
        return Path(self.home_dir).expanduser()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def default_home() -> Path:
    return Path(os.environ.get(HOME_ENV_VAR, str(DEFAULT_HOME))).expanduser()


def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Load configuration from YAML + .env files.

    1. Load .env into environment variables
    2. Load config.yaml and resolve ${ENV_VAR} references
    3. Validate against Pydantic models
    4. Create home directory structure if needed
    """
    home = default_home()

    if env_path is None:
        env_path = home / ".env"
    if config_path is None:
        config_path = home / "config.yaml"

    env_path = Path(env_path)
    config_path = Path(config_path)

    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)
    else:
        logger.debug("No .env file at %s", env_path)

    raw_config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    else:
        logger.warning("No config file at %s, using defaults", config_path)

    resolved = _resolve_env_vars(raw_config)

    if HOME_ENV_VAR in os.environ:
        resolved["home_dir"] = os.environ[HOME_ENV_VAR]

    config = AppConfig(**resolved)

    _ensure_directories(config.home_path)

    return config


def _ensure_directories(home: Path) -> None:
    """Create the state directory structure if it doesn't exist."""
    for d in (home, home / "events"):
        d.mkdir(parents=True, exist_ok=True)
