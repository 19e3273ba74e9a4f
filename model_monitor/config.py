import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

SERVERLESS_ENV_MARKERS = ("VERCEL", "AWS_LAMBDA_FUNCTION_NAME", "NETLIFY")


class Settings(BaseSettings):
    api_base_url: str = "https://samuraiapi.in/v1"
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("MONITOR_API_KEY", "OPENAI_API_KEY"),
    )
    chat_timeout_seconds: float = 60.0
    discovery_timeout_seconds: float = 30.0
    probe_prompt: str = "Hello, are you working?"
    probe_max_tokens: int = 16
    connect_retries: int = 2
    batch_size: int = 10
    max_concurrent_batches: int = 0
    cache_ttl_seconds: float = 120.0
    refresh_interval_seconds: float = 120.0
    preload_lead_seconds: float = 60.0
    refresh_mode: Literal["interval", "lazy", "auto"] = "auto"
    overrides_path: str = ""
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "MONITOR_", "populate_by_name": True}

    def resolved_refresh_mode(self) -> str:
        """Pick the refresh policy; ``auto`` becomes ``lazy`` on serverless hosts."""
        if self.refresh_mode != "auto":
            return self.refresh_mode
        if any(os.getenv(marker) for marker in SERVERLESS_ENV_MARKERS):
            return "lazy"
        return "interval"


settings = Settings()


def load_overrides(path: str | None = None) -> dict:
    """Load optional catalog/classifier overrides from YAML.

    An empty path means no overrides. A configured path that does not exist is
    an error, same as a missing backend registry.
    """
    raw_path = settings.overrides_path if path is None else path
    if not raw_path:
        return {}
    config_path = Path(raw_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Overrides file not found: {config_path}")
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Overrides file must contain a mapping: {config_path}")
    return data


def override_list(overrides: dict, key: str) -> list[str] | None:
    """Return a cleaned string list from overrides, or None when absent."""
    values = overrides.get(key)
    if values is None:
        return None
    if not isinstance(values, list):
        raise ValueError(f"Override '{key}' must be a list")
    return [str(v).strip() for v in values if str(v).strip()]
