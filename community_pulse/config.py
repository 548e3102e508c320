from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    app_name: str = "Community Pulse"
    agent_base_url: str = os.getenv("PULSE_AGENT_BASE_URL", "http://localhost:8080")
    agent_model: str = os.getenv("PULSE_AGENT_MODEL", "claude-sonnet-4.5")
    agent_api_key: Optional[str] = os.getenv("PULSE_AGENT_API_KEY")
    agent_timeout: float = _env_float("PULSE_AGENT_TIMEOUT", 30.0)
    use_remote_agent: bool = _env_flag("PULSE_USE_REMOTE_AGENT")
    tick_interval: float = _env_float("PULSE_TICK_INTERVAL", 0.05)
    enrichment_interval: float = _env_float("PULSE_ENRICHMENT_INTERVAL", 5.0)
    enrichment_probability: float = _env_float("PULSE_ENRICHMENT_PROBABILITY", 0.3)
    typing_delay: float = _env_float("PULSE_TYPING_DELAY", 1.5)
    history_limit: int = _env_int("PULSE_HISTORY_LIMIT", 200)
    context_window: int = _env_int("PULSE_CONTEXT_WINDOW", 10)
    journal_limit: int = _env_int("PULSE_JOURNAL_LIMIT", 500)
    graph_push_interval: float = _env_float("PULSE_GRAPH_PUSH_INTERVAL", 0.2)
    sse_heartbeat: float = 20.0


def get_settings() -> Settings:
    return Settings()


settings = get_settings()
