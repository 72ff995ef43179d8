from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables (and a local .env file).

    Env vars:
    - STORAGE_BACKEND: 'memory' (default), 'json' or 'sqlite'
    - JSON_STORAGE_DIR: directory holding one JSON file per collection. Default './data'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/planner.db'
    - WRITE_BEHIND: 'true' (default) to persist on a background worker after each mutation
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - ASSISTANT_API_URL: base URL of an OpenAI-compatible chat completion API
    - ASSISTANT_API_KEY: API key; when empty only the local intent parser answers
    - ASSISTANT_MODEL: model name sent to the assistant API
    - ASSISTANT_TIMEOUT: request timeout in seconds (default 10)
    - RANDOM_SEED: optional integer seed for the decorative image index
    - LOG_LEVEL: root log level (default INFO)
    """

    storage_backend: str
    json_storage_dir: str
    sqlite_db_path: str
    write_behind: bool
    cors_allow_origins: List[str]
    assistant_api_url: str
    assistant_api_key: Optional[str]
    assistant_model: str
    assistant_timeout: float
    random_seed: Optional[int]
    log_level: str

    @property
    def assistant_enabled(self) -> bool:
        return bool(self.assistant_api_key)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    load_dotenv()

    backend = _get_env("STORAGE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "json", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    api_key = os.getenv("ASSISTANT_API_KEY", "").strip()

    return Settings(
        storage_backend=backend,
        json_storage_dir=_get_env("JSON_STORAGE_DIR", "./data").strip(),
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/planner.db").strip(),
        write_behind=_parse_bool(_get_env("WRITE_BEHIND", "true"), True),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        assistant_api_url=_get_env("ASSISTANT_API_URL", "https://api.deepseek.com/v1").strip().rstrip("/"),
        assistant_api_key=api_key or None,
        assistant_model=_get_env("ASSISTANT_MODEL", "deepseek-chat").strip(),
        assistant_timeout=_parse_float(_get_env("ASSISTANT_TIMEOUT", "10"), 10.0),
        random_seed=_parse_optional_int(os.getenv("RANDOM_SEED")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
