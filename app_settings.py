"""Application configuration helpers for the Streamlit chat surface."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import streamlit as st


DEFAULT_COMPLETION_URL = "https://api.deepseek.com/v1/chat/completions"
DEFAULT_COMPLETION_MODEL = "deepseek-chat"
DEFAULT_PLANTNET_URL = "https://my-api.plantnet.org/v2/identify/all"
DEFAULT_DONATE_URL = "https://buymeacoffee.com/avoai"
QUOTA_BACKENDS = ("rocksdict", "memory")


@dataclass(frozen=True)
class AppSettings:
    """Immutable configuration bundle for the chat client."""

    completion_api_url: str
    completion_api_key: str | None
    completion_model: str
    max_tokens: int
    stream_completions: bool
    request_timeout: int
    plantnet_api_url: str
    plantnet_api_key: str | None
    openai_api_key: str | None
    question_limit: int
    plant_limit: int
    quota_backend: str
    quota_store_path: str
    image_classifier: str | None
    donate_url: str
    log_level: str


def _safe_secret(key: str) -> Any:
    """Return a Streamlit secret when available."""

    try:
        return st.secrets.get(key)
    except Exception:
        return None


def _lookup(key: str) -> Any:
    return _safe_secret(key) or os.getenv(key)


def _coerce_bool(value: Any, default: bool = False) -> bool:
    """Parse truthy/falsey strings and primitives into booleans."""

    if isinstance(value, bool):
        return value
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if not text:
        return default
    if text in {"1", "true", "yes", "on", "enabled", "enable"}:
        return True
    if text in {"0", "false", "no", "off", "disabled", "disable"}:
        return False
    return default


def _coerce_int(value: Any, default: int, *, minimum: int = 0) -> int:
    """Parse a non-negative integer, falling back to ``default``."""

    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    if parsed < minimum:
        return default
    return parsed


def load_settings() -> AppSettings:
    """Collect runtime configuration from environment and secrets."""

    backend = str(_lookup("QUOTA_BACKEND") or "rocksdict").strip().lower()
    if backend not in QUOTA_BACKENDS:
        backend = "rocksdict"
    return AppSettings(
        completion_api_url=str(_lookup("COMPLETION_API_URL") or DEFAULT_COMPLETION_URL),
        completion_api_key=_lookup("COMPLETION_API_KEY"),
        completion_model=str(_lookup("COMPLETION_MODEL") or DEFAULT_COMPLETION_MODEL),
        max_tokens=_coerce_int(_lookup("COMPLETION_MAX_TOKENS"), 2000, minimum=1),
        stream_completions=_coerce_bool(_lookup("STREAM_COMPLETIONS"), default=True),
        request_timeout=_coerce_int(_lookup("REQUEST_TIMEOUT"), 60, minimum=1),
        plantnet_api_url=str(_lookup("PLANTNET_API_URL") or DEFAULT_PLANTNET_URL),
        plantnet_api_key=_lookup("PLANTNET_API_KEY"),
        openai_api_key=_lookup("OPENAI_API_KEY"),
        question_limit=_coerce_int(_lookup("DAILY_QUESTION_LIMIT"), 5, minimum=1),
        plant_limit=_coerce_int(_lookup("DAILY_PLANT_LIMIT"), 3, minimum=1),
        quota_backend=backend,
        quota_store_path=str(_lookup("QUOTA_STORE_PATH") or "quota-data"),
        image_classifier=_lookup("IMAGE_CLASSIFIER") or None,
        donate_url=str(_lookup("DONATE_URL") or DEFAULT_DONATE_URL),
        log_level=str(_lookup("LOG_LEVEL") or "INFO").upper(),
    )


__all__ = ["AppSettings", "QUOTA_BACKENDS", "load_settings"]
