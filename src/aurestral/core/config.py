# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# Purpose: Defines the config unit so this responsibility stays isolated, testable, and easy to evolve.

"""
Configuration loading utilities for Aurestral.

Conventions:
- Relay config: resources/config/relay.json (server side, holds the credential)
- Console config: resources/config/console.json (client side, never sees the credential)
- Environment variables override JSON values.
- JSON values can reference environment variables using ${VAR_NAME} placeholders.

Only generic JSON dicts are returned; callers pick the keys they need.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent
RESOURCES_DIR = BASE_DIR / "resources"


def config_dir() -> Path:
    return Path(os.getenv("AUREST_CONFIG_DIR") or RESOURCES_DIR / "config")


def data_dir() -> Path:
    return Path(os.getenv("AUREST_DATA_DIR") or BASE_DIR / "data")


DEFAULT_UPSTREAM_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_MODEL = "moonshotai/kimi-k2-instruct-0905"
DEFAULT_SYSTEM_PROMPT = (
    "You are Aurestral, a AI assistant created by the Aurestral.Console "
    "(website: aurestral.carrd.co). Your goal is to chat with and help the user."
)

RELAY_DEFAULTS: Dict[str, Any] = {
    "relay": {
        "api_key": None,
        "upstream_url": DEFAULT_UPSTREAM_URL,
        "timeout_s": 60,
        "cors_origins": [],
    }
}

CONSOLE_DEFAULTS: Dict[str, Any] = {
    "console": {
        "relay_url": "http://127.0.0.1:8000/api/v1/relay",
        "model": DEFAULT_MODEL,
        "max_tokens": 2048,
        "temperature": 0.7,
        "system_prompt": DEFAULT_SYSTEM_PROMPT,
        "sessions_path": None,
    }
}


_ENV_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _interpolate_env(value: Any) -> Any:
    """Interpolate ${VAR} placeholders within strings using environment variables.

    Non-string types are returned unchanged.
    """
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, match.group(0))  # leave placeholder if unset

        return _ENV_PATTERN.sub(replace, value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(v) for v in value]
    return value


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Deeply merge mapping 'override' into dict 'base'. Returns new dict.

    - For dict values, merges recursively.
    - For lists and scalars, override replaces base.
    """
    result: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if isinstance(v, Mapping) and isinstance(result.get(k), Mapping):
            result[k] = _deep_merge(dict(result[k]), v)  # type: ignore[index]
        else:
            result[k] = v
    return result


def load_json_file(path: os.PathLike[str] | str | None) -> Dict[str, Any]:
    """Load JSON from path if it exists; return empty dict if missing.

    Raises ValueError for malformed JSON.
    """
    if path is None:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON at {p}: {e}") from e


def _as_number(raw: str, cast) -> Any:
    try:
        return cast(raw)
    except ValueError:
        return raw


def _env_overrides_for_relay() -> Dict[str, Any]:
    """Collect GROQ_* / AUREST_CORS_ORIGINS environment variables.

    Supported variables:
    - GROQ_API_KEY -> relay.api_key
    - GROQ_API_URL -> relay.upstream_url
    - GROQ_TIMEOUT_S -> relay.timeout_s (int if parseable)
    - AUREST_CORS_ORIGINS -> relay.cors_origins (comma separated)
    """
    relay: Dict[str, Any] = {}
    api_key = os.getenv("GROQ_API_KEY")
    upstream_url = os.getenv("GROQ_API_URL")
    timeout_s = os.getenv("GROQ_TIMEOUT_S")
    origins = os.getenv("AUREST_CORS_ORIGINS")

    if api_key is not None:
        relay["api_key"] = api_key
    if upstream_url is not None:
        relay["upstream_url"] = upstream_url
    if timeout_s is not None:
        relay["timeout_s"] = _as_number(timeout_s, int)
    if origins is not None:
        relay["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]
    return {"relay": relay} if relay else {}


def _env_overrides_for_console() -> Dict[str, Any]:
    """Collect AUREST_* console environment variables into the console section."""
    console: Dict[str, Any] = {}
    simple = {
        "AUREST_RELAY_URL": "relay_url",
        "AUREST_MODEL": "model",
        "AUREST_SYSTEM_PROMPT": "system_prompt",
        "AUREST_SESSIONS_PATH": "sessions_path",
    }
    for env_name, key in simple.items():
        value = os.getenv(env_name)
        if value is not None:
            console[key] = value

    max_tokens = os.getenv("AUREST_MAX_TOKENS")
    if max_tokens is not None:
        console["max_tokens"] = _as_number(max_tokens, int)
    temperature = os.getenv("AUREST_TEMPERATURE")
    if temperature is not None:
        console["temperature"] = _as_number(temperature, float)
    return {"console": console} if console else {}


def _load_layered(
    path: os.PathLike[str] | str | None,
    defaults: Optional[Mapping[str, Any]],
    env_overrides: Dict[str, Any],
) -> Dict[str, Any]:
    json_config = _interpolate_env(load_json_file(path))
    # Merge JSON over defaults, then env over that
    merged = _deep_merge(dict(defaults or {}), json_config)
    return _deep_merge(merged, env_overrides)


def load_relay_config(
    path: os.PathLike[str] | str | None = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Load relay configuration applying precedence and interpolation.

    Precedence: env overrides > JSON file > defaults
    """
    if path is None:
        path = config_dir() / "relay.json"
    if defaults is None:
        defaults = RELAY_DEFAULTS
    return _load_layered(path, defaults, _env_overrides_for_relay())


def load_console_config(
    path: os.PathLike[str] | str | None = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Load console configuration applying precedence and interpolation.

    Precedence: env overrides > JSON file > defaults
    """
    if path is None:
        path = config_dir() / "console.json"
    if defaults is None:
        defaults = CONSOLE_DEFAULTS
    return _load_layered(path, defaults, _env_overrides_for_console())


def default_sessions_path() -> Path:
    return data_dir() / "sessions.json"
