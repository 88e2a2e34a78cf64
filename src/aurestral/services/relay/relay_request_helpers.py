# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the relay request helpers unit so this responsibility stays isolated, testable, and easy to evolve."""

from __future__ import annotations

import json
from typing import Any, Dict

import httpx

from aurestral.services.exceptions import BadRequestError, ConfigurationError


def build_headers(api_key: str | None) -> Dict[str, str]:
    headers: Dict[str, str] = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def build_timeout(timeout_s: Any) -> httpx.Timeout:
    try:
        return httpx.Timeout(float(timeout_s or 60))
    except (TypeError, ValueError):
        return httpx.Timeout(60.0)


def require_api_key(relay_cfg: Dict[str, Any]) -> str:
    """Return the configured upstream credential or fail as a server misconfiguration."""
    api_key = relay_cfg.get("api_key")
    if not isinstance(api_key, str) or not api_key.strip():
        raise ConfigurationError("GROQ_API_KEY environment variable is not set.")
    return api_key.strip()


def parse_chat_body(raw_body: bytes) -> Dict[str, Any]:
    """Parse the incoming chat-completion request.

    Only the JSON shape is checked here; the body is forwarded byte for byte,
    so the provider stays the authority on field-level validation.
    """
    try:
        payload = json.loads(raw_body)
    except ValueError as exc:
        raise BadRequestError("Invalid JSON body.") from exc
    if not isinstance(payload, dict):
        raise BadRequestError("Invalid JSON body.")
    return payload
