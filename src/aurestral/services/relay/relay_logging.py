# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the relay logging unit so this responsibility stays isolated, testable, and easy to evolve."""

from __future__ import annotations

import datetime
import uuid
import os
import json
from typing import Any, Dict, List

from aurestral.core.config import data_dir

MAX_LOG_ENTRIES = 100

# Global list to store relay exchanges for the current server process
relay_logs: List[Dict[str, Any]] = []

_SENSITIVE_HEADERS = ("authorization", "x-api-key")


def _dump_path() -> str:
    default_path = os.path.join(str(data_dir()), "logs", "relay_raw.log")
    return os.getenv("AUREST_RELAY_DUMP_PATH") or default_path


def add_relay_log(log_entry: Dict[str, Any]):
    """Add a log entry to the global list, keeping only the last 100 entries.

    If AUREST_RELAY_DUMP is set, also append the raw log to a file.
    """
    if log_entry not in relay_logs:
        relay_logs.append(log_entry)
        if len(relay_logs) > MAX_LOG_ENTRIES:
            relay_logs.pop(0)

    if os.getenv("AUREST_RELAY_DUMP") != "1":
        return

    log_path = _dump_path()
    try:
        os.makedirs(os.path.dirname(log_path), exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.write("=" * 80 + "\n")
            f.write(f"TIMESTAMP: {datetime.datetime.now().isoformat()}\n")
            f.write("-" * 80 + "\n")
            f.write(json.dumps(log_entry, indent=2, default=str) + "\n")
            f.write("=" * 80 + "\n\n")
    except OSError:
        # The dump is a dev-only aid; the relay must keep serving without it.
        pass


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {
        k: ("***" if k.lower() in _SENSITIVE_HEADERS else v) for k, v in headers.items()
    }


def create_log_entry(
    url: str, method: str, headers: Dict[str, str], body: Any
) -> Dict[str, Any]:
    """Create a new log entry structure for one relayed request."""
    return {
        "id": str(uuid.uuid4()),
        "timestamp_start": datetime.datetime.now().isoformat(),
        "timestamp_end": None,
        "request": {
            "url": url,
            "method": method,
            "headers": mask_headers(headers),
            "body": body,
        },
        "response": {
            "status_code": None,
            "streaming": True,
            "bytes_relayed": 0,
            "error_detail": None,
        },
    }


def finish_log_entry(log_entry: Dict[str, Any], error_detail: str | None = None) -> None:
    log_entry["timestamp_end"] = datetime.datetime.now().isoformat()
    if error_detail is not None:
        log_entry["response"]["error_detail"] = error_detail
    add_relay_log(log_entry)
