# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the conftest unit so this responsibility stays isolated, testable, and easy to evolve."""

import os
import tempfile
import pytest
from pathlib import Path

# Global temporary directory for the whole test session
# This acts as a safety net to prevent tests from reading a developer's real
# relay.json/console.json or writing into the real data folder.
_SESSION_TEMP_DIR = None

_ISOLATED_VARS = (
    "AUREST_CONFIG_DIR",
    "AUREST_DATA_DIR",
    "GROQ_API_KEY",
    "GROQ_API_URL",
    "GROQ_TIMEOUT_S",
    "AUREST_RELAY_DUMP",
    "AUREST_CORS_ORIGINS",
    "AUREST_RELAY_URL",
    "AUREST_MODEL",
    "AUREST_SYSTEM_PROMPT",
    "AUREST_SESSIONS_PATH",
    "AUREST_MAX_TOKENS",
    "AUREST_TEMPERATURE",
)


@pytest.fixture(scope="session", autouse=True)
def session_temp_env():
    global _SESSION_TEMP_DIR
    _SESSION_TEMP_DIR = tempfile.TemporaryDirectory(prefix="aurest_test_session_")

    temp_config = Path(_SESSION_TEMP_DIR.name) / "config"
    temp_config.mkdir(parents=True, exist_ok=True)
    temp_data = Path(_SESSION_TEMP_DIR.name) / "data"
    temp_data.mkdir(parents=True, exist_ok=True)

    # Store originals
    originals = {name: os.environ.get(name) for name in _ISOLATED_VARS}
    for name in _ISOLATED_VARS:
        os.environ.pop(name, None)

    # Set session-wide defaults
    os.environ["AUREST_CONFIG_DIR"] = str(temp_config)
    os.environ["AUREST_DATA_DIR"] = str(temp_data)

    yield

    # Clean up
    if _SESSION_TEMP_DIR:
        _SESSION_TEMP_DIR.cleanup()

    # Restore originals if they were there
    for name, value in originals.items():
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)
