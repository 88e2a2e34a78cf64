# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat unit so this responsibility stays isolated, testable, and easy to evolve.

Pydantic models for chat messages, provider requests and persisted sessions.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """One role-tagged entry of a conversation; immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ChatCompletionRequest(BaseModel):
    """Request body for an OpenAI-compatible ``/chat/completions`` call."""

    model: str
    messages: list[ChatMessage]
    max_tokens: int = 2048
    temperature: float = 0.7
    stream: bool = True


class PersistedSession(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    timestamp: str


class SessionSummary(BaseModel):
    id: str
    timestamp: str
    message_count: int
