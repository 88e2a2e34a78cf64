# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the conversation unit so this responsibility stays isolated, testable, and easy to evolve.

Ordered, role-tagged message log for one chat session. The system message, if
any, is always the single entry at index 0.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, List

from aurestral.models.chat import ChatMessage
from aurestral.services.exceptions import BadRequestError


class ConversationState:
    def __init__(self, system_prompt: str | None = None):
        self._messages: List[ChatMessage] = []
        if system_prompt is not None:
            self.start(system_prompt)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self._messages)

    def __getitem__(self, index: int) -> ChatMessage:
        return self._messages[index]

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    @property
    def system_prompt(self) -> str | None:
        if self._messages and self._messages[0].role == "system":
            return self._messages[0].content
        return None

    def start(self, system_prompt: str) -> None:
        """Discard history and seed the system message (skipped when empty)."""
        self._messages = []
        if system_prompt:
            self._messages.append(ChatMessage(role="system", content=system_prompt))

    def clear(self) -> None:
        self._messages = []

    def append_user(self, content: str) -> ChatMessage:
        return self._append(ChatMessage(role="user", content=content))

    def append_assistant(self, content: str) -> ChatMessage:
        return self._append(ChatMessage(role="assistant", content=content))

    def _append(self, message: ChatMessage) -> ChatMessage:
        if message.role == "system":
            raise BadRequestError("system messages can only be set at index 0")
        self._messages.append(message)
        return message

    def set_system_prompt(self, content: str) -> None:
        """Replace the system prompt in place, or insert one at index 0."""
        message = ChatMessage(role="system", content=content)
        if self.system_prompt is not None:
            self._messages[0] = message
        else:
            self._messages.insert(0, message)

    def as_payload(self) -> List[dict]:
        return [m.model_dump() for m in self._messages]

    @classmethod
    def from_messages(cls, messages: Iterable[Any]) -> "ConversationState":
        """Rebuild a conversation from persisted messages.

        Only the first system message survives, moved to index 0; unknown
        roles and non-dict entries are dropped.
        """
        state = cls()
        system: ChatMessage | None = None
        for raw in messages:
            if isinstance(raw, ChatMessage):
                message = raw
            elif isinstance(raw, dict) and raw.get("role") in (
                "system",
                "user",
                "assistant",
            ):
                message = ChatMessage(
                    role=raw["role"], content=str(raw.get("content") or "")
                )
            else:
                continue
            if message.role == "system":
                if system is None:
                    system = message
                continue
            state._messages.append(message)
        if system is not None:
            state._messages.insert(0, system)
        return state
