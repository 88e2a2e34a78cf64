# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Post-turn hooks that a ChatSession runs after each completed reply.

The console CLI wires only the persistence hook. Speech is left to an external
collaborator: any object with a ``speak(text)`` method (a platform TTS engine)
can be passed to ``speech_side_effect`` by whoever builds the ChatSession.
"""

from __future__ import annotations

from typing import Any, Protocol

from aurestral.console.orchestrator import ChatSession, SideEffect
from aurestral.console.session_store import SessionStore


class SpeechOutput(Protocol):
    """Anything that can read a reply aloud (platform TTS engines plug in here)."""

    def speak(self, text: str) -> Any: ...


def speech_side_effect(speaker: SpeechOutput) -> SideEffect:
    def _speak(_session: ChatSession, reply: str) -> Any:
        if reply.strip():
            return speaker.speak(reply)
        return None

    return _speak


def persistence_side_effect(store: SessionStore) -> SideEffect:
    """Save the whole conversation under the session id after every reply."""

    def _save(session: ChatSession, _reply: str) -> None:
        store.save_session(session.session_id, session.conversation.messages)

    return _save
