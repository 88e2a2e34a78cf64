# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# Purpose: Defines the session store unit so this responsibility stays isolated, testable, and easy to evolve.

"""Client-side chat session persistence.

All sessions live in one JSON blob shaped as
``{session_id: {"messages": [...], "timestamp": ISO-8601}}``.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List

from pydantic import ValidationError

from aurestral.models.chat import ChatMessage, PersistedSession, SessionSummary
from aurestral.services.exceptions import NotFoundError, PersistenceError


def _now_iso() -> str:
    return datetime.now().isoformat()


class SessionStore:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read sessions from {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Sessions file {self.path} is not a JSON object")
        return data

    def _write_all(self, data: Dict[str, dict]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Cannot write sessions to {self.path}: {exc}") from exc

    def list_sessions(self) -> List[SessionSummary]:
        results = []
        for session_id, raw in self._read_all().items():
            if not isinstance(raw, dict):
                continue
            messages = raw.get("messages")
            results.append(
                SessionSummary(
                    id=session_id,
                    timestamp=str(raw.get("timestamp") or ""),
                    message_count=len(messages) if isinstance(messages, list) else 0,
                )
            )
        results.sort(key=lambda item: item.timestamp, reverse=True)
        return results

    def load_session(self, session_id: str) -> PersistedSession:
        raw = self._read_all().get(session_id)
        if raw is None:
            raise NotFoundError(f"Session '{session_id}' not found")
        try:
            return PersistedSession.model_validate(raw)
        except ValidationError as exc:
            raise PersistenceError(f"Session '{session_id}' is corrupt: {exc}") from exc

    def save_session(
        self, session_id: str, messages: Iterable[ChatMessage]
    ) -> PersistedSession:
        session = PersistedSession(messages=list(messages), timestamp=_now_iso())
        data = self._read_all()
        data[session_id] = session.model_dump()
        self._write_all(data)
        return session

    def delete_session(self, session_id: str) -> bool:
        data = self._read_all()
        if session_id not in data:
            return False
        del data[session_id]
        self._write_all(data)
        return True

    def delete_all(self) -> None:
        self._write_all({})
