# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the orchestrator unit so this responsibility stays isolated, testable, and easy to evolve.

Drives one chat round trip: record the user turn, post the conversation to the
relay, stream the reply into a single display region, record the assistant
turn and run the configured side effects (speech, persistence).

States: IDLE -> AWAITING_RESPONSE -> IDLE. Only one turn may be awaiting a
response per session; overlapping submissions are rejected, not queued.
"""

from __future__ import annotations

import inspect
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

import httpx

from aurestral.console.conversation import ConversationState
from aurestral.models.chat import ChatCompletionRequest
from aurestral.services.exceptions import (
    BadRequestError,
    ConfigurationError,
    ServiceError,
    SessionBusyError,
    UpstreamApplicationError,
    UpstreamError,
)
from aurestral.utils.stream_helpers import SSEStreamDecoder


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"


class TurnStatus(str, Enum):
    COMPLETED = "completed"
    NETWORK_ERROR = "network_error"
    API_ERROR = "api_error"
    REJECTED = "rejected"


@dataclass
class TurnOutcome:
    status: TurnStatus
    text: str = ""
    error: Optional[ServiceError] = None
    skipped_lines: int = 0
    side_effect_errors: List[ServiceError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is TurnStatus.COMPLETED


class ReplyDisplay(Protocol):
    """A single growing output region for one assistant reply."""

    def begin_reply(self) -> None: ...

    def append(self, fragment: str) -> None: ...

    def end_reply(self, text: str) -> None: ...


# Called as hook(session, reply_text) after each completed turn; may be async.
SideEffect = Callable[["ChatSession", str], Any]


@dataclass
class GenerationSettings:
    model: str
    max_tokens: int = 2048
    temperature: float = 0.7
    stream: bool = True

    @classmethod
    def from_config(cls, console_cfg: Dict[str, Any]) -> "GenerationSettings":
        """Raises ConfigurationError when a numeric setting does not parse."""
        try:
            max_tokens = int(console_cfg.get("max_tokens") or 2048)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"max_tokens must be an integer, got {console_cfg.get('max_tokens')!r}"
            ) from exc
        try:
            temperature = float(console_cfg.get("temperature", 0.7))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"temperature must be a number, got {console_cfg.get('temperature')!r}"
            ) from exc
        return cls(
            model=str(console_cfg.get("model") or ""),
            max_tokens=max_tokens,
            temperature=temperature,
        )


class ChatSession:
    def __init__(
        self,
        *,
        relay_url: str,
        settings: GenerationSettings,
        display: ReplyDisplay,
        system_prompt: str = "",
        session_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        side_effects: Iterable[SideEffect] = (),
        on_skip: Optional[Callable[[str], None]] = None,
    ):
        self.relay_url = relay_url
        self.settings = settings
        self.display = display
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.conversation = ConversationState(system_prompt)
        self.state = SessionState.IDLE
        self.side_effects: List[SideEffect] = list(side_effects)
        self.on_skip = on_skip
        self._client = client

    def reset(self) -> None:
        """Drop the history but keep the current system prompt."""
        self.conversation.start(self.conversation.system_prompt or "")

    def build_request(self) -> ChatCompletionRequest:
        return ChatCompletionRequest(
            model=self.settings.model,
            messages=self.conversation.messages,
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
            stream=self.settings.stream,
        )

    async def submit(self, text: str) -> TurnOutcome:
        if not text or not text.strip():
            return TurnOutcome(
                TurnStatus.REJECTED, error=BadRequestError("message is empty")
            )
        if self.state is SessionState.AWAITING_RESPONSE:
            return TurnOutcome(
                TurnStatus.REJECTED,
                error=SessionBusyError("a reply is still streaming; wait for it to finish"),
            )

        # No await between the check above and this assignment.
        self.state = SessionState.AWAITING_RESPONSE
        try:
            return await self._run_turn(text)
        finally:
            self.state = SessionState.IDLE

    async def _run_turn(self, text: str) -> TurnOutcome:
        self.conversation.append_user(text)
        body = self.build_request().model_dump()
        decoder = SSEStreamDecoder(on_skip=self.on_skip)

        client = self._client or httpx.AsyncClient(timeout=None)
        began = False
        try:
            async with client.stream("POST", self.relay_url, json=body) as response:
                if not response.is_success:
                    error_body = await response.aread()
                    return TurnOutcome(
                        TurnStatus.API_ERROR,
                        error=UpstreamApplicationError(
                            error_body.decode("utf-8", errors="replace"),
                            status_code=response.status_code,
                        ),
                    )

                self.display.begin_reply()
                began = True
                async for fragment in decoder.iter_fragments(response.aiter_bytes()):
                    self.display.append(fragment)
        except httpx.HTTPError as exc:
            if began:
                self.display.end_reply(decoder.text)
            return TurnOutcome(
                TurnStatus.NETWORK_ERROR,
                text=decoder.text,
                error=UpstreamError(f"Network error: {exc}"),
                skipped_lines=decoder.skipped_lines,
            )
        finally:
            if client is not self._client:
                await client.aclose()

        self.display.end_reply(decoder.text)
        self.conversation.append_assistant(decoder.text)
        outcome = TurnOutcome(
            TurnStatus.COMPLETED,
            text=decoder.text,
            skipped_lines=decoder.skipped_lines,
        )
        outcome.side_effect_errors = await self._run_side_effects(decoder.text)
        return outcome

    async def _run_side_effects(self, reply: str) -> List[ServiceError]:
        errors: List[ServiceError] = []
        for hook in self.side_effects:
            try:
                result = hook(self, reply)
                if inspect.isawaitable(result):
                    await result
            except ServiceError as exc:
                errors.append(exc)
        return errors
