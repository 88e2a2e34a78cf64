# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the controller unit so this responsibility stays isolated, testable, and easy to evolve.

Routes console input either to a command handler or, in chat mode, to the
active ChatSession as a chat turn.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Protocol

from aurestral.console import commands as cmd
from aurestral.console.conversation import ConversationState
from aurestral.console.orchestrator import ChatSession, ReplyDisplay, TurnOutcome, TurnStatus
from aurestral.console.session_store import SessionStore
from aurestral.services.exceptions import (
    CommandSyntaxError,
    NotFoundError,
    PersistenceError,
    UpstreamApplicationError,
)

IDLE_PROMPT = "Enter command..."
CHAT_PROMPT = "Chat with Aurestral... (type `descent` to exit)"


class ConsoleOutput(ReplyDisplay, Protocol):
    def info(self, text: str) -> None: ...

    def success(self, text: str) -> None: ...

    def notice(self, text: str) -> None: ...

    def error(self, text: str) -> None: ...


# Builds a session for (session_id, system_prompt); session_id None means "new".
SessionFactory = Callable[[Optional[str], str], ChatSession]


class ConsoleController:
    def __init__(
        self,
        *,
        output: ConsoleOutput,
        session_factory: SessionFactory,
        system_prompt: str,
        store: Optional[SessionStore] = None,
    ):
        self.output = output
        self.session_factory = session_factory
        self.system_prompt = system_prompt
        self.store = store
        self.session: Optional[ChatSession] = None
        self._handlers: Dict[type, Callable] = {
            cmd.EnterChat: self._enter_chat,
            cmd.ExitChat: self._exit_chat,
            cmd.ShowSystemPrompt: self._show_system_prompt,
            cmd.SetSystemPrompt: self._set_system_prompt,
            cmd.ResetChat: self._reset_chat,
            cmd.ListSessions: self._list_sessions,
            cmd.NewSession: self._new_session,
            cmd.LoadSession: self._load_session,
            cmd.DeleteSession: self._delete_session,
            cmd.DeleteAllSessions: self._delete_all_sessions,
            cmd.ShowHelp: self._show_help,
        }

    @property
    def in_chat_mode(self) -> bool:
        return self.session is not None

    @property
    def prompt(self) -> str:
        return CHAT_PROMPT if self.in_chat_mode else IDLE_PROMPT

    async def handle(self, raw: str) -> Optional[TurnOutcome]:
        """Process one input line; returns the turn outcome for chat input."""
        if not raw.strip():
            return None
        try:
            command = cmd.parse_command(raw)
        except CommandSyntaxError as exc:
            if self.session is None:
                self.output.error(f"Error: {exc.detail}")
                return None
            # In chat mode only a well-formed command counts as one.
            command = None

        if command is None:
            if self.session is None:
                self.output.error("Command not recognized")
                return None
            outcome = await self.session.submit(raw)
            self._report_outcome(outcome)
            return outcome

        try:
            self._handlers[type(command)](command)
        except (NotFoundError, PersistenceError) as exc:
            self.output.error(f"Error: {exc.detail}")
        return None

    def _report_outcome(self, outcome: TurnOutcome) -> None:
        if outcome.status is TurnStatus.COMPLETED:
            if outcome.skipped_lines:
                self.output.notice(
                    f"({outcome.skipped_lines} malformed stream line(s) skipped)"
                )
            for exc in outcome.side_effect_errors:
                self.output.error(f"Error: {exc.detail}")
            return

        error = outcome.error
        detail = error.detail if error is not None else outcome.status.value
        if isinstance(error, UpstreamApplicationError):
            self.output.error(f"API error ({error.status_code}): {detail}")
        else:
            self.output.error(detail)

    def _start_session(self, session_id: Optional[str] = None) -> ChatSession:
        self.session = self.session_factory(session_id, self.system_prompt)
        return self.session

    # ---- command handlers ----

    def _enter_chat(self, _command: cmd.EnterChat) -> None:
        if self.session is not None:
            self.output.info("Already in chat mode.")
            return
        session = self._start_session()
        self.output.success(
            f"Chat mode activated ({session.settings.model}, session {session.session_id})."
        )
        self.output.info("Aurestral: Ready when you are, sir.")

    def _exit_chat(self, _command: cmd.ExitChat) -> None:
        if self.session is not None:
            self.session.conversation.clear()
            self.session = None
        self.output.info("Exiting Chat Mode.")

    def _show_system_prompt(self, _command: cmd.ShowSystemPrompt) -> None:
        self.output.info(f'system = "{self.system_prompt}"')

    def _set_system_prompt(self, command: cmd.SetSystemPrompt) -> None:
        self.system_prompt = command.value
        if self.session is not None:
            self.session.conversation.set_system_prompt(command.value)
        self.output.success("System prompt updated.")

    def _reset_chat(self, _command: cmd.ResetChat) -> None:
        if self.session is None:
            self.output.error("Error: not in chat mode")
            return
        self.session.reset()
        self.output.success("Chat history cleared.")

    def _require_store(self) -> SessionStore:
        if self.store is None:
            raise PersistenceError("session storage is disabled")
        return self.store

    def _list_sessions(self, _command: cmd.ListSessions) -> None:
        sessions = self._require_store().list_sessions()
        if not sessions:
            self.output.info("No saved sessions.")
            return
        for summary in sessions:
            marker = "*" if self.session and self.session.session_id == summary.id else " "
            self.output.info(
                f"{marker} {summary.id}  {summary.timestamp}  {summary.message_count} messages"
            )

    def _new_session(self, _command: cmd.NewSession) -> None:
        session = self._start_session()
        self.output.success(f"Started session {session.session_id}.")

    def _load_session(self, command: cmd.LoadSession) -> None:
        saved = self._require_store().load_session(command.session_id)
        session = self._start_session(command.session_id)
        session.conversation = ConversationState.from_messages(saved.messages)
        if session.conversation.system_prompt is not None:
            self.system_prompt = session.conversation.system_prompt
        self.output.success(
            f"Loaded session {command.session_id} ({len(session.conversation)} messages)."
        )

    def _delete_session(self, command: cmd.DeleteSession) -> None:
        if not self._require_store().delete_session(command.session_id):
            raise NotFoundError(f"Session '{command.session_id}' not found")
        self.output.success(f"Deleted session {command.session_id}.")

    def _delete_all_sessions(self, _command: cmd.DeleteAllSessions) -> None:
        self._require_store().delete_all()
        self.output.success("Deleted all saved sessions.")

    def _show_help(self, _command: cmd.ShowHelp) -> None:
        self.output.info(cmd.HELP_TEXT)
