# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the commands unit so this responsibility stays isolated, testable, and easy to evolve.

Console command grammar. ``parse_command`` turns one input line into a typed
command, returns ``None`` for free text, and raises ``CommandSyntaxError`` when
a command word is recognised but its arguments are not.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from aurestral.services.exceptions import CommandSyntaxError


@dataclass(frozen=True)
class EnterChat:
    pass


@dataclass(frozen=True)
class ExitChat:
    pass


@dataclass(frozen=True)
class ShowSystemPrompt:
    pass


@dataclass(frozen=True)
class SetSystemPrompt:
    value: str


@dataclass(frozen=True)
class ResetChat:
    pass


@dataclass(frozen=True)
class ListSessions:
    pass


@dataclass(frozen=True)
class NewSession:
    pass


@dataclass(frozen=True)
class LoadSession:
    session_id: str


@dataclass(frozen=True)
class DeleteSession:
    session_id: str


@dataclass(frozen=True)
class DeleteAllSessions:
    pass


@dataclass(frozen=True)
class ShowHelp:
    pass


Command = Union[
    EnterChat,
    ExitChat,
    ShowSystemPrompt,
    SetSystemPrompt,
    ResetChat,
    ListSessions,
    NewSession,
    LoadSession,
    DeleteSession,
    DeleteAllSessions,
    ShowHelp,
]

HELP_TEXT = """\
    ascent | ascent(k2)              enter chat mode
    descent                          leave chat mode
    system                           show the system prompt
    system = "value"                 replace the system prompt
    reset                            clear the chat, keep the system prompt
    sessions | session list          list saved sessions
    session new                      start a fresh session id
    session load <id>                resume a saved session
    session delete <id>              delete a saved session
    session delete-all               delete every saved session
    help                             show this table"""

_SIMPLE_COMMANDS = {
    "ascent": EnterChat,
    "ascent(k2)": EnterChat,
    "descent": ExitChat,
    "system": ShowSystemPrompt,
    "reset": ResetChat,
    "sessions": ListSessions,
    "help": ShowHelp,
}

_ASSIGNMENT = re.compile(r"^(?P<key>[a-z_]+)\s*=\s*(?P<value>.*)$", re.IGNORECASE | re.DOTALL)
_QUOTED = re.compile(r"^(?P<quote>[\"'])(?P<body>.*)(?P=quote)$", re.DOTALL)
_SESSION_ID = re.compile(r"^[A-Za-z0-9_.-]+$")

SESSION_USAGE = (
    "usage: session list | session new | session load <id>"
    " | session delete <id> | session delete-all"
)


def _parse_quoted(key: str, raw_value: str) -> str:
    match = _QUOTED.match(raw_value.strip())
    if not match:
        raise CommandSyntaxError(f'{key} expects a quoted value, e.g. {key} = "..."')
    value = match.group("body").strip()
    if not value:
        raise CommandSyntaxError(f"{key} cannot be empty")
    return value


def _parse_session(args: list[str]) -> Command:
    if args == ["list"]:
        return ListSessions()
    if args == ["new"]:
        return NewSession()
    if args == ["delete-all"]:
        return DeleteAllSessions()
    if len(args) == 2 and args[0] in ("load", "delete"):
        session_id = args[1]
        if not _SESSION_ID.match(session_id):
            raise CommandSyntaxError(f"invalid session id: {session_id}")
        if args[0] == "load":
            return LoadSession(session_id)
        return DeleteSession(session_id)
    raise CommandSyntaxError(SESSION_USAGE)


def parse_command(raw: str) -> Optional[Command]:
    text = raw.strip()
    lower = text.lower()

    simple = _SIMPLE_COMMANDS.get(lower)
    if simple is not None:
        return simple()

    assignment = _ASSIGNMENT.match(text)
    if assignment and assignment.group("key").lower() == "system":
        return SetSystemPrompt(_parse_quoted("system", assignment.group("value")))

    words = text.split()
    if words and words[0].lower() == "session":
        # Session ids keep their case; the sub-command word does not.
        args = [words[1].lower(), *words[2:]] if len(words) > 1 else []
        return _parse_session(args)

    return None
