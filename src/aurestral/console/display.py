# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the display unit so this responsibility stays isolated, testable, and easy to evolve.

Terminal output for the console. Each assistant reply streams into one
``rich.live.Live`` region that grows in place and is re-rendered as markdown
once the reply is complete.
"""

from __future__ import annotations

from typing import Optional

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.text import Text

from aurestral.console.formatting import render_markdown

ASSISTANT_LABEL = "Aurestral"


class RichConsoleOutput:
    def __init__(
        self,
        console: Optional[Console] = None,
        markdown: bool = True,
        label: str = ASSISTANT_LABEL,
    ):
        self.console = console or Console()
        self.markdown = markdown
        self.label = label
        self._live: Optional[Live] = None
        self._buffer = ""

    # ---- one growing region per reply ----

    def begin_reply(self) -> None:
        self._buffer = ""
        self._live = Live(
            self._render(final=False),
            console=self.console,
            refresh_per_second=12,
        )
        self._live.start()

    def append(self, fragment: str) -> None:
        self._buffer += fragment
        if self._live is not None:
            self._live.update(self._render(final=False))

    def end_reply(self, text: str) -> None:
        self._buffer = text
        if self._live is None:
            return
        self._live.update(self._render(final=True), refresh=True)
        self._live.stop()
        self._live = None

    def _render(self, final: bool) -> RenderableType:
        heading = Text(f"{self.label}: ", style="bold cyan")
        if final and self.markdown and self._buffer:
            return Group(heading, render_markdown(self._buffer))
        return Group(heading, Text(self._buffer, overflow="fold"))

    # ---- status lines ----

    def info(self, text: str) -> None:
        self.console.print(Text(text))

    def success(self, text: str) -> None:
        self.console.print(Text(text, style="green"))

    def notice(self, text: str) -> None:
        self.console.print(Text(text, style="dim"))

    def error(self, text: str) -> None:
        self.console.print(Text(text, style="bold red"))
