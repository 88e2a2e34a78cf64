# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the cli unit so this responsibility stays isolated, testable, and easy to evolve.

Terminal entry point for the Aurestral console.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Dict, Optional

import httpx

from aurestral.console.controller import ConsoleController
from aurestral.console.display import RichConsoleOutput
from aurestral.console.orchestrator import ChatSession, GenerationSettings
from aurestral.console.session_store import SessionStore
from aurestral.console.side_effects import persistence_side_effect
from aurestral.core.config import default_sessions_path, load_console_config
from aurestral.services.exceptions import ConfigurationError


def build_arg_parser() -> argparse.ArgumentParser:
    """Build Arg Parser."""
    parser = argparse.ArgumentParser(
        prog="aurestral",
        description="Chat with a hosted model through the Aurestral relay",
    )
    parser.add_argument("--relay-url", default=None, help="Relay endpoint URL")
    parser.add_argument("--model", default=None, help="Model identifier to request")
    parser.add_argument(
        "--sessions-path", default=None, help="JSON file holding saved sessions"
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not persist the session after each reply",
    )
    parser.add_argument(
        "--plain",
        action="store_true",
        help="Show replies as plain text instead of rendered markdown",
    )
    return parser


def resolve_console_settings(args: argparse.Namespace) -> Dict[str, Any]:
    """Merge command-line overrides over the loaded console config."""
    console_cfg = dict(load_console_config().get("console") or {})
    if args.relay_url:
        console_cfg["relay_url"] = args.relay_url
    if args.model:
        console_cfg["model"] = args.model
    if args.sessions_path:
        console_cfg["sessions_path"] = args.sessions_path
    if not console_cfg.get("sessions_path"):
        console_cfg["sessions_path"] = str(default_sessions_path())
    return console_cfg


def build_controller(
    console_cfg: Dict[str, Any],
    output: RichConsoleOutput,
    client: httpx.AsyncClient,
    save: bool = True,
) -> ConsoleController:
    store = SessionStore(console_cfg["sessions_path"])
    settings = GenerationSettings.from_config(console_cfg)
    side_effects = [persistence_side_effect(store)] if save else []

    def session_factory(session_id: Optional[str], system_prompt: str) -> ChatSession:
        return ChatSession(
            relay_url=str(console_cfg["relay_url"]),
            settings=settings,
            display=output,
            system_prompt=system_prompt,
            session_id=session_id,
            client=client,
            side_effects=side_effects,
        )

    return ConsoleController(
        output=output,
        session_factory=session_factory,
        system_prompt=str(console_cfg.get("system_prompt") or ""),
        store=store,
    )


async def run_console(console_cfg: Dict[str, Any], output: RichConsoleOutput, save: bool) -> None:
    # Streams may stay open as long as the model keeps talking.
    async with httpx.AsyncClient(timeout=None) as client:
        controller = build_controller(console_cfg, output, client, save=save)
        output.info("Aurestral.Console: type `help` for commands, `ascent` to chat.")
        while True:
            try:
                line = await asyncio.to_thread(
                    output.console.input, f"[bold]{controller.prompt}[/bold] > "
                )
            except (EOFError, KeyboardInterrupt):
                output.info("")
                break
            await controller.handle(line)


def main(argv: Optional[list[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)
    console_cfg = resolve_console_settings(args)
    output = RichConsoleOutput(markdown=not args.plain)
    try:
        asyncio.run(run_console(console_cfg, output, save=not args.no_save))
    except ConfigurationError as exc:
        output.error(f"Configuration error: {exc.detail}")
        raise SystemExit(2) from exc
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
