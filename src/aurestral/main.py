# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the main unit so this responsibility stays isolated, testable, and easy to evolve.

Main application entry point for the Aurestral relay server.
Includes CORS setup, error handling, and router registration.
"""

from __future__ import annotations

import argparse
from typing import Optional
import os

from fastapi import FastAPI, APIRouter, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aurestral.core.config import load_relay_config
from aurestral.services.exceptions import ServiceError

# Import API routers
from aurestral.api.v1.relay import router as relay_router, api_relay, RELAY_METHODS
from aurestral.api.v1.debug import router as debug_router

# Path the original browser console posts to; kept so that client works unchanged.
LEGACY_RELAY_PATH = "/.netlify/functions/groq-proxy"


def create_app() -> FastAPI:
    """Create the FastAPI app.

    Uvicorn's reload mode requires an import string; using an app factory keeps
    route registration consistent across reload subprocesses.
    """

    app = FastAPI(title="Aurestral Relay")

    relay_cfg = load_relay_config().get("relay") or {}
    origins = relay_cfg.get("cors_origins") or []

    # Local development origins are always allowed; hosted consoles are listed
    # explicitly in relay.json or AUREST_CORS_ORIGINS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins),
        allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(relay_router)
    api_v1_router.include_router(debug_router)
    api_v1_router.add_api_route(
        "/health", endpoint=lambda: {"status": "ok"}, methods=["GET"]
    )
    app.include_router(api_v1_router)

    app.add_api_route(LEGACY_RELAY_PATH, endpoint=api_relay, methods=RELAY_METHODS)

    # --------------- global exception handler ---------------
    @app.exception_handler(ServiceError)
    async def _service_error_handler(
        _request: Request, exc: ServiceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code, content={"ok": False, "detail": exc.detail}
        )

    return app


app = create_app()


def build_arg_parser() -> argparse.ArgumentParser:
    """Build Arg Parser."""
    parser = argparse.ArgumentParser(
        prog="aurestral-relay",
        description="Run the Aurestral credentialed relay server",
    )
    parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port", type=int, default=8000, help="Port to bind (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (development only)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of worker processes (overrides reload)",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for the server (default: info)",
    )
    parser.add_argument(
        "--relay-dump",
        action="store_true",
        help="Dump relayed request/response metadata to a file",
    )
    parser.add_argument(
        "--relay-dump-path",
        default=None,
        help="Path for the relay dump file (overrides default)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entrypoint to run the server via a normal Python invocation.

    Examples:
      python -m aurestral.main --help
      GROQ_API_KEY=... python -m aurestral.main --host 0.0.0.0 --port 8000
    """
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.relay_dump:
        os.environ["AUREST_RELAY_DUMP"] = "1"
    if args.relay_dump_path:
        os.environ["AUREST_RELAY_DUMP_PATH"] = args.relay_dump_path

    # Import uvicorn lazily so that importing this module doesn't require it for tests/tools
    import uvicorn  # type: ignore

    # Uvicorn's reload/multi-worker modes require an import string.
    use_import_string = bool(args.reload) or (
        isinstance(args.workers, int) and args.workers > 1
    )
    if use_import_string:
        app_target = "aurestral.main:create_app"
        factory = True
    else:
        app_target = app
        factory = False

    uvicorn.run(
        app_target,
        host=args.host,
        port=args.port,
        reload=bool(args.reload) if args.workers in (None, 0) else False,
        workers=args.workers,
        log_level=args.log_level,
        factory=factory,
    )


if __name__ == "__main__":
    main()
