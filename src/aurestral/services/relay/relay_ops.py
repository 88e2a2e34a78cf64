# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the relay ops unit so this responsibility stays isolated, testable, and easy to evolve.

Credentialed relay: forwards one chat-completion request to the upstream
provider with the server-held API key attached and pipes the upstream body
straight back to the caller. The relay keeps no state between calls and never
retries.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Dict

import httpx
from fastapi.responses import StreamingResponse

from aurestral.core.config import load_relay_config
from aurestral.services.exceptions import MethodNotAllowedError, UpstreamError
from aurestral.services.relay.relay_logging import create_log_entry, finish_log_entry
from aurestral.services.relay.relay_request_helpers import (
    build_headers,
    build_timeout,
    parse_chat_body,
    require_api_key,
)

STREAM_HEADERS = {"Cache-Control": "no-cache"}


def _build_client(timeout_s: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=build_timeout(timeout_s))


async def _pipe_upstream(
    client: httpx.AsyncClient,
    upstream: httpx.Response,
    log_entry: Dict[str, Any],
) -> AsyncIterator[bytes]:
    """Yield the upstream body, then release the connection.

    The body is yielded with any Content-Encoding already undone, since the
    relay answers without that header.
    """
    error_detail = None
    try:
        async for chunk in upstream.aiter_bytes():
            log_entry["response"]["bytes_relayed"] += len(chunk)
            yield chunk
    except httpx.HTTPError as exc:
        error_detail = f"Upstream stream interrupted: {exc}"
        raise
    finally:
        await upstream.aclose()
        await client.aclose()
        finish_log_entry(log_entry, error_detail)


async def relay_chat_request(
    method: str,
    raw_body: bytes,
    config: Dict[str, Any] | None = None,
) -> StreamingResponse:
    """Relay a chat-completion request to the configured upstream.

    Checks run in order and each failure stops before any upstream call:
    method (405), credential (500), JSON body (400). A transport failure while
    connecting maps to 502; any upstream answer is mirrored as-is.
    """
    if method.upper() != "POST":
        raise MethodNotAllowedError("Method not allowed")

    relay_cfg = (config or load_relay_config()).get("relay") or {}
    api_key = require_api_key(relay_cfg)
    payload = parse_chat_body(raw_body)

    url = str(relay_cfg.get("upstream_url") or "")
    headers = build_headers(api_key)
    log_entry = create_log_entry(url, "POST", headers, payload)

    client = _build_client(relay_cfg.get("timeout_s"))
    request = client.build_request("POST", url, headers=headers, content=raw_body)
    try:
        upstream = await client.send(request, stream=True)
    except httpx.HTTPError as exc:
        await client.aclose()
        finish_log_entry(log_entry, str(exc))
        raise UpstreamError(f"Upstream fetch failed: {exc}") from exc

    log_entry["response"]["status_code"] = upstream.status_code

    return StreamingResponse(
        _pipe_upstream(client, upstream, log_entry),
        status_code=upstream.status_code,
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
