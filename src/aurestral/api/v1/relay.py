# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the relay unit so this responsibility stays isolated, testable, and easy to evolve.

API endpoint that relays chat-completion requests to the upstream provider.
"""

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from aurestral.services.relay.relay_ops import relay_chat_request

router = APIRouter(tags=["Relay"])

# Every method is routed here so that non-POST calls get the relay's own 405
# body instead of the framework default.
RELAY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@router.api_route("/relay", methods=RELAY_METHODS)
async def api_relay(request: Request) -> StreamingResponse:
    """Forward a chat-completion request with the server-held credential.

    Body JSON:
      {
        "model": str,
        "messages": [{"role": "system|user|assistant", "content": str}, ...],
        "max_tokens": int,
        "temperature": float,
        "stream": true
      }

    Returns the upstream status and body unchanged as ``text/event-stream``.
    """
    raw_body = await request.body()
    return await relay_chat_request(request.method, raw_body)
