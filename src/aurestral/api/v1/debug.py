# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the debug unit so this responsibility stays isolated, testable, and easy to evolve."""

from fastapi import APIRouter
from aurestral.services.relay.relay_logging import relay_logs

router = APIRouter(prefix="/debug", tags=["debug"])


router.add_api_route("/relay_logs", endpoint=lambda: relay_logs, methods=["GET"])


@router.delete("/relay_logs")
async def clear_relay_logs():
    """Clear the relay communication logs."""
    relay_logs.clear()
    return {"ok": True}
