# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the stream helpers unit so this responsibility stays isolated, testable, and easy to evolve.

Utility functions for handling server-sent events (SSE) from OpenAI-compatible
chat-completion streams. Includes a stateful decoder that tolerates records
split across arbitrary network chunks.
"""

from __future__ import annotations

import codecs
import json
from typing import Any, AsyncIterable, AsyncIterator, Callable, List, Optional

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def extract_delta_content(record: Any) -> str:
    """Return ``choices[0].delta.content`` or an empty string when absent."""
    if not isinstance(record, dict):
        return ""
    choices = record.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    delta = first.get("delta") if isinstance(first, dict) else None
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


class SSEStreamDecoder:
    """Stateful decoder turning a chunked SSE byte stream into text deltas.

    Bytes go through an incremental UTF-8 decoder and incomplete trailing lines
    are held back until their newline arrives, so the emitted fragments do not
    depend on where the transport happened to split the stream.

    Lines whose JSON does not parse are skipped rather than raised; they are
    counted in ``skipped_lines`` and reported through ``on_skip`` so upstream
    format drift stays visible without ever aborting a reply.
    """

    def __init__(self, on_skip: Optional[Callable[[str], None]] = None):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self.on_skip = on_skip
        self.text = ""
        self.done = False
        self.skipped_lines = 0

    def feed(self, chunk: bytes | str) -> List[str]:
        """Process a chunk and return the fragments it completed, in order."""
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        return self._consume(chunk, final=False)

    def flush(self) -> List[str]:
        """Process whatever is still buffered once the transport has closed."""
        return self._consume(self._decoder.decode(b"", final=True), final=True)

    async def iter_fragments(
        self, chunks: AsyncIterable[bytes | str]
    ) -> AsyncIterator[str]:
        """Lazily yield fragments until the transport reports end of stream.

        ``[DONE]`` silences further output but the loop keeps draining the
        transport; only its own end-of-stream ends iteration.
        """
        async for chunk in chunks:
            for fragment in self.feed(chunk):
                yield fragment
        for fragment in self.flush():
            yield fragment

    def _consume(self, text: str, final: bool) -> List[str]:
        if self.done:
            self._pending = ""
            return []

        lines = (self._pending + text).split("\n")
        self._pending = "" if final else lines.pop()

        fragments: List[str] = []
        for line in lines:
            fragment = self._process_line(line.rstrip("\r"))
            if self.done:
                self._pending = ""
                break
            if fragment:
                self.text += fragment
                fragments.append(fragment)
        return fragments

    def _process_line(self, line: str) -> str:
        if not line.startswith(DATA_PREFIX):
            return ""
        payload = line[len(DATA_PREFIX) :]
        if payload.strip() == DONE_SENTINEL:
            self.done = True
            return ""
        try:
            record = json.loads(payload)
        except ValueError:
            self.skipped_lines += 1
            if self.on_skip is not None:
                self.on_skip(line)
            return ""
        return extract_delta_content(record)
