# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Round-trip tests for ChatSession against fake relays."""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from unittest import TestCase
from unittest.mock import MagicMock, patch

import httpx

from aurestral.console.orchestrator import (
    ChatSession,
    GenerationSettings,
    SessionState,
    TurnStatus,
)
from aurestral.console.session_store import SessionStore
from aurestral.console.side_effects import persistence_side_effect, speech_side_effect
from aurestral.main import app
from aurestral.services.exceptions import (
    BadRequestError,
    ConfigurationError,
    SessionBusyError,
    UpstreamApplicationError,
    UpstreamError,
)

RELAY_URL = "http://relay.test/api/v1/relay"
SYSTEM_PROMPT = "You are Aurestral."


def sse(*deltas, done=True):
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": d}}]}) + "\n\n"
        for d in deltas
    ]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


class RecordingDisplay:
    def __init__(self):
        self.events = []

    def begin_reply(self):
        self.events.append(("begin",))

    def append(self, fragment):
        self.events.append(("append", fragment))

    def end_reply(self, text):
        self.events.append(("end", text))


class ChatSessionTest(TestCase):
    def setUp(self):
        self.display = RecordingDisplay()
        self.requests = []

    def _session(self, handler, **kwargs):
        def recording_handler(request):
            self.requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        return ChatSession(
            relay_url=RELAY_URL,
            settings=GenerationSettings(model="moonshotai/kimi-k2-instruct-0905"),
            display=self.display,
            system_prompt=SYSTEM_PROMPT,
            session_id="s1",
            client=client,
            **kwargs,
        )

    def test_successful_turn_streams_into_one_region(self):
        session = self._session(lambda request: httpx.Response(200, content=sse("Hi", " there")))

        outcome = asyncio.run(session.submit("hello"))

        self.assertEqual(outcome.status, TurnStatus.COMPLETED)
        self.assertEqual(outcome.text, "Hi there")
        self.assertEqual(
            self.display.events,
            [("begin",), ("append", "Hi"), ("append", " there"), ("end", "Hi there")],
        )
        roles = [(m.role, m.content) for m in session.conversation]
        self.assertEqual(
            roles,
            [("system", SYSTEM_PROMPT), ("user", "hello"), ("assistant", "Hi there")],
        )
        self.assertIs(session.state, SessionState.IDLE)

    def test_request_carries_full_history_and_generation_parameters(self):
        session = self._session(lambda request: httpx.Response(200, content=sse("ok")))

        asyncio.run(session.submit("first"))
        asyncio.run(session.submit("second"))

        body = json.loads(self.requests[-1].content)
        self.assertEqual(str(self.requests[-1].url), RELAY_URL)
        self.assertEqual(body["model"], "moonshotai/kimi-k2-instruct-0905")
        self.assertEqual(body["max_tokens"], 2048)
        self.assertEqual(body["temperature"], 0.7)
        self.assertIs(body["stream"], True)
        self.assertEqual(
            [m["role"] for m in body["messages"]],
            ["system", "user", "assistant", "user"],
        )
        self.assertEqual(body["messages"][-1]["content"], "second")

    def test_history_grows_by_exactly_two_per_turn(self):
        session = self._session(lambda request: httpx.Response(200, content=sse("a", "b")))
        before = len(session.conversation)

        asyncio.run(session.submit("hello"))

        self.assertEqual(len(session.conversation), before + 2)
        self.assertEqual(session.conversation[-2].role, "user")
        self.assertEqual(session.conversation[-1].role, "assistant")
        self.assertEqual(session.conversation[-1].content, "ab")

    def test_empty_reply_is_still_recorded(self):
        session = self._session(lambda request: httpx.Response(200, content=sse()))

        outcome = asyncio.run(session.submit("anything?"))

        self.assertTrue(outcome.ok)
        self.assertEqual(session.conversation[-1].role, "assistant")
        self.assertEqual(session.conversation[-1].content, "")

    def test_blank_input_is_rejected_without_network_call(self):
        handler = MagicMock()
        session = self._session(handler)

        outcome = asyncio.run(session.submit("   \n\t"))

        self.assertEqual(outcome.status, TurnStatus.REJECTED)
        self.assertIsInstance(outcome.error, BadRequestError)
        self.assertEqual(len(session.conversation), 1)
        handler.assert_not_called()
        self.assertEqual(self.display.events, [])

    def test_network_failure_keeps_only_the_user_message(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        session = self._session(handler)
        outcome = asyncio.run(session.submit("hello"))

        self.assertEqual(outcome.status, TurnStatus.NETWORK_ERROR)
        self.assertIsInstance(outcome.error, UpstreamError)
        self.assertTrue(outcome.error.detail.startswith("Network error:"))
        self.assertEqual([m.role for m in session.conversation], ["system", "user"])
        self.assertEqual(self.display.events, [])
        self.assertIs(session.state, SessionState.IDLE)

    def test_failure_mid_stream_closes_region_without_assistant_message(self):
        async def broken_body():
            yield sse("partial", done=False)
            raise httpx.ReadError("connection reset")

        session = self._session(lambda request: httpx.Response(200, content=broken_body()))
        outcome = asyncio.run(session.submit("hello"))

        self.assertEqual(outcome.status, TurnStatus.NETWORK_ERROR)
        self.assertEqual(outcome.text, "partial")
        self.assertEqual(self.display.events[0], ("begin",))
        self.assertEqual(self.display.events[-1], ("end", "partial"))
        self.assertEqual([m.role for m in session.conversation], ["system", "user"])

    def test_api_error_reports_status_and_body(self):
        session = self._session(
            lambda request: httpx.Response(401, text='{"error": "invalid api key"}')
        )

        outcome = asyncio.run(session.submit("hello"))

        self.assertEqual(outcome.status, TurnStatus.API_ERROR)
        self.assertIsInstance(outcome.error, UpstreamApplicationError)
        self.assertEqual(outcome.error.status_code, 401)
        self.assertEqual(outcome.error.detail, '{"error": "invalid api key"}')
        self.assertEqual([m.role for m in session.conversation], ["system", "user"])
        self.assertEqual(self.display.events, [])

    def test_overlapping_submission_is_rejected(self):
        async def scenario():
            release = asyncio.Event()

            async def slow_body():
                yield sse("one", done=False)
                await release.wait()
                yield b"data: [DONE]\n\n"

            session = self._session(lambda request: httpx.Response(200, content=slow_body()))
            first = asyncio.create_task(session.submit("first"))
            while session.state is not SessionState.AWAITING_RESPONSE:
                await asyncio.sleep(0)
            second = await session.submit("second")
            release.set()
            return session, await first, second

        session, first, second = asyncio.run(scenario())

        self.assertEqual(second.status, TurnStatus.REJECTED)
        self.assertIsInstance(second.error, SessionBusyError)
        self.assertTrue(first.ok)
        self.assertEqual(
            [m.content for m in session.conversation],
            [SYSTEM_PROMPT, "first", "one"],
        )

    def test_side_effects_run_after_the_reply_is_recorded(self):
        spoken = []
        speaker = MagicMock()
        speaker.speak.side_effect = spoken.append
        seen_lengths = []

        async def async_hook(session, reply):
            seen_lengths.append(len(session.conversation))

        session = self._session(
            lambda request: httpx.Response(200, content=sse("Hi")),
            side_effects=[speech_side_effect(speaker), async_hook],
        )
        asyncio.run(session.submit("hello"))

        self.assertEqual(spoken, ["Hi"])
        self.assertEqual(seen_lengths, [3])

    def test_speech_is_skipped_for_empty_replies(self):
        speaker = MagicMock()
        session = self._session(
            lambda request: httpx.Response(200, content=sse()),
            side_effects=[speech_side_effect(speaker)],
        )
        asyncio.run(session.submit("hello"))
        speaker.speak.assert_not_called()

    def test_session_is_saved_after_each_turn(self):
        with tempfile.TemporaryDirectory() as td:
            store = SessionStore(Path(td) / "sessions.json")
            session = self._session(
                lambda request: httpx.Response(200, content=sse("Hi")),
                side_effects=[persistence_side_effect(store)],
            )

            asyncio.run(session.submit("hello"))
            saved = store.load_session("s1")
            self.assertEqual(len(saved.messages), 3)

            asyncio.run(session.submit("again"))
            saved = store.load_session("s1")
            self.assertEqual(len(saved.messages), 5)

    def test_skipped_lines_are_counted_on_the_outcome(self):
        body = sse("a", done=False) + b"data: {oops\n\n" + sse("b")
        session = self._session(lambda request: httpx.Response(200, content=body))

        outcome = asyncio.run(session.submit("hello"))

        self.assertEqual(outcome.text, "ab")
        self.assertEqual(outcome.skipped_lines, 1)

    def test_reset_keeps_system_prompt(self):
        session = self._session(lambda request: httpx.Response(200, content=sse("Hi")))
        asyncio.run(session.submit("hello"))

        session.reset()

        self.assertEqual([m.role for m in session.conversation], ["system"])


class GenerationSettingsTest(TestCase):
    def test_from_config_reads_numeric_strings(self):
        settings = GenerationSettings.from_config(
            {"model": "m", "max_tokens": "512", "temperature": "0.2"}
        )
        self.assertEqual((settings.max_tokens, settings.temperature), (512, 0.2))

    def test_non_numeric_values_raise_configuration_error(self):
        with self.assertRaises(ConfigurationError) as ctx:
            GenerationSettings.from_config({"model": "m", "max_tokens": "abc"})
        self.assertIn("max_tokens", ctx.exception.detail)

        with self.assertRaises(ConfigurationError):
            GenerationSettings.from_config({"model": "m", "temperature": "warm"})


class ChatSessionThroughRelayTest(TestCase):
    """Drives a ChatSession through the real relay app with a faked upstream."""

    def setUp(self):
        env = patch.dict(os.environ, {"GROQ_API_KEY": "sk-test"})
        env.start()
        self.addCleanup(env.stop)

        def upstream(request):
            return httpx.Response(200, content=sse("Hi", " there"))

        def build_client(_timeout_s):
            return httpx.AsyncClient(transport=httpx.MockTransport(upstream))

        patcher = patch(
            "aurestral.services.relay.relay_ops._build_client", side_effect=build_client
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_hello_round_trip(self):
        display = RecordingDisplay()

        async def scenario():
            async with httpx.AsyncClient(
                transport=httpx.ASGITransport(app=app), base_url="http://relay.test"
            ) as client:
                session = ChatSession(
                    relay_url="http://relay.test/api/v1/relay",
                    settings=GenerationSettings(model="m"),
                    display=display,
                    system_prompt=SYSTEM_PROMPT,
                    client=client,
                )
                return session, await session.submit("hello")

        session, outcome = asyncio.run(scenario())

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.text, "Hi there")
        self.assertEqual(display.events[-1], ("end", "Hi there"))
        self.assertEqual(session.conversation[-1].content, "Hi there")
