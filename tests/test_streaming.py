"""Tests for SSE framing of token-delta streams."""

import asyncio
import json
from datetime import timedelta

import pytest

from chatrelay.api.streaming import sse_stream
from chatrelay.core.errors import ProviderNotConfigured
from chatrelay.core.models import ContentDelta, DoneDelta, ErrorDelta
from conftest import collect

TIMEOUT = timedelta(seconds=5)


async def _deltas(*items):
    for item in items:
        if isinstance(item, BaseException):
            raise item
        yield item


def _parse(frames: list[str]) -> list[dict]:
    parsed = []
    for frame in frames:
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        parsed.append(json.loads(frame[len("data: ") :]))
    return parsed


def _assert_single_terminal_last(events: list[dict]) -> None:
    terminals = [i for i, e in enumerate(events) if "done" in e or "error" in e]
    assert terminals == [len(events) - 1]


class TestSseStream:
    @pytest.mark.asyncio
    async def test_content_then_done(self):
        frames = await collect(
            sse_stream(
                _deltas(ContentDelta(content="a"), ContentDelta(content="b"), DoneDelta()),
                request_timeout=TIMEOUT,
            )
        )
        assert _parse(frames) == [{"content": "a"}, {"content": "b"}, {"done": True}]

    @pytest.mark.asyncio
    async def test_nothing_written_after_terminal(self):
        frames = await collect(
            sse_stream(
                _deltas(
                    ContentDelta(content="a"),
                    ErrorDelta(error="boom", code="UPSTREAM_ERROR"),
                    ContentDelta(content="late"),
                    DoneDelta(),
                ),
                request_timeout=TIMEOUT,
            )
        )
        events = _parse(frames)
        assert events == [{"content": "a"}, {"error": "boom", "code": "UPSTREAM_ERROR"}]

    @pytest.mark.asyncio
    async def test_missing_terminal_is_reported(self):
        events = _parse(
            await collect(sse_stream(_deltas(ContentDelta(content="a")), request_timeout=TIMEOUT))
        )
        assert events[0] == {"content": "a"}
        assert events[-1]["code"] == "INCOMPLETE_STREAM"
        _assert_single_terminal_last(events)

    @pytest.mark.asyncio
    async def test_configuration_error_becomes_error_frame(self):
        events = _parse(
            await collect(
                sse_stream(
                    _deltas(ProviderNotConfigured("OpenAI is not configured: set OPENAI_API_KEY")),
                    request_timeout=TIMEOUT,
                )
            )
        )
        assert events == [
            {
                "error": "OpenAI is not configured: set OPENAI_API_KEY",
                "code": "PROVIDER_NOT_CONFIGURED",
            }
        ]

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_processing_error(self):
        events = _parse(
            await collect(
                sse_stream(
                    _deltas(ContentDelta(content="a"), RuntimeError("kaput")),
                    request_timeout=TIMEOUT,
                )
            )
        )
        assert events[0] == {"content": "a"}
        assert events[-1]["code"] == "PROCESSING_ERROR"
        assert "kaput" in events[-1]["error"]
        _assert_single_terminal_last(events)

    @pytest.mark.asyncio
    async def test_wall_clock_timeout(self):
        async def hung():
            yield ContentDelta(content="a")
            await asyncio.sleep(10)
            yield DoneDelta()

        events = _parse(
            await collect(sse_stream(hung(), request_timeout=timedelta(milliseconds=50)))
        )
        assert events[0] == {"content": "a"}
        assert events[-1]["code"] == "REQUEST_TIMEOUT"
        _assert_single_terminal_last(events)

    @pytest.mark.asyncio
    async def test_source_is_closed_after_terminal(self):
        closed = False

        async def source():
            nonlocal closed
            try:
                yield DoneDelta()
                yield ContentDelta(content="never")
            finally:
                closed = True

        await collect(sse_stream(source(), request_timeout=TIMEOUT))
        assert closed
