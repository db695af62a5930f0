from __future__ import annotations

import pytest

from coldstart.probing.network_timing import ResponseCapture, normalize_url, time_to_first_byte_ms
from fakes import FakePage, FakeResponse


@pytest.mark.asyncio
async def test_capture_matches_target_ignoring_trailing_slash() -> None:
    page = FakePage()
    async with ResponseCapture(page, "https://b0.test/api/status/", timeout_seconds=1) as capture:
        assert page.listener_count() == 1
        capture._on_response(FakeResponse("https://b0.test/other"))
        assert capture.listening
        wanted = FakeResponse("https://B0.test/api/status")
        capture._on_response(wanted)
        assert not capture.listening
        assert await capture.wait() is wanted
    assert page.listener_count() == 0


@pytest.mark.asyncio
async def test_first_matching_response_wins() -> None:
    page = FakePage()
    first = FakeResponse("https://b0.test/x")
    async with ResponseCapture(page, "https://b0.test/x", timeout_seconds=1) as capture:
        capture._on_response(first)
        capture._on_response(FakeResponse("https://b0.test/x"))
        assert await capture.wait() is first


@pytest.mark.asyncio
async def test_redirect_responses_are_not_captured() -> None:
    page = FakePage()
    final = FakeResponse("https://b0.test/api/status", status=200)
    async with ResponseCapture(page, "https://b0.test/api/status", timeout_seconds=1) as capture:
        capture._on_response(FakeResponse("https://b0.test/api/status", status=308))
        assert capture.listening
        capture._on_response(final)
        assert await capture.wait() is final


@pytest.mark.asyncio
async def test_capture_times_out_and_detaches() -> None:
    page = FakePage()
    async with ResponseCapture(page, "https://b0.test/x", timeout_seconds=0.01) as capture:
        assert await capture.wait() is None
        assert page.listener_count() == 0


@pytest.mark.asyncio
async def test_listener_removed_when_block_raises() -> None:
    page = FakePage()
    with pytest.raises(RuntimeError):
        async with ResponseCapture(page, "https://b0.test/x"):
            raise RuntimeError("navigation failed")
    assert page.listener_count() == 0


@pytest.mark.asyncio
async def test_wait_outside_context_is_an_error() -> None:
    with pytest.raises(RuntimeError):
        await ResponseCapture(FakePage(), "https://b0.test/x").wait()


def test_normalize_url() -> None:
    assert normalize_url("HTTPS://Example.COM/a/") == "https://example.com/a"
    assert normalize_url("https://example.com") == "https://example.com/"
    assert normalize_url("https://example.com/a#frag") == "https://example.com/a"
    assert normalize_url("https://example.com/a?q=1") == "https://example.com/a?q=1"


@pytest.mark.parametrize(
    "timing, expected",
    [
        ({"requestStart": 10.0, "responseStart": 52.5}, 42.5),
        ({"requestStart": 0, "responseStart": 0}, 0.0),
        ({"requestStart": -1, "responseStart": 20.0}, None),
        ({"requestStart": 5.0, "responseStart": -1}, None),
        ({"requestStart": 30.0, "responseStart": 10.0}, None),
        ({}, None),
    ],
)
def test_time_to_first_byte(timing: dict, expected: float | None) -> None:
    assert time_to_first_byte_ms(FakeResponse("https://b0.test/", timing=timing)) == expected


def test_time_to_first_byte_without_request_is_none() -> None:
    assert time_to_first_byte_ms(object()) is None
