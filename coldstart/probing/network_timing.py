"""One-shot capture of the network exchange for a target URL."""

from __future__ import annotations

import asyncio
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

import structlog

logger = structlog.get_logger(__name__)


def normalize_url(url: str) -> str:
    s = str(url or "").strip()
    try:
        parts = urlsplit(s)
    except ValueError:
        return s.rstrip("/")
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def time_to_first_byte_ms(response: Any) -> Optional[float]:
    """responseStart - requestStart from the request's resource timing."""
    try:
        timing = response.request.timing or {}
    except Exception:
        return None
    request_start = timing.get("requestStart")
    response_start = timing.get("responseStart")
    if request_start is None or response_start is None:
        return None
    try:
        request_start = float(request_start)
        response_start = float(response_start)
    except (TypeError, ValueError):
        return None
    # Playwright reports -1 for phases it could not observe.
    if request_start < 0 or response_start < 0 or response_start < request_start:
        return None
    return response_start - request_start


class ResponseCapture:
    """
    Listens for the first response whose URL matches ``url``.

    Enter before navigating so the exchange cannot be missed; ``wait()``
    resolves with the response or with None after ``timeout_seconds``. The
    page listener is removed as soon as the capture resolves and again on
    exit, so it never outlives the probe.
    """

    def __init__(self, page: Any, url: str, *, timeout_seconds: float = 30.0) -> None:
        self.page = page
        self.url = url
        self.timeout_seconds = float(timeout_seconds)
        self._target = normalize_url(url)
        self._future: Optional[asyncio.Future] = None
        self._attached = False

    async def __aenter__(self) -> "ResponseCapture":
        self._future = asyncio.get_running_loop().create_future()
        self.page.on("response", self._on_response)
        self._attached = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self._detach()
        if self._future is not None and not self._future.done():
            self._future.cancel()

    def _detach(self) -> None:
        if not self._attached:
            return
        self._attached = False
        try:
            self.page.remove_listener("response", self._on_response)
        except Exception:
            logger.debug("Response listener removal failed", url=self.url, exc_info=True)

    def _on_response(self, response: Any) -> None:
        if self._future is None or self._future.done():
            return
        if normalize_url(getattr(response, "url", "")) != self._target:
            return
        status = getattr(response, "status", None)
        if isinstance(status, int) and 300 <= status < 400:
            # Redirect hop; the payload and timing belong to the final response.
            return
        self._future.set_result(response)
        self._detach()

    @property
    def listening(self) -> bool:
        return self._attached

    async def wait(self) -> Any:
        if self._future is None:
            raise RuntimeError("ResponseCapture used outside 'async with'")
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("No matching response captured", url=self.url, timeout_seconds=self.timeout_seconds)
            return None
        finally:
            self._detach()
