from __future__ import annotations


class ColdStartError(Exception):
    """Base class for errors raised by the benchmark monitor."""


class ConfigError(ColdStartError):
    """Configuration file is missing, unparsable or invalid."""


class ExtractionFailure(ColdStartError):
    """A single output field could not be determined."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


def is_browser_infra_error(exc: BaseException) -> bool:
    """
    True when the failure points at our own Chromium/driver rather than the
    probed site (crashed renderer, closed target, dead driver pipe).
    """
    name = type(exc).__name__
    msg = str(exc or "").lower()

    if name == "TargetClosedError":
        return True
    if "target page, context or browser has been closed" in msg:
        return True
    if "browser has been closed" in msg:
        return True
    if "page crashed" in msg or "target crashed" in msg:
        return True
    if "connection closed while reading from the driver" in msg:
        return True
    if "connection closed while writing to the driver" in msg:
        return True
    if "pipe closed by peer" in msg:
        return True
    return False
