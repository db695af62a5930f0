"""Playwright probes of cold-start endpoints."""

from .browser import BrowserSession
from .executor import ProbeExecutor
from .extraction import FieldResult, fold_record
from .network_timing import ResponseCapture

__all__ = ["BrowserSession", "FieldResult", "ProbeExecutor", "ResponseCapture", "fold_record"]
