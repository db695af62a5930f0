"""Durable result log and record model."""

from .models import HEADER, LEGACY_HEADER, METRIC_FIELDS, SENTINEL, ResultRecord
from .result_log import ResultLog

__all__ = ["HEADER", "LEGACY_HEADER", "METRIC_FIELDS", "SENTINEL", "ResultLog", "ResultRecord"]
