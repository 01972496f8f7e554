"""Utility functions for Tracelink."""

from tracelink.utils.helpers import (
    TRACE_ID_SIZE,
    format_priority,
    format_span_id,
    format_trace_id,
    ms_to_us,
    now_us,
    pad_trace_id,
    parse_span_id,
    parse_trace_id,
    time_duration,
    us_to_ms,
)

__all__ = [
    "TRACE_ID_SIZE",
    "pad_trace_id",
    "now_us",
    "us_to_ms",
    "ms_to_us",
    "time_duration",
    "format_priority",
    "format_trace_id",
    "format_span_id",
    "parse_trace_id",
    "parse_span_id",
]
