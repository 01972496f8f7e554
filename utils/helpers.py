"""Identifier, time and number helpers shared by the codecs."""

from __future__ import annotations

import time
from typing import Optional

TRACE_ID_SIZE = 32

# Microseconds per millisecond.
TIME_DIVISOR_MS = 1000


def pad_trace_id(trace_id: str) -> str:
    """
    Left-pad a trace id with '0' to the canonical 32 characters.

    Args:
        trace_id: Trace id of any length

    Returns:
        The padded trace id; values of 32 or more characters are returned
        unchanged (never truncated)
    """
    if len(trace_id) >= TRACE_ID_SIZE:
        return trace_id
    return trace_id.rjust(TRACE_ID_SIZE, "0")


def now_us() -> int:
    """Current wall-clock time in microseconds since the epoch."""
    return time.time_ns() // 1000


def us_to_ms(value: int) -> int:
    return value // TIME_DIVISOR_MS


def ms_to_us(value: int) -> int:
    return value * TIME_DIVISOR_MS


def time_duration(start: int, end: int) -> int:
    """Return end - start, or 0 when end is not after start."""
    if end > start:
        return end - start
    return 0


def format_priority(priority: float) -> str:
    """
    Format a sampling priority with six decimals.

    printf-style formatting in Python ignores LC_NUMERIC, so the decimal
    separator is always '.'.
    """
    return "%.6f" % priority


def format_trace_id(trace_id: int) -> str:
    """
    Format OTel trace_id (int) to hex string.

    Args:
        trace_id: OTel trace_id as int

    Returns:
        32-character hex string
    """
    return format(trace_id, '032x')


def format_span_id(span_id: int) -> str:
    """
    Format OTel span_id (int) to hex string.

    Args:
        span_id: OTel span_id as int

    Returns:
        16-character hex string
    """
    return format(span_id, '016x')


def parse_trace_id(hex_string: Optional[str]) -> int:
    """
    Parse hex string trace_id to OTel int.

    Args:
        hex_string: 32-character hex string

    Returns:
        OTel trace_id as int, 0 when missing
    """
    if not hex_string:
        return 0
    return int(hex_string, 16)


def parse_span_id(hex_string: Optional[str]) -> int:
    """
    Parse hex string span_id to OTel int.

    Args:
        hex_string: 16-character hex string

    Returns:
        OTel span_id as int, 0 when missing
    """
    if not hex_string:
        return 0
    return int(hex_string, 16)
