"""W3C traceparent header codec.

Grammar (https://w3c.github.io/trace-context/#traceparent-header):

    version "-" trace-id "-" parent-id "-" trace-flags [ "-" additional ]

with 2, 32, 16 and 2 lowercase hex digits respectively.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from tracelink.errors import ErrorToken, TraceError
from tracelink.utils.helpers import pad_trace_id

logger = logging.getLogger(__name__)

TRACEPARENT_VERSION = "00"
INVALID_VERSION = "ff"
INVALID_TRACE_ID = "0" * 32
INVALID_PARENT_ID = "0" * 16

_HEX_DIGITS = frozenset("0123456789abcdef")
_FIELD_SIZES = (
    ("version", 2),
    ("trace_id", 32),
    ("parent_id", 16),
    ("trace_flags", 2),
)


@dataclass(frozen=True)
class TraceParent:
    version: str
    trace_id: str
    parent_id: str
    trace_flags: int

    @property
    def sampled(self) -> bool:
        return bool(self.trace_flags & 0x01)


def _is_hex(value: str) -> bool:
    return all(c in _HEX_DIGITS for c in value)


def _scan(header: str) -> Optional[tuple]:
    """
    Split a header into its four fixed fields and the optional additional
    part, or return None when it does not match the grammar.
    """
    fields = {}
    pos = 0
    for index, (name, size) in enumerate(_FIELD_SIZES):
        if index:
            if header[pos:pos + 1] != "-":
                return None
            pos += 1
        value = header[pos:pos + size]
        if len(value) != size or not _is_hex(value):
            return None
        fields[name] = value
        pos += size

    additional = header[pos:] or None
    if additional is not None and not additional.startswith("-"):
        return None
    return fields, additional


def parse_traceparent(
    header: Optional[str],
    error: Optional[ErrorToken] = None,
) -> Optional[TraceParent]:
    """
    Decode a traceparent header value.

    Returns None and records TraceParent/Parse/Exception in ``error`` when the
    value is missing, malformed, uses the reserved version ff, carries extra
    fields for version 00, or has an all-zero trace or parent id.
    """
    if error is None:
        error = ErrorToken()

    if header is None:
        logger.debug("Inbound W3C trace parent: None given")
        error.set(TraceError.W3C_TRACEPARENT_PARSE_EXCEPTION)
        return None

    scanned = _scan(header)
    if scanned is None:
        logger.warning("Inbound W3C trace parent invalid: cannot parse '%s'", header)
        error.set(TraceError.W3C_TRACEPARENT_PARSE_EXCEPTION)
        return None
    fields, additional = scanned

    if fields["version"] == INVALID_VERSION:
        logger.warning("Inbound W3C trace parent invalid: version 0xff is forbidden")
        error.set(TraceError.W3C_TRACEPARENT_PARSE_EXCEPTION)
        return None

    if fields["version"] == TRACEPARENT_VERSION and additional is not None:
        logger.warning(
            "Inbound W3C trace parent invalid: received additional fields "
            "that are not valid for trace parent version 00"
        )
        error.set(TraceError.W3C_TRACEPARENT_PARSE_EXCEPTION)
        return None

    if fields["trace_id"] == INVALID_TRACE_ID:
        logger.warning(
            "Inbound W3C trace parent invalid: trace id '%s'", fields["trace_id"]
        )
        error.set(TraceError.W3C_TRACEPARENT_PARSE_EXCEPTION)
        return None

    if fields["parent_id"] == INVALID_PARENT_ID:
        logger.warning(
            "Inbound W3C trace parent invalid: parent id '%s'", fields["parent_id"]
        )
        error.set(TraceError.W3C_TRACEPARENT_PARSE_EXCEPTION)
        return None

    return TraceParent(
        version=fields["version"],
        trace_id=fields["trace_id"],
        parent_id=fields["parent_id"],
        trace_flags=int(fields["trace_flags"], 16),
    )


def format_traceparent(
    trace_id: Optional[str],
    span_id: Optional[str],
    sampled: bool,
) -> Optional[str]:
    """
    Build a version 00 traceparent header value.

    The trace id is lowercased and left-padded with '0' to 32 characters;
    longer ids are kept whole. Only the sampled flag is modeled.
    """
    if trace_id is None or span_id is None:
        return None

    formatted_trace_id = pad_trace_id(trace_id.lower())
    flags = "01" if sampled else "00"
    return f"{TRACEPARENT_VERSION}-{formatted_trace_id}-{span_id}-{flags}"
