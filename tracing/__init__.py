"""Trace metadata store and outbound payload."""

from tracelink.tracing.metadata import (
    SUPPORTED_TRANSPORT_TYPES,
    InboundContext,
    TraceMetadata,
)
from tracelink.tracing.payload import (
    VERSION_MAJOR,
    VERSION_MINOR,
    Payload,
    create_payload_text,
)

__all__ = [
    "TraceMetadata",
    "InboundContext",
    "SUPPORTED_TRANSPORT_TYPES",
    "Payload",
    "create_payload_text",
    "VERSION_MAJOR",
    "VERSION_MINOR",
]
