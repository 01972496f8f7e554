"""Tracelink: distributed trace context propagation.

Holds per-request trace metadata and encodes/decodes cross-process trace
context as a proprietary JSON payload and as W3C Trace Context headers.
"""

from tracelink.config import TracelinkConfig, configure_logging, load_config
from tracelink.context import (
    AcceptResult,
    W3CTraceContext,
    accept_inbound_payload,
    accept_inbound_w3c_payload,
    accept_trace_context,
    convert_payload_to_object,
    convert_w3c_headers,
    create_trace_headers,
    format_traceparent,
    format_tracestate,
    parse_traceparent,
    parse_tracestate,
)
from tracelink.errors import ErrorToken, TraceError, TracelinkError
from tracelink.processors import PrioritySampler
from tracelink.tracing import Payload, TraceMetadata, create_payload_text
from tracelink.utils import pad_trace_id

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "TraceMetadata",
    "Payload",
    "create_payload_text",
    "convert_payload_to_object",
    "accept_inbound_payload",
    "parse_traceparent",
    "format_traceparent",
    "parse_tracestate",
    "format_tracestate",
    "convert_w3c_headers",
    "accept_inbound_w3c_payload",
    "accept_trace_context",
    "create_trace_headers",
    "AcceptResult",
    "W3CTraceContext",
    "ErrorToken",
    "TraceError",
    "TracelinkError",
    "PrioritySampler",
    "pad_trace_id",
    "TracelinkConfig",
    "load_config",
    "configure_logging",
]
