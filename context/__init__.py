"""Trace context codecs and accept pipelines."""

from tracelink.context.otel import to_span_context, traceparent_from_span_context
from tracelink.context.payload import (
    accept_inbound_payload,
    convert_payload_to_object,
    object_get_account_id,
    object_get_trusted_key,
)
from tracelink.context.propagators import (
    AcceptResult,
    W3CTraceContext,
    accept_inbound_w3c_payload,
    accept_trace_context,
    convert_w3c_headers,
    create_trace_headers,
)
from tracelink.context.traceparent import TraceParent, format_traceparent, parse_traceparent
from tracelink.context.tracestate import (
    TraceState,
    TraceStateEntry,
    format_tracestate,
    parse_tracestate,
)

__all__ = [
    "convert_payload_to_object",
    "accept_inbound_payload",
    "object_get_account_id",
    "object_get_trusted_key",
    "TraceParent",
    "parse_traceparent",
    "format_traceparent",
    "TraceState",
    "TraceStateEntry",
    "parse_tracestate",
    "format_tracestate",
    "W3CTraceContext",
    "AcceptResult",
    "convert_w3c_headers",
    "accept_inbound_w3c_payload",
    "accept_trace_context",
    "create_trace_headers",
    "to_span_context",
    "traceparent_from_span_context",
]
