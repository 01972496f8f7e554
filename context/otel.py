"""Conversions between decoded W3C trace context and OpenTelemetry span contexts."""

from __future__ import annotations

from typing import Optional

from opentelemetry.trace import SpanContext as OTelSpanContext
from opentelemetry.trace import TraceFlags, TraceState

from tracelink.context.propagators import W3CTraceContext
from tracelink.context.traceparent import format_traceparent
from tracelink.utils.helpers import (
    format_span_id,
    format_trace_id,
    parse_span_id,
    parse_trace_id,
)


def to_span_context(context: W3CTraceContext) -> OTelSpanContext:
    """
    Convert a decoded inbound context to a remote OTel SpanContext.

    The OTel trace state carries the other vendors' entries only.
    """
    parent = context.traceparent
    trace_state = TraceState()
    if context.raw_tracing_vendors:
        trace_state = TraceState.from_header([context.raw_tracing_vendors])

    return OTelSpanContext(
        trace_id=parse_trace_id(parent.trace_id),
        span_id=parse_span_id(parent.parent_id),
        is_remote=True,
        trace_flags=TraceFlags(parent.trace_flags),
        trace_state=trace_state,
    )


def traceparent_from_span_context(span_context: OTelSpanContext) -> Optional[str]:
    """Build a traceparent value for an OTel SpanContext, or None if it is invalid."""
    if not span_context.is_valid:
        return None
    return format_traceparent(
        format_trace_id(span_context.trace_id),
        format_span_id(span_context.span_id),
        span_context.trace_flags.sampled,
    )
