"""Inbound/outbound trace context pipelines over both wire formats."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tracelink.context.payload import (
    accept_inbound_payload,
    convert_payload_to_object,
    object_get_account_id,
    object_get_trusted_key,
)
from tracelink.context.traceparent import TraceParent, format_traceparent, parse_traceparent
from tracelink.context.tracestate import (
    TraceStateEntry,
    format_tracestate,
    parse_tracestate,
)
from tracelink.config import DistributedTracingConfig
from tracelink.errors import ErrorToken, TraceError
from tracelink.tracing.metadata import TraceMetadata
from tracelink.tracing.payload import Payload
from tracelink.utils.helpers import ms_to_us

logger = logging.getLogger(__name__)

NEWRELIC_HEADER = "newrelic"
TRACEPARENT_HEADER = "traceparent"
TRACESTATE_HEADER = "tracestate"


@dataclass(frozen=True)
class W3CTraceContext:
    """Decoded traceparent and tracestate headers of one inbound request."""

    traceparent: TraceParent
    tracestate: Optional[TraceStateEntry] = None
    tracing_vendors: Optional[str] = None
    raw_tracing_vendors: Optional[str] = None


@dataclass
class AcceptResult:
    accepted: bool
    metrics: List[TraceError] = field(default_factory=list)
    # Microseconds between the caller's timestamp and txn_start; only set
    # when the accepted context carried a timestamp and txn_start was given.
    transport_duration_us: Optional[int] = None


def convert_w3c_headers(
    traceparent: Optional[str],
    tracestate: Optional[str],
    trusted_key: Optional[str],
    error: Optional[ErrorToken] = None,
) -> Optional[W3CTraceContext]:
    """
    Decode a traceparent/tracestate header pair.

    Returns None when the traceparent is invalid. Tracestate problems
    (NoNrEntry, InvalidNrEntry) are recorded in ``error`` but still yield a
    context, since traces may pass through vendors that do not add an entry.
    """
    if error is None:
        error = ErrorToken()

    logger.debug("Inbound W3C trace parent: parsing '%s'", traceparent)
    parent = parse_traceparent(traceparent, error)
    if parent is None:
        return None

    logger.debug("Inbound W3C trace state: parsing '%s'", tracestate)
    state = parse_tracestate(tracestate, trusted_key, error)

    return W3CTraceContext(
        traceparent=parent,
        tracestate=state.entry,
        tracing_vendors=state.tracing_vendors,
        raw_tracing_vendors=state.raw_tracing_vendors,
    )


def _accept_tracestate(metadata: TraceMetadata, entry: TraceStateEntry) -> None:
    inbound = metadata.inbound

    if entry.span_id is not None:
        inbound.trusted_parent_id = entry.span_id
    if entry.parent_account_id:
        inbound.account_id = entry.parent_account_id
    if entry.parent_application_id:
        inbound.app_id = entry.parent_application_id
    if entry.transaction_id is not None:
        inbound.txn_id = entry.transaction_id
    if entry.sampled is not None:
        metadata.sampled = bool(entry.sampled)
    if entry.priority is not None and entry.priority > 0:
        metadata.priority = entry.priority

    inbound.timestamp = ms_to_us(entry.timestamp)
    inbound.type = entry.parent_type_name


def accept_inbound_w3c_payload(
    metadata: Optional[TraceMetadata],
    context: Optional[W3CTraceContext],
    transport_type: Optional[str],
    error: Optional[ErrorToken] = None,
) -> bool:
    """
    Merge a decoded W3C context into the metadata's inbound snapshot.

    The traceparent's parent id becomes the inbound guid and its trace id the
    request's trace id. Tracestate values, when present, fill in the rest;
    priority and sampled are only replaced when the entry carries them.
    """
    if error is None:
        error = ErrorToken()
    if error:
        return False

    if metadata is None:
        error.set(TraceError.W3C_ACCEPT_EXCEPTION)
        return False

    if context is None or context.traceparent is None:
        error.set(TraceError.W3C_TRACEPARENT_PARSE_EXCEPTION)
        return False

    parent = context.traceparent
    if not parent.parent_id or not parent.trace_id:
        error.set(TraceError.W3C_TRACEPARENT_PARSE_EXCEPTION)
        return False

    # A trace started by another vendor has no entry of ours; still valid.
    if context.tracestate is not None:
        _accept_tracestate(metadata, context.tracestate)

    inbound = metadata.inbound
    if context.tracing_vendors is not None:
        inbound.tracing_vendors = context.tracing_vendors
    if context.raw_tracing_vendors is not None:
        inbound.raw_tracing_vendors = context.raw_tracing_vendors

    metadata.set_transport_type(transport_type)
    inbound.guid = parent.parent_id
    metadata.trace_id = parent.trace_id
    inbound.set = True

    return True


def _decode_payload_text(payload: str) -> str:
    """Return the JSON text of a raw or base64 encoded payload."""
    stripped = payload.lstrip()
    if not stripped or stripped.startswith("{"):
        return payload
    try:
        return base64.b64decode(payload, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return payload


def _accept_w3c(
    metadata: TraceMetadata,
    traceparent: str,
    tracestate: Optional[str],
    transport_type: Optional[str],
    metrics: List[TraceError],
) -> bool:
    conversion_error = ErrorToken()
    context = convert_w3c_headers(
        traceparent, tracestate, metadata.trusted_key, conversion_error
    )
    if conversion_error:
        metrics.append(conversion_error.error)
    if context is None:
        logger.debug("Unable to parse W3C trace context headers")
        return False

    accept_error = ErrorToken()
    if not accept_inbound_w3c_payload(metadata, context, transport_type, accept_error):
        metrics.append(accept_error.error)
        return False

    metrics.append(TraceError.W3C_ACCEPT_SUCCESS)
    return True


def _accept_payload(
    metadata: TraceMetadata,
    payload: Optional[str],
    transport_type: Optional[str],
    metrics: List[TraceError],
) -> bool:
    error = ErrorToken()
    text = _decode_payload_text(payload) if payload else payload
    obj = convert_payload_to_object(text, error)
    if obj is None:
        logger.info("cannot accept an invalid distributed tracing payload")
        metrics.append(error.error)
        return False

    trusted_key = object_get_trusted_key(obj) or object_get_account_id(obj)
    if trusted_key != metadata.trusted_key:
        logger.info(
            "cannot accept a distributed tracing payload from an untrusted account"
        )
        metrics.append(TraceError.ACCEPT_UNTRUSTED_ACCOUNT)
        return False

    if not accept_inbound_payload(metadata, obj, transport_type, error):
        logger.info("error accepting distributed tracing payload: %s", error.error)
        metrics.append(error.error)
        return False

    return True


def accept_trace_context(
    metadata: Optional[TraceMetadata],
    traceparent: Optional[str] = None,
    tracestate: Optional[str] = None,
    payload: Optional[str] = None,
    transport_type: Optional[str] = None,
    outbound_created: bool = False,
    txn_start: Optional[int] = None,
    config: Optional[DistributedTracingConfig] = None,
) -> AcceptResult:
    """
    Accept the trace context of an inbound request.

    W3C headers take precedence over the proprietary payload. Only one
    inbound context is accepted per request, and none after an outbound
    payload was created.

    Args:
        metadata: The request's trace metadata
        traceparent: traceparent header value, if any
        tracestate: tracestate header value, if any
        payload: proprietary payload, raw JSON or base64
        transport_type: One of SUPPORTED_TRANSPORT_TYPES
        outbound_created: Whether outbound headers were already created
        txn_start: Transaction start in microseconds, for the transport duration
        config: Distributed tracing settings; accept is refused when disabled

    Returns:
        AcceptResult with the supportability metrics to record
    """
    result = AcceptResult(accepted=False)

    if metadata is None:
        result.metrics.append(TraceError.ACCEPT_EXCEPTION)
        return result

    if config is not None and not config.enabled:
        logger.info(
            "cannot accept distributed tracing payload when distributed "
            "tracing is disabled"
        )
        result.metrics.append(TraceError.ACCEPT_EXCEPTION)
        return result

    if metadata.inbound_is_set():
        logger.info("cannot accept multiple inbound distributed tracing payloads")
        result.metrics.append(TraceError.ACCEPT_MULTIPLE)
        return result

    if outbound_created:
        logger.info(
            "cannot accept an inbound distributed tracing payload after an "
            "outbound payload has been created"
        )
        result.metrics.append(TraceError.ACCEPT_CREATE_BEFORE_ACCEPT)
        return result

    if traceparent is not None:
        accepted = _accept_w3c(
            metadata, traceparent, tracestate, transport_type, result.metrics
        )
    else:
        accepted = _accept_payload(metadata, payload, transport_type, result.metrics)

    if accepted:
        result.accepted = True
        result.metrics.append(TraceError.ACCEPT_SUCCESS)
        if txn_start is not None and metadata.inbound_has_timestamp():
            result.transport_duration_us = metadata.inbound_timestamp_delta(txn_start)
    return result


def create_trace_headers(
    metadata: Optional[TraceMetadata],
    span_id: Optional[str],
    txn_id: Optional[str] = None,
    include_payload: bool = True,
    include_span_id: bool = True,
    include_txn_id: bool = True,
    debug: bool = False,
    config: Optional[DistributedTracingConfig] = None,
) -> Dict[str, str]:
    """
    Build the header values for an outbound call.

    The caller is responsible for setting them on the outgoing request.
    Headers that cannot be built are left out. With ``debug`` set, the
    generated values are logged.

    When ``config`` is given, nothing is built while distributed tracing is
    disabled, the newrelic header is left out when excluded, and the span
    and transaction ids are only put in the tracestate when span events and
    transaction events are enabled respectively.
    """
    headers: Dict[str, str] = {}
    if metadata is None:
        return headers

    if config is not None:
        if not config.enabled:
            logger.info(
                "cannot create distributed tracing headers when distributed "
                "tracing is disabled"
            )
            return headers
        include_payload = include_payload and not config.exclude_newrelic_header
        include_span_id = include_span_id and config.span_events_enabled
        include_txn_id = include_txn_id and config.transaction_events_enabled

    txn_id = txn_id or metadata.txn_id

    if include_payload:
        text = Payload(metadata, parent_id=span_id, txn_id=txn_id).http_safe()
        if text:
            headers[NEWRELIC_HEADER] = text

    traceparent = format_traceparent(metadata.trace_id, span_id, metadata.sampled)
    if traceparent is not None:
        headers[TRACEPARENT_HEADER] = traceparent

    tracestate = format_tracestate(
        metadata,
        span_id=span_id if include_span_id else None,
        txn_id=txn_id if include_txn_id else None,
    )
    if tracestate is not None:
        if metadata.inbound.raw_tracing_vendors:
            tracestate = f"{tracestate},{metadata.inbound.raw_tracing_vendors}"
        headers[TRACESTATE_HEADER] = tracestate

    if debug:
        logger.debug("Outbound distributed trace headers generated: %s", headers)

    return headers
