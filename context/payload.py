"""Inbound proprietary payload: validation, parsing and accept."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, Optional

from tracelink.errors import ErrorToken, TraceError
from tracelink.tracing.metadata import TraceMetadata
from tracelink.tracing.payload import VERSION_MAJOR
from tracelink.utils.helpers import ms_to_us

logger = logging.getLogger(__name__)

REQUIRED_DATA_FIELDS = ("ty", "ac", "ap", "tr", "ti")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _get_data(obj: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        return {}
    data = obj.get("d")
    return data if isinstance(data, dict) else {}


def _get_string(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, str):
        return value
    if _is_int(value):
        return str(value)
    return None


def _get_priority(data: Dict[str, Any]) -> Optional[float]:
    value = data.get("pr")
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return None
    try:
        priority = float(value)
    except OverflowError:
        return None
    return priority if math.isfinite(priority) else None


def convert_payload_to_object(
    payload: Optional[str],
    error: Optional[ErrorToken] = None,
) -> Optional[Dict[str, Any]]:
    """
    Validate a payload's text and return its parsed form.

    Returns None and records the failure in ``error`` when the text is empty,
    not JSON, carries an unsupported major version, or misses required fields.
    A token that already holds an error makes this a no-op.
    """
    if error is None:
        error = ErrorToken()
    if error:
        return None

    if not payload:
        error.set(TraceError.ACCEPT_NULL)
        return None

    try:
        obj = json.loads(payload)
    except (ValueError, RecursionError):
        logger.debug("Inbound distributed tracing payload is not valid JSON.")
        error.set(TraceError.ACCEPT_PARSE_EXCEPTION)
        return None

    if not isinstance(obj, dict):
        logger.debug("Inbound distributed tracing payload is not a JSON object.")
        error.set(TraceError.ACCEPT_PARSE_EXCEPTION)
        return None

    version = obj.get("v")
    if not isinstance(version, list) or not version or not _is_int(version[0]):
        logger.debug("Inbound distributed tracing payload invalid. Missing version.")
        error.set(TraceError.ACCEPT_PARSE_EXCEPTION)
        return None

    if version[0] > VERSION_MAJOR:
        logger.debug(
            "Inbound distributed tracing payload invalid. Unexpected version: "
            "the maximum version supported is %d, but the payload has version %d.",
            VERSION_MAJOR,
            version[0],
        )
        error.set(TraceError.ACCEPT_MAJOR_VERSION)
        return None

    data = _get_data(obj)

    # Unlike the other fields, tx and id only count when they are strings.
    if not isinstance(data.get("tx"), str) and not isinstance(data.get("id"), str):
        logger.debug(
            "Inbound distributed tracing payload format invalid. Missing both "
            "guid (d.id) and transactionId (d.tx)."
        )
        error.set(TraceError.ACCEPT_PARSE_EXCEPTION)
        return None

    for key in REQUIRED_DATA_FIELDS:
        if _get_string(data, key) is None:
            logger.debug(
                "Inbound distributed tracing payload format invalid. "
                "Missing field '%s'",
                key,
            )
            error.set(TraceError.ACCEPT_PARSE_EXCEPTION)
            return None

    return obj


def object_get_account_id(obj: Optional[Dict[str, Any]]) -> Optional[str]:
    return _get_string(_get_data(obj), "ac")


def object_get_trusted_key(obj: Optional[Dict[str, Any]]) -> Optional[str]:
    return _get_string(_get_data(obj), "tk")


def accept_inbound_payload(
    metadata: Optional[TraceMetadata],
    obj: Optional[Dict[str, Any]],
    transport_type: Optional[str],
    error: Optional[ErrorToken] = None,
) -> bool:
    """
    Merge a parsed payload into the metadata's inbound snapshot.

    Priority and sampled are only replaced when the payload carries
    well-typed values, so local decisions survive a missing or malformed
    field. Returns True on success.
    """
    if error is None:
        error = ErrorToken()
    if error:
        return False

    if metadata is None:
        error.set(TraceError.ACCEPT_EXCEPTION)
        return False

    if obj is None:
        error.set(TraceError.ACCEPT_PARSE_EXCEPTION)
        return False

    data = _get_data(obj)
    inbound = metadata.inbound

    inbound.type = _get_string(data, "ty")
    inbound.account_id = _get_string(data, "ac")
    inbound.app_id = _get_string(data, "ap")
    inbound.guid = _get_string(data, "id")
    inbound.txn_id = _get_string(data, "tx")
    # One trace id per request, so it is not kept in the inbound snapshot.
    metadata.trace_id = _get_string(data, "tr")

    priority = _get_priority(data)
    if priority is not None:
        metadata.priority = priority

    sampled = data.get("sa")
    if isinstance(sampled, bool):
        metadata.sampled = sampled

    timestamp = data.get("ti")
    inbound.timestamp = ms_to_us(timestamp) if _is_int(timestamp) else 0

    metadata.set_transport_type(transport_type)
    inbound.set = True

    return True
