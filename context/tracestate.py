"""W3C tracestate header codec for the trusted account's vendor entry.

The entry is keyed ``<trusted_key>@nr`` and its value holds these fields,
separated by dashes:

    Name                  | Type           | Required
    ----------------------+----------------+---------
    version               | int            | yes
    parent_type           | int            | yes
    parent_account_id     | string         | yes
    parent_application_id | string         | yes
    span_id               | string         | no
    transaction_id        | string         | no
    sampled               | int            | no
    priority              | floating point | no
    timestamp             | int            | yes

For example:
190@nr=0-0-709288-8599547-f85f42fd82a4cf1d-164d3b4b0d09cb05-1-0.789-1563574856827
"""

from __future__ import annotations

import logging
import math
import string
from dataclasses import dataclass
from typing import List, Optional

from tracelink.errors import ErrorToken, TraceError
from tracelink.tracing.metadata import TraceMetadata
from tracelink.utils.helpers import format_priority, now_us, us_to_ms

logger = logging.getLogger(__name__)

ENTRY_FIELD_COUNT = 9

PARENT_TYPE_APP = 0
PARENT_TYPE_BROWSER = 1

_DIGITS = frozenset(string.digits)
_ALNUM = frozenset(string.ascii_letters + string.digits)
_PRIORITY_CHARS = frozenset(string.digits + ".")


@dataclass(frozen=True)
class TraceStateEntry:
    version: int
    parent_type: int
    parent_account_id: str
    parent_application_id: str
    timestamp: int
    span_id: Optional[str] = None
    transaction_id: Optional[str] = None
    sampled: Optional[int] = None
    priority: Optional[float] = None

    @property
    def parent_type_name(self) -> str:
        return parent_type_name(self.parent_type)


@dataclass(frozen=True)
class TraceState:
    """A decoded tracestate header: our entry plus the other vendors' entries."""

    entry: Optional[TraceStateEntry] = None
    tracing_vendors: Optional[str] = None
    raw_tracing_vendors: Optional[str] = None


def parent_type_name(parent_type: int) -> str:
    if parent_type == PARENT_TYPE_APP:
        return "App"
    if parent_type == PARENT_TYPE_BROWSER:
        return "Browser"
    return "Mobile"


def entry_key(trusted_key: str) -> str:
    return f"{trusted_key}@nr"


def _matches(value: str, charset: frozenset, required: bool) -> bool:
    if required and not value:
        return False
    return all(c in charset for c in value)


def _leading_digits(value: str) -> str:
    end = 0
    while end < len(value) and value[end] in _DIGITS:
        end += 1
    return value[:end]


def parse_entry(value: str) -> Optional[TraceStateEntry]:
    """
    Parse the value of our tracestate entry, or return None if it does not
    match the grammar. Fields after the timestamp are ignored.
    """
    fields = value.split("-")
    if len(fields) < ENTRY_FIELD_COUNT:
        return None

    (version, parent_type, account_id, app_id,
     span_id, txn_id, sampled, priority, timestamp) = fields[:ENTRY_FIELD_COUNT]

    # Text following the timestamp digits belongs to newer versions.
    timestamp = _leading_digits(timestamp)

    if not (
        _matches(version, _DIGITS, True)
        and _matches(parent_type, _DIGITS, True)
        and _matches(account_id, _ALNUM, True)
        and _matches(app_id, _ALNUM, True)
        and _matches(span_id, _ALNUM, False)
        and _matches(txn_id, _ALNUM, False)
        and _matches(sampled, _DIGITS, False)
        and _matches(priority, _PRIORITY_CHARS, False)
        and timestamp
    ):
        return None

    parsed_priority = None
    if priority:
        try:
            parsed_priority = float(priority)
        except ValueError:
            # An invalid priority is treated as though it were omitted.
            logger.warning("Inbound W3C trace state invalid: priority '%s'", priority)
        if parsed_priority is not None and not math.isfinite(parsed_priority):
            logger.warning("Inbound W3C trace state invalid: priority out of range")
            parsed_priority = None

    try:
        return TraceStateEntry(
            version=int(version),
            parent_type=int(parent_type),
            parent_account_id=account_id,
            parent_application_id=app_id,
            timestamp=int(timestamp),
            span_id=span_id or None,
            transaction_id=txn_id or None,
            sampled=int(sampled) if sampled else None,
            priority=parsed_priority,
        )
    except ValueError:
        # Digit fields beyond the interpreter's int conversion limit.
        logger.warning("Inbound W3C trace state invalid: oversized numeric field")
        return None


def parse_tracestate(
    header: Optional[str],
    trusted_key: Optional[str],
    error: Optional[ErrorToken] = None,
) -> TraceState:
    """
    Decode a tracestate header value.

    Always returns a TraceState. When the header has no usable entry for the
    trusted key, NoNrEntry is recorded in ``error``; when our entry is
    malformed, InvalidNrEntry is recorded. In both cases the other vendors'
    entries are still returned.
    """
    if error is None:
        error = ErrorToken()

    if header is None:
        logger.debug("Inbound W3C trace state: None given")
        error.set(TraceError.W3C_TRACESTATE_NO_NR_ENTRY)
        return TraceState()

    key = entry_key(trusted_key) if trusted_key else None
    nr_value: Optional[str] = None
    raw_vendors: List[str] = []
    vendor_keys: List[str] = []

    for item in header.split(","):
        item = item.strip()
        if not item:
            continue
        item_key, sep, item_value = item.partition("=")
        if key is not None and sep and item_key.strip() == key:
            if nr_value is None:
                nr_value = item_value
            else:
                logger.debug("Inbound W3C trace state: duplicate entry '%s' dropped", item)
            continue
        raw_vendors.append(item)
        vendor_keys.append(item_key.strip())

    tracing_vendors = None
    raw_tracing_vendors = None
    if vendor_keys:
        tracing_vendors = ",".join(vendor_keys)
        raw_tracing_vendors = ",".join(raw_vendors)
        logger.debug("Inbound W3C trace state: found %s other vendors", tracing_vendors)

    if nr_value is None:
        logger.debug("Inbound W3C trace state: no NR entry")
        error.set(TraceError.W3C_TRACESTATE_NO_NR_ENTRY)
        return TraceState(
            tracing_vendors=tracing_vendors,
            raw_tracing_vendors=raw_tracing_vendors,
        )

    logger.debug("Inbound W3C trace state: found NR entry '%s'", nr_value)

    entry = parse_entry(nr_value)
    if entry is None:
        logger.warning(
            "Inbound W3C trace state invalid: cannot parse NR entry '%s=%s'",
            key,
            nr_value,
        )
        error.set(TraceError.W3C_TRACESTATE_INVALID_NR_ENTRY)

    return TraceState(
        entry=entry,
        tracing_vendors=tracing_vendors,
        raw_tracing_vendors=raw_tracing_vendors,
    )


def format_tracestate(
    metadata: Optional[TraceMetadata],
    span_id: Optional[str] = None,
    txn_id: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> Optional[str]:
    """
    Build our tracestate entry for an outbound call.

    Returns None when the trusted key, account id or app id is unset. The
    span id and transaction id may be omitted by passing None.

    Args:
        metadata: The request's trace metadata
        span_id: Current span id
        txn_id: Current transaction id
        timestamp: Creation time in microseconds (defaults to now)
    """
    if metadata is None:
        return None

    if metadata.trusted_key is None:
        logger.debug("Could not create trace state header missing trusted account key")
        return None
    if metadata.account_id is None:
        logger.debug("Could not create trace state header missing account id")
        return None
    if metadata.app_id is None:
        logger.debug("Could not create trace state header missing app id")
        return None

    if timestamp is None:
        timestamp = now_us()

    sampled = "1" if metadata.sampled else "0"
    return "%s=0-%d-%s-%s-%s-%s-%s-%s-%d" % (
        entry_key(metadata.trusted_key),
        PARENT_TYPE_APP,
        metadata.account_id,
        metadata.app_id,
        span_id or "",
        txn_id or "",
        sampled,
        format_priority(metadata.priority),
        us_to_ms(timestamp),
    )
