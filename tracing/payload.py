"""Outbound distributed trace payload (proprietary JSON format)."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from tracelink.tracing.metadata import TraceMetadata
from tracelink.utils.helpers import now_us, us_to_ms

VERSION_MAJOR = 0
VERSION_MINOR = 1


@dataclass
class Payload:
    """
    One outbound payload.

    Refers to the request's metadata without owning it. The timestamp is kept
    in microseconds and emitted in milliseconds.
    """

    metadata: Optional[TraceMetadata]
    parent_id: Optional[str] = None
    txn_id: Optional[str] = None
    timestamp: int = field(default_factory=now_us)

    def _resolved_txn_id(self) -> Optional[str]:
        if self.txn_id:
            return self.txn_id
        if self.metadata is None:
            return None
        return self.metadata.txn_id

    def as_dict(self) -> Optional[Dict[str, Any]]:
        if self.metadata is None:
            return None

        txn_id = self._resolved_txn_id()
        if not self.parent_id and not txn_id:
            return None

        metadata = self.metadata
        data: Dict[str, Any] = {"ty": "App"}
        _add_field_if_set(data, "ac", metadata.account_id)
        _add_field_if_set(data, "ap", metadata.app_id)
        _add_field_if_set(data, "id", self.parent_id)
        _add_field_if_set(data, "tr", metadata.trace_id)
        _add_field_if_set(data, "tx", txn_id)
        data["pr"] = metadata.priority
        data["sa"] = metadata.sampled
        data["ti"] = us_to_ms(self.timestamp)

        # A receiver infers tk == ac when tk is absent.
        if metadata.trusted_key != metadata.account_id:
            _add_field_if_set(data, "tk", metadata.trusted_key)

        return {"v": [VERSION_MAJOR, VERSION_MINOR], "d": data}

    def as_text(self) -> Optional[str]:
        """Return the JSON text of the payload, or None if it cannot be built."""
        obj = self.as_dict()
        if obj is None:
            return None
        return json.dumps(obj, separators=(",", ":"))

    def http_safe(self) -> str:
        """Return the base64 encoded text, or '' when there is no text."""
        text = self.as_text()
        if not text:
            return ""
        return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _add_field_if_set(data: Dict[str, Any], key: str, value: Optional[str]) -> None:
    if value:
        data[key] = value


def create_payload_text(
    metadata: Optional[TraceMetadata],
    parent_id: Optional[str],
    txn_id: Optional[str] = None,
) -> Optional[str]:
    """Encode the metadata for an outbound call; see Payload.as_text()."""
    return Payload(metadata, parent_id=parent_id, txn_id=txn_id).as_text()
