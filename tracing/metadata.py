"""Per-request distributed trace metadata."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from tracelink.processors.sampler import PrioritySampler
from tracelink.utils.helpers import pad_trace_id, time_duration

if TYPE_CHECKING:
    from tracelink.config import TracelinkConfig

logger = logging.getLogger(__name__)

SUPPORTED_TRANSPORT_TYPES = (
    "Unknown",
    "HTTP",
    "HTTPS",
    "Kafka",
    "JMS",
    "IronMQ",
    "AMQP",
    "Queue",
    "Other",
)


class _StringField:
    """
    Optional string attribute.

    Assigning an empty or absent value clears the field instead of storing it.
    """

    def __set_name__(self, owner, name: str) -> None:
        self.attr = "_" + name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return getattr(instance, self.attr, None)

    def __set__(self, instance, value: Optional[str]) -> None:
        setattr(instance, self.attr, value or None)


class InboundContext:
    """Snapshot of the trace context accepted from an inbound request."""

    type = _StringField()
    app_id = _StringField()
    account_id = _StringField()
    transport_type = _StringField()
    guid = _StringField()
    txn_id = _StringField()
    tracing_vendors = _StringField()
    raw_tracing_vendors = _StringField()
    trusted_parent_id = _StringField()

    def __init__(self) -> None:
        self._set = False
        # Microseconds since the epoch; 0 when unknown.
        self.timestamp = 0

    @property
    def set(self) -> bool:
        """Whether an inbound context was accepted. Never reset once true."""
        return self._set

    @set.setter
    def set(self, value: bool) -> None:
        self._set = self._set or bool(value)

    def __repr__(self) -> str:
        return (
            f"InboundContext(set={self.set}, type={self.type!r}, "
            f"account_id={self.account_id!r}, app_id={self.app_id!r}, "
            f"guid={self.guid!r}, txn_id={self.txn_id!r})"
        )


class TraceMetadata:
    """
    Distributed trace metadata for one unit of work.

    Holds the outbound identity of the current request (account, application,
    transaction, trace) together with the local priority and sampling
    decision, and an inbound snapshot filled in by the accept routines in
    tracelink.context.
    """

    account_id = _StringField()
    app_id = _StringField()
    txn_id = _StringField()
    trace_id = _StringField()
    trusted_key = _StringField()

    def __init__(self) -> None:
        self.priority = 0.0
        self.sampled = False
        self.inbound = InboundContext()

    @classmethod
    def from_config(
        cls,
        config: "TracelinkConfig",
        guid: str,
        sampler: Optional[PrioritySampler] = None,
    ) -> "TraceMetadata":
        """
        Create the metadata for a new request.

        The trace id starts out equal to the transaction guid; accepting an
        inbound context replaces it.
        """
        dt_config = config.distributed_tracing
        metadata = cls()
        metadata.txn_id = guid
        metadata.set_trace_id(guid, pad=dt_config.pad_trace_id)
        metadata.trusted_key = dt_config.trusted_account_key
        metadata.account_id = dt_config.account_id
        metadata.app_id = dt_config.primary_application_id

        sampler = sampler or PrioritySampler(dt_config.sample_rate)
        decision = sampler.should_sample()
        metadata.sampled = decision.sampled
        metadata.priority = decision.priority
        return metadata

    def __repr__(self) -> str:
        return (
            f"TraceMetadata(trace_id={self.trace_id!r}, txn_id={self.txn_id!r}, "
            f"account_id={self.account_id!r}, app_id={self.app_id!r}, "
            f"priority={self.priority}, sampled={self.sampled})"
        )

    def set_trace_id(self, trace_id: Optional[str], pad: bool = False) -> None:
        """Set the trace id, left-padding it to 32 characters when pad is set."""
        if trace_id is not None and pad:
            trace_id = pad_trace_id(trace_id)
        self.trace_id = trace_id

    def is_sampled(self) -> bool:
        return self.sampled

    def inbound_is_set(self) -> bool:
        return self.inbound.set

    def inbound_has_timestamp(self) -> bool:
        return self.inbound.timestamp != 0

    def inbound_timestamp_delta(self, txn_start: int) -> int:
        """Microseconds between the inbound timestamp and txn_start."""
        return time_duration(self.inbound.timestamp, txn_start)

    def set_transport_type(self, value: Optional[str]) -> None:
        """Set the inbound transport type; unsupported values become 'Unknown'."""
        if value in SUPPORTED_TRANSPORT_TYPES:
            self.inbound.transport_type = value
            return
        logger.debug("Unknown transport type: %s", value)
        self.inbound.transport_type = "Unknown"
