"""Tracelink error hierarchy, error tokens and supportability metric names."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class TracelinkError(Exception):
    """Base exception for all Tracelink errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(TracelinkError):
    """Raised when configuration is invalid or conflicting."""
    pass


class TraceContextError(TracelinkError):
    """Raised from an error token for callers that prefer exceptions."""

    def __init__(self, error: "TraceError"):
        super().__init__(
            "Trace context could not be accepted",
            details={"metric": error.value},
        )
        self.error = error


class TraceError(str, Enum):
    """
    Outcome of an inbound accept attempt.

    Values are the supportability metric names the agent records.
    """

    ACCEPT_SUCCESS = "Supportability/DistributedTrace/AcceptPayload/Success"
    ACCEPT_EXCEPTION = "Supportability/DistributedTrace/AcceptPayload/Exception"
    ACCEPT_PARSE_EXCEPTION = (
        "Supportability/DistributedTrace/AcceptPayload/ParseException"
    )
    ACCEPT_CREATE_BEFORE_ACCEPT = (
        "Supportability/DistributedTrace/AcceptPayload/Ignored/CreateBeforeAccept"
    )
    ACCEPT_MULTIPLE = "Supportability/DistributedTrace/AcceptPayload/Ignored/Multiple"
    ACCEPT_MAJOR_VERSION = (
        "Supportability/DistributedTrace/AcceptPayload/Ignored/MajorVersion"
    )
    ACCEPT_NULL = "Supportability/DistributedTrace/AcceptPayload/Ignored/Null"
    ACCEPT_UNTRUSTED_ACCOUNT = (
        "Supportability/DistributedTrace/AcceptPayload/Ignored/UntrustedAccount"
    )
    W3C_ACCEPT_SUCCESS = "Supportability/TraceContext/Accept/Success"
    W3C_ACCEPT_EXCEPTION = "Supportability/TraceContext/Accept/Exception"
    W3C_TRACEPARENT_PARSE_EXCEPTION = (
        "Supportability/TraceContext/TraceParent/Parse/Exception"
    )
    W3C_TRACESTATE_NO_NR_ENTRY = "Supportability/TraceContext/TraceState/NoNrEntry"
    W3C_TRACESTATE_INVALID_NR_ENTRY = (
        "Supportability/TraceContext/TraceState/InvalidNrEntry"
    )

    def __str__(self) -> str:
        return self.value


class ErrorToken:
    """
    Out-parameter carrying the first error of a decode/accept pipeline.

    Once set, the token is never overwritten, so the first failure of a
    multi-step pipeline is the one reported.
    """

    __slots__ = ("error",)

    def __init__(self, error: Optional[TraceError] = None) -> None:
        self.error = error

    def __bool__(self) -> bool:
        return self.error is not None

    def __repr__(self) -> str:
        return f"ErrorToken({self.error!r})"

    def set(self, error: TraceError) -> None:
        """Record an error unless one is already held."""
        if self.error is None:
            self.error = error

    def raise_for_error(self) -> None:
        """Raise TraceContextError if the token holds an error."""
        if self.error is not None:
            raise TraceContextError(self.error)
