"""Local sampling decisions."""

from tracelink.processors.sampler import PrioritySampler, SamplingResult

__all__ = [
    "PrioritySampler",
    "SamplingResult",
]
