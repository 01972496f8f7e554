"""Sampling and priority decisions for new traces."""

import math
import random
from dataclasses import dataclass


@dataclass
class SamplingResult:
    sampled: bool
    priority: float


class PrioritySampler:
    """Head-based sampler using a fixed probability that also assigns a priority."""

    def __init__(self, sample_rate: float = 1.0, rng: random.Random = None) -> None:
        if not 0.0 <= sample_rate <= 1.0:
            raise ValueError("sample_rate must be between 0.0 and 1.0")
        self.sample_rate = sample_rate
        self._rng = rng or random.Random()

    def initial_priority(self) -> float:
        # Truncated so the priority survives the 6-decimal tracestate encoding.
        return math.floor(self._rng.random() * 1_000_000) / 1_000_000

    def should_sample(self) -> SamplingResult:
        priority = self.initial_priority()
        sampled = self._rng.random() < self.sample_rate
        if sampled:
            priority += 1.0
        return SamplingResult(sampled=sampled, priority=priority)
