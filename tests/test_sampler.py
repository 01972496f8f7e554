"""Tests for the priority sampler."""

import random

import pytest

from tracelink.processors import PrioritySampler


class FixedRandom:
    def __init__(self, *values):
        self._values = list(values)

    def random(self):
        return self._values.pop(0)


class TestPrioritySampler:
    def test_invalid_rate_rejected(self):
        with pytest.raises(ValueError):
            PrioritySampler(1.5)
        with pytest.raises(ValueError):
            PrioritySampler(-0.1)

    def test_initial_priority_truncated_to_six_decimals(self):
        sampler = PrioritySampler(rng=FixedRandom(0.1234567891))
        assert sampler.initial_priority() == 0.123456

    def test_sampled_priority_is_boosted(self):
        sampler = PrioritySampler(0.5, rng=FixedRandom(0.25, 0.1))
        result = sampler.should_sample()
        assert result.sampled is True
        assert result.priority == pytest.approx(1.25)

    def test_unsampled_priority_is_not_boosted(self):
        sampler = PrioritySampler(0.5, rng=FixedRandom(0.25, 0.9))
        result = sampler.should_sample()
        assert result.sampled is False
        assert result.priority == pytest.approx(0.25)

    def test_rate_zero_never_samples(self):
        sampler = PrioritySampler(0.0, rng=random.Random(7))
        for _ in range(100):
            result = sampler.should_sample()
            assert not result.sampled
            assert 0.0 <= result.priority < 1.0

    def test_rate_one_always_samples(self):
        sampler = PrioritySampler(1.0, rng=random.Random(7))
        for _ in range(100):
            result = sampler.should_sample()
            assert result.sampled
            assert 1.0 <= result.priority < 2.0
