"""Tests for the step scaling policy."""

import pytest

from core.errors import ConfigurationError
from doc_pipeline.scaling import ScalingPolicy, ScalingStep


class TestScalingStep:
    def test_bounds_inclusive(self):
        step = ScalingStep(change=1, lower=100, upper=200)

        assert step.matches(100)
        assert step.matches(200)
        assert not step.matches(99)
        assert not step.matches(201)

    def test_open_ended(self):
        assert ScalingStep(change=1, lower=100).matches(10_000)
        assert ScalingStep(change=-1, upper=0).matches(0)

    def test_needs_a_bound(self):
        with pytest.raises(ConfigurationError):
            ScalingStep(change=1)

    def test_lower_above_upper(self):
        with pytest.raises(ConfigurationError):
            ScalingStep(change=1, lower=10, upper=5)


class TestScalingPolicy:
    def test_default_steps(self):
        policy = ScalingPolicy(min_capacity=1, max_capacity=10)

        assert policy.desired_capacity(3, 0) == 2
        assert policy.desired_capacity(3, 50) == 3
        assert policy.desired_capacity(3, 100) == 4
        assert policy.desired_capacity(3, 500) == 8

    def test_largest_change_wins(self):
        policy = ScalingPolicy(max_capacity=20)

        assert policy.step_for(750).change == 5

    def test_clamped_to_bounds(self):
        policy = ScalingPolicy(min_capacity=1, max_capacity=2)

        assert policy.desired_capacity(1, 0) == 1
        assert policy.desired_capacity(2, 10_000) == 2
        assert policy.desired_capacity(7, 50) == 2

    def test_missing_sample_keeps_capacity(self):
        assert ScalingPolicy().desired_capacity(2, None) == 2

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_capacity": -1},
            {"min_capacity": 3, "max_capacity": 2},
            {"evaluation_periods": 0},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            ScalingPolicy(**kwargs)

    def test_from_env(self):
        policy = ScalingPolicy.from_env(
            {"MIN_CAPACITY": "2", "MAX_CAPACITY": "8", "SCALING_EVALUATION_PERIODS": "3"}
        )

        assert (policy.min_capacity, policy.max_capacity, policy.evaluation_periods) == (2, 8, 3)

    def test_from_env_defaults(self):
        policy = ScalingPolicy.from_env({})

        assert (policy.min_capacity, policy.max_capacity) == (1, 2)

    def test_from_env_malformed(self):
        with pytest.raises(ConfigurationError):
            ScalingPolicy.from_env({"MAX_CAPACITY": "lots"})
