"""Unit tests for BackoffPolicy."""

import pytest
from pydantic import ValidationError

from devbytes.scheduler.backoff import BackoffKind, BackoffPolicy


class TestBackoffPolicyDefaults:
    """Tests for default values and validation."""

    @pytest.mark.unit
    def test_default_values(self) -> None:
        """Test default exponential policy."""
        policy = BackoffPolicy()
        assert policy.kind == BackoffKind.EXPONENTIAL
        assert policy.base_delay_seconds == 30.0
        assert policy.max_delay_seconds == 5 * 3600.0
        assert policy.jitter_factor == 0.1
        assert policy.max_attempts == 5

    @pytest.mark.unit
    def test_base_delay_lower_bound(self) -> None:
        """Test that sub-second base delays are rejected."""
        with pytest.raises(ValidationError):
            BackoffPolicy(base_delay_seconds=0.5)

    @pytest.mark.unit
    def test_max_attempts_bounds(self) -> None:
        """Test max_attempts validation and the unlimited setting."""
        with pytest.raises(ValidationError):
            BackoffPolicy(max_attempts=0)
        assert BackoffPolicy(max_attempts=None).max_attempts is None

    @pytest.mark.unit
    def test_frozen(self) -> None:
        """Test that the policy is immutable."""
        policy = BackoffPolicy()
        with pytest.raises(ValidationError):
            policy.base_delay_seconds = 10.0  # type: ignore[misc]


class TestBackoffDelays:
    """Tests for delay calculation."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("failures", "expected"),
        [(1, 30.0), (2, 60.0), (3, 120.0), (4, 240.0)],
    )
    def test_exponential_without_jitter(self, failures: int, expected: float) -> None:
        """Test exponential growth from the base delay."""
        policy = BackoffPolicy(jitter_factor=0.0)
        assert policy.get_delay_seconds(failures) == expected

    @pytest.mark.unit
    def test_linear_without_jitter(self) -> None:
        """Test linear growth."""
        policy = BackoffPolicy(kind=BackoffKind.LINEAR, base_delay_seconds=10.0, jitter_factor=0.0)
        assert policy.get_delay_seconds(1) == 10.0
        assert policy.get_delay_seconds(3) == 30.0

    @pytest.mark.unit
    def test_delay_is_capped(self) -> None:
        """Test that delays never exceed max_delay_seconds."""
        policy = BackoffPolicy(max_delay_seconds=100.0, jitter_factor=0.0)
        assert policy.get_delay_seconds(20) == 100.0

    @pytest.mark.unit
    def test_jitter_bounds(self) -> None:
        """Test that jitter only adds up to jitter_factor of the delay."""
        policy = BackoffPolicy(jitter_factor=0.5)
        for _ in range(50):
            delay = policy.get_delay_seconds(1)
            assert 30.0 <= delay <= 45.0

    @pytest.mark.unit
    def test_zero_failures_treated_as_first(self) -> None:
        """Test that failures below one use the base delay."""
        policy = BackoffPolicy(jitter_factor=0.0)
        assert policy.get_delay_seconds(0) == 30.0


class TestBackoffExhausted:
    """Tests for exhausted()."""

    @pytest.mark.unit
    def test_exhausted_at_max_attempts(self) -> None:
        """Test the retry budget."""
        policy = BackoffPolicy(max_attempts=3)
        assert not policy.exhausted(2)
        assert policy.exhausted(3)

    @pytest.mark.unit
    def test_unlimited_never_exhausted(self) -> None:
        """Test that max_attempts=None keeps retrying."""
        policy = BackoffPolicy(max_attempts=None)
        assert not policy.exhausted(1000)
