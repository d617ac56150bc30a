"""
Unit tests for BackoffPolicy.
"""

import math
import statistics

import pytest

from megaverse.dispatch import BackoffPolicy, RateLimited, default_transient_classifier


def test_default_transient_classifier():
    """Test that default classifier recognizes transient errors."""
    assert default_transient_classifier(TimeoutError("socket timeout"))
    assert default_transient_classifier(ConnectionResetError("reset by peer"))
    assert default_transient_classifier(Exception("Temporary failure in name resolution"))
    assert not default_transient_classifier(ValueError("invalid argument"))
    assert not default_transient_classifier(KeyError("candidateId"))


def test_deterministic_curve_without_jitter():
    """Without jitter the delay is base + base * growth**i."""
    rp = BackoffPolicy(base_delay_ms=100, growth=2.0, jitter=False)
    vals = [rp.next_delay_ms(i) for i in range(4)]
    assert vals == [200, 300, 500, 900]


def test_delay_never_below_base():
    rp = BackoffPolicy(base_delay_ms=50, growth=1.2)
    for i in range(10):
        for _ in range(50):
            assert rp.next_delay_ms(i, RateLimited()) >= 50


def test_jitter_window_bounds():
    """Jittered values stay within [base, base + base * growth**i]."""
    rp = BackoffPolicy(base_delay_ms=100, growth=1.5)
    vals = [rp.next_delay_ms(2) for _ in range(200)]
    assert all(100 <= v <= 100 + 100 * 1.5**2 for v in vals)
    # jitter actually spreads values out
    assert len({round(v, 6) for v in vals}) > 1


def test_delays_grow_in_expectation():
    rp = BackoffPolicy(base_delay_ms=100, growth=2.0)
    means = [statistics.mean(rp.next_delay_ms(i) for _ in range(500)) for i in range(4)]
    assert means == sorted(means)


def test_cap_applies():
    rp = BackoffPolicy(base_delay_ms=100, growth=2.0, max_delay_ms=250, jitter=False)
    vals = [rp.next_delay_ms(i) for i in range(6)]
    assert vals[0] == 200
    assert all(v <= 250 for v in vals)


def test_seconds_conversion():
    rp = BackoffPolicy(base_delay_ms=1000, growth=1.2, initial_delay_ms=500, jitter=False)
    assert rp.initial_delay == 0.5
    assert rp.next_delay(0) == pytest.approx(2.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_delay_ms": -1},
        {"growth": 1.0},
        {"initial_delay_ms": -5},
        {"base_delay_ms": 100, "max_delay_ms": 50},
    ],
)
def test_invalid_parameters_rejected(kwargs):
    with pytest.raises(ValueError):
        BackoffPolicy(**kwargs)


def test_negative_attempt_index_rejected():
    with pytest.raises(ValueError):
        BackoffPolicy().next_delay(-1)


def test_custom_classifier():
    def always_retry(exc: BaseException) -> bool:
        return True

    rp = BackoffPolicy(classify_transient=always_retry)
    assert rp.classify_transient(ValueError("anything"))


@pytest.mark.parametrize("attempt_index", [1100, 10_000, 10**6])
def test_huge_attempt_index_respects_cap(attempt_index):
    rp = BackoffPolicy(base_delay_ms=100, growth=2.0, max_delay_ms=250)
    for _ in range(20):
        assert 100 <= rp.next_delay_ms(attempt_index) <= 250


def test_huge_attempt_index_uncapped_stays_finite():
    rp = BackoffPolicy(base_delay_ms=100, growth=2.0, jitter=False)
    delay = rp.next_delay_ms(10_000)
    assert math.isfinite(delay)
    assert delay > 100


def test_zero_base_delay_stays_zero_for_huge_index():
    rp = BackoffPolicy(base_delay_ms=0, growth=2.0)
    assert rp.next_delay_ms(10_000) == 0
