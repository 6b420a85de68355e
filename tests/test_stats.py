"""Tests for hypergeometric p-values and FDR corrections."""

from math import comb

import numpy as np
import pytest

from ora_pipeline.enrichment.stats import (
    benjamini_hochberg,
    estimate_pi0,
    hypergeometric_sf,
    storey_qvalues,
)


def exact_upper_tail(k, universe_size, set_size, query_size):
    """P(X >= k) summed directly from binomial coefficients."""
    total = comb(universe_size, query_size)
    upper = min(set_size, query_size)
    return sum(
        comb(set_size, i) * comb(universe_size - set_size, query_size - i)
        for i in range(k, upper + 1)
    ) / total


@pytest.mark.parametrize("k,M,n,N", [
    (1, 20, 5, 4),
    (3, 20, 5, 4),
    (4, 100, 10, 10),
    (8, 100, 10, 10),
    (2, 50, 2, 2),
])
def test_hypergeometric_sf_matches_exact_sum(k, M, n, N):
    assert hypergeometric_sf(k, M, n, N) == pytest.approx(
        exact_upper_tail(k, M, n, N), rel=1e-9
    )


def test_hypergeometric_sf_zero_overlap_is_one():
    assert hypergeometric_sf(0, 100, 10, 10) == pytest.approx(1.0)


def test_hypergeometric_sf_decreases_with_overlap():
    p_values = [hypergeometric_sf(k, 100, 10, 10) for k in range(1, 11)]
    assert p_values == sorted(p_values, reverse=True)


@pytest.mark.parametrize("M,n,N", [(10, 20, 2), (10, 5, 11)])
def test_hypergeometric_sf_rejects_sizes_above_universe(M, n, N):
    with pytest.raises(ValueError, match="universe_size"):
        hypergeometric_sf(1, M, n, N)


def test_benjamini_hochberg_known_values():
    adjusted = benjamini_hochberg([0.01, 0.04, 0.03, 0.005])

    np.testing.assert_allclose(adjusted, [0.02, 0.04, 0.04, 0.02])


def test_benjamini_hochberg_never_below_raw():
    rng = np.random.default_rng(7)
    p = rng.uniform(0, 1, size=200)

    adjusted = benjamini_hochberg(p)

    assert np.all(adjusted >= p)
    assert np.all(adjusted <= 1.0)


def test_benjamini_hochberg_empty():
    assert benjamini_hochberg([]).size == 0


def test_estimate_pi0():
    assert estimate_pi0(np.array([0.1, 0.6, 0.7, 0.2])) == pytest.approx(1.0)
    assert estimate_pi0(np.array([0.01, 0.02, 0.9, 0.03])) == pytest.approx(0.5)


def test_estimate_pi0_degenerate_batches():
    # Single p-value, or no p-value above lambda
    assert estimate_pi0(np.array([0.01])) == 1.0
    assert estimate_pi0(np.array([0.01, 0.02])) == 1.0


def test_estimate_pi0_invalid_lambda():
    with pytest.raises(ValueError):
        estimate_pi0(np.array([0.1, 0.2]), lambda_=1.0)


def test_storey_qvalues_known_values():
    q = storey_qvalues([0.01, 0.02, 0.9, 0.03])

    np.testing.assert_allclose(q, [0.02, 0.02, 0.45, 0.02])


def test_storey_qvalues_equal_bh_when_pi0_is_one():
    p = [0.01, 0.04, 0.03, 0.005]

    np.testing.assert_allclose(storey_qvalues(p), benjamini_hochberg(p))


def test_storey_qvalues_capped_and_monotone():
    rng = np.random.default_rng(11)
    p = rng.uniform(0, 1, size=100)

    q = storey_qvalues(p)

    assert np.all(q <= 1.0)
    order = np.argsort(p)
    assert np.all(np.diff(q[order]) >= 0)


def test_storey_qvalues_empty():
    assert storey_qvalues([]).size == 0
