"""Statistical primitives for over-representation analysis."""

from collections.abc import Sequence

import numpy as np
from scipy.stats import hypergeom
from statsmodels.stats.multitest import multipletests


def hypergeometric_sf(
    overlap: int,
    universe_size: int,
    set_size: int,
    query_size: int,
) -> float:
    """
    One-sided upper-tail hypergeometric p-value.

    P(X >= k) where X ~ Hypergeometric(M=universe_size, n=set_size,
    N=query_size): drawing query_size genes without replacement from a
    universe with set_size annotated genes and observing at least k of them.

    Args:
        overlap: k, query genes annotated to the term
        universe_size: M, background universe size
        set_size: n, genes annotated to the term
        query_size: N, genes in the query

    Returns:
        P-value in [0, 1]

    Raises:
        ValueError: If set_size or query_size exceeds universe_size
    """
    if set_size > universe_size or query_size > universe_size:
        raise ValueError(
            f"set_size {set_size} and query_size {query_size} must not exceed "
            f"universe_size {universe_size}"
        )
    # sf(k - 1) = P(X > k - 1) = P(X >= k)
    p_value = hypergeom.sf(overlap - 1, universe_size, set_size, query_size)
    return float(min(max(p_value, 0.0), 1.0))


def benjamini_hochberg(p_values: Sequence[float]) -> np.ndarray:
    """
    Benjamini-Hochberg adjusted p-values for one correction batch.

    Returned values are never below the raw p-value and never above 1.

    Args:
        p_values: Raw p-values of every term tested in one library

    Returns:
        Adjusted p-values in input order
    """
    p = np.asarray(p_values, dtype=float)
    if p.size == 0:
        return p

    _, adjusted, _, _ = multipletests(p, method="fdr_bh")
    return np.clip(np.maximum(adjusted, p), 0.0, 1.0)


def estimate_pi0(p_values: np.ndarray, lambda_: float = 0.5) -> float:
    """
    Storey estimate of the proportion of true null hypotheses.

    pi0 = #{p > lambda} / (m * (1 - lambda)), capped to 1. Batches with
    fewer than two p-values, or estimates of zero, use pi0 = 1 (BH-equivalent).

    Args:
        p_values: Raw p-values
        lambda_: Tuning parameter in [0, 1)

    Returns:
        pi0 in (0, 1]
    """
    if not 0.0 <= lambda_ < 1.0:
        raise ValueError(f"lambda_ must be in [0, 1), got {lambda_}")

    m = p_values.size
    if m < 2:
        return 1.0

    pi0 = float(np.sum(p_values > lambda_)) / (m * (1.0 - lambda_))
    if pi0 <= 0.0:
        return 1.0
    return min(pi0, 1.0)


def storey_qvalues(p_values: Sequence[float], lambda_: float = 0.5) -> np.ndarray:
    """
    Storey q-values computed from the same p-value batch as BH.

    q_(i) = min_{j >= i} pi0 * m * p_(j) / j over ascending p-values,
    capped at 1.

    Args:
        p_values: Raw p-values of one correction batch
        lambda_: pi0 tuning parameter

    Returns:
        q-values in input order
    """
    p = np.asarray(p_values, dtype=float)
    m = p.size
    if m == 0:
        return p

    pi0 = estimate_pi0(p, lambda_)

    order = np.argsort(p, kind="mergesort")
    ranks = np.arange(1, m + 1, dtype=float)
    q_sorted = pi0 * m * p[order] / ranks
    # Running minimum from the largest p-value down
    q_sorted = np.minimum.accumulate(q_sorted[::-1])[::-1]
    q_sorted = np.minimum(q_sorted, 1.0)

    q = np.empty(m, dtype=float)
    q[order] = q_sorted
    return q
