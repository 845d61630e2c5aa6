"""
Gaussian Helpers
================

Sample statistics and the regularised inverse used by cluster membership.

Sample covariance of sparse clusters is frequently singular or badly
conditioned. The inverse is therefore taken on a jittered copy: uniform
noise in [0, JITTER) is added to every entry and the inversion is retried
with fresh noise until it succeeds. The noise generator is reseeded from
the cluster seed on every call, so a cluster always sees the same inverse
for the same covariance.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from scipy.linalg import inv, LinAlgError

logger = logging.getLogger(__name__)

JITTER = 1e-5
MAX_INVERSION_ATTEMPTS = 100


def sample_mean(vectors: Sequence[np.ndarray]) -> Optional[np.ndarray]:
    """Mean of a sample of distance vectors, or None for an empty sample."""
    if len(vectors) == 0:
        return None
    return np.mean(np.asarray(vectors, dtype=np.float64), axis=0)


def sample_covariance(
    vectors: Sequence[np.ndarray],
    mean: Optional[np.ndarray] = None,
) -> Optional[np.ndarray]:
    """
    Unbiased sample covariance: sum of outer products divided by N - 1.

    Args:
        vectors: Sample of equally sized vectors
        mean: Centre to use; defaults to the sample mean

    Returns:
        (d, d) covariance, or None when fewer than 2 vectors are given
    """
    n = len(vectors)
    if n < 2:
        return None
    X = np.asarray(vectors, dtype=np.float64)
    mu = X.mean(axis=0) if mean is None else np.asarray(mean, dtype=np.float64)
    centered = X - mu
    cov = centered.T @ centered / (n - 1)
    # Exact symmetry; floating-point products can differ in the last bit
    return 0.5 * (cov + cov.T)


def regularized_inverse(
    cov: np.ndarray,
    seed: int,
    epsilon: float = JITTER,
    max_attempts: int = MAX_INVERSION_ATTEMPTS,
) -> np.ndarray:
    """
    Invert a jittered copy of ``cov`` and rescale so that element [0, 0] is 1.

    Args:
        cov: (d, d) covariance matrix
        seed: Seed of the jitter generator (one per cluster)
        epsilon: Magnitude of the uniform jitter
        max_attempts: Jitter draws before falling back to the pseudo-inverse

    Returns:
        (d, d) rescaled inverse
    """
    cov = np.atleast_2d(np.asarray(cov, dtype=np.float64))
    rng = np.random.default_rng(seed)

    inverse = None
    for _ in range(max_attempts):
        noisy = cov + rng.random(cov.shape) * epsilon
        try:
            candidate = inv(noisy, check_finite=True)
        except (LinAlgError, ValueError):
            continue
        lead = candidate[0, 0]
        if np.all(np.isfinite(candidate)) and abs(lead) > 0.0:
            inverse = candidate
            break

    if inverse is None:
        logger.debug(f"Jittered inversion failed {max_attempts} times, using pseudo-inverse")
        inverse = np.linalg.pinv(cov + np.eye(cov.shape[0]) * epsilon)
        lead = inverse[0, 0]
        if not np.isfinite(lead) or lead == 0.0:
            return inverse

    return inverse / inverse[0, 0]


def mahalanobis(x: np.ndarray, mean: np.ndarray, inv_cov: np.ndarray) -> float:
    """sqrt(|(x - mu)^T S (x - mu)|) for a precomputed inverse S."""
    delta = np.asarray(x, dtype=np.float64) - np.asarray(mean, dtype=np.float64)
    q = float(delta @ inv_cov @ delta)
    return float(np.sqrt(abs(q)))
