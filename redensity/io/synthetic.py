"""
Synthetic Streams
=================

Gaussian mixtures with KNOWN parameters, for validating density estimates.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from redensity.io.streams import ArrayStream
from redensity.schema import Attribute, Header


def sample_gaussian_mixture(
    means: Sequence[Sequence[float]],
    stds: Sequence[float],
    weights: Optional[Sequence[float]] = None,
    n_samples: int = 1000,
    seed: int = 42,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Draw i.i.d. samples from an isotropic Gaussian mixture.

    Args:
        means: (k, d) component means
        stds: Per-component standard deviation
        weights: Mixing weights (uniform when omitted)
        n_samples: Number of samples
        seed: Generator seed

    Returns:
        (samples (n, d), component labels (n,))
    """
    means = np.asarray(means, dtype=np.float64)
    stds = np.asarray(stds, dtype=np.float64)
    k, d = means.shape
    if stds.shape != (k,):
        raise ValueError(f"need one std per component, got {stds.shape} for {k} components")
    if weights is None:
        weights = np.full(k, 1.0 / k)
    weights = np.asarray(weights, dtype=np.float64)
    weights = weights / weights.sum()

    rng = np.random.default_rng(seed)
    labels = rng.choice(k, size=n_samples, p=weights)
    noise = rng.standard_normal((n_samples, d))
    samples = means[labels] + noise * stds[labels, None]
    return samples, labels


def gaussian_mixture_stream(
    means: Sequence[Sequence[float]],
    stds: Sequence[float],
    weights: Optional[Sequence[float]] = None,
    n_samples: int = 1000,
    seed: int = 42,
) -> ArrayStream:
    """ArrayStream over ``sample_gaussian_mixture`` output."""
    samples, _ = sample_gaussian_mixture(means, stds, weights, n_samples, seed)
    header = Header("gaussian_mixture", [Attribute(f"x{i}") for i in range(samples.shape[1])])
    return ArrayStream(samples, header)


def mixture_density(
    x: np.ndarray,
    means: Sequence[Sequence[float]],
    stds: Sequence[float],
    weights: Optional[Sequence[float]] = None,
) -> float:
    """True density of the isotropic mixture at ``x``."""
    means = np.asarray(means, dtype=np.float64)
    stds = np.asarray(stds, dtype=np.float64)
    k, d = means.shape
    w = np.full(k, 1.0 / k) if weights is None else np.asarray(weights, dtype=np.float64) / np.sum(weights)
    sq = np.sum((np.asarray(x) - means) ** 2, axis=1)
    norm = (2.0 * np.pi * stds ** 2) ** (-d / 2.0)
    return float(np.sum(w * norm * np.exp(-0.5 * sq / stds ** 2)))
