"""Shared fixtures for redensity tests."""

import numpy as np
import pytest

from redensity.config import REDConfig
from redensity.core.observation import Observation
from redensity.core.timestamp import Timestamp
from redensity.estimators import GaussianEstimator
from redensity.schema import numeric_header


def make_observation(vector, t):
    """Observation whose instance equals its distance vector."""
    v = np.asarray(vector, dtype=float)
    return Observation(v, v, Timestamp(t))


@pytest.fixture
def distance_header():
    return numeric_header("distances", ["d0", "d1", "d2", "d3"])


@pytest.fixture
def layer_config():
    """Small thresholds so promotion and eviction happen within a few hundred ticks."""
    return REDConfig(
        mahalanobis_distance=1.0,
        threshold_becoming_representative=50,
        helping_neighbors=3,
        threshold_garbage_collection=100,
        max_time_being_unused=200,
    )


@pytest.fixture
def gaussian_factory():
    return GaussianEstimator
