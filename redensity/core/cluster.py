"""
Cluster
=======

A cluster is a collection of observations described by a multivariate
Gaussian over the distance space. An observation belongs to the cluster iff
its Mahalanobis distance to the mean is at most the shared threshold.

One class covers both lifecycle stages:

    CANDIDATE       accumulating evidence, no density estimator
    REPRESENTATIVE  promoted candidate backed by an embedded estimator

The representative observation is the cluster centre and never changes.
"""

import logging
import math
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

import numpy as np

from redensity.core.gaussian import mahalanobis, regularized_inverse, sample_covariance
from redensity.core.observation import Observation
from redensity.core.timestamp import Timestamp
from redensity.estimators.base import DensityEstimator

logger = logging.getLogger(__name__)

MAX_BUFFER_SIZE = 200

# A cold estimator produces noisy likelihoods; start accumulating after this
LL_WARMUP_OBSERVATIONS = 500


class ClusterKind(str, Enum):
    CANDIDATE = "candidate"
    REPRESENTATIVE = "representative"


class Cluster:
    """Incremental Gaussian cluster (candidate or representative)."""

    def __init__(
        self,
        observation: Observation,
        mahalanobis_distance: float,
        seed: int = 1,
    ):
        self.kind = ClusterKind.CANDIDATE
        self.representative_observation = observation
        self.mahalanobis_distance = float(mahalanobis_distance)
        self.seed = int(seed)

        self.mean: np.ndarray = np.array(observation.distance_vector, dtype=np.float64)
        self._covariance: Optional[np.ndarray] = None
        self._inverse: Optional[np.ndarray] = None

        self.buffer: Deque[Observation] = deque(maxlen=MAX_BUFFER_SIZE)
        self.observation_count = 0
        self.birth: Timestamp = observation.timestamp
        self.last_used: Timestamp = observation.timestamp

        # Representative-only state
        self.estimator: Optional[DensityEstimator] = None
        self.cumulative_log_likelihood = 0.0
        self.ll_observations = 0
        self.promoted_at: Optional[Timestamp] = None
        self.count_at_promotion: Optional[int] = None

    # ------------------------------------------------------------------
    # Gaussian
    # ------------------------------------------------------------------

    @property
    def covariance(self) -> Optional[np.ndarray]:
        return self._covariance

    @covariance.setter
    def covariance(self, cov: Optional[np.ndarray]):
        if cov is not None:
            cov = np.atleast_2d(np.array(cov, dtype=np.float64))
            d = self.mean.shape[0]
            if cov.shape != (d, d):
                raise ValueError(f"covariance shape {cov.shape} does not match mean dimension {d}")
        self._covariance = cov
        self._inverse = None

    def init_covariance(self, sample: List[Observation]) -> bool:
        """
        Estimate the covariance from a seeding sample.

        Returns:
            False if the sample is too small (covariance left unchanged)
        """
        cov = sample_covariance([o.distance_vector for o in sample])
        if cov is None:
            return False
        self.covariance = cov
        return True

    @property
    def is_initialized(self) -> bool:
        return self._covariance is not None

    def inverse_covariance(self) -> np.ndarray:
        if self._covariance is None:
            raise RuntimeError("cluster covariance has not been initialized")
        if self._inverse is None:
            self._inverse = regularized_inverse(self._covariance, self.seed)
        return self._inverse

    def mahalanobis_to(self, distance_vector: np.ndarray) -> float:
        return mahalanobis(distance_vector, self.mean, self.inverse_covariance())

    def membership(self, distance_vector: np.ndarray) -> bool:
        """True iff the vector lies within the cluster's Mahalanobis ball."""
        return self.mahalanobis_to(distance_vector) <= self.mahalanobis_distance

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    @property
    def is_representative(self) -> bool:
        return self.kind is ClusterKind.REPRESENTATIVE

    def add_observation(self, obs: Observation) -> None:
        """Buffer ``obs`` (oldest dropped past the cap) and train the estimator."""
        self.buffer.append(obs)
        self.observation_count += 1
        if obs.timestamp > self.last_used:
            self.last_used = obs.timestamp

        if self.estimator is not None:
            self.estimator.update(obs.distance_vector)
            if self.observation_count > LL_WARMUP_OBSERVATIONS:
                p = self.estimator.get_density_value(obs.distance_vector)
                self.cumulative_log_likelihood += math.log(max(p, np.finfo(np.float64).tiny))
                self.ll_observations += 1

    def promote(self, estimator: DensityEstimator, now: Timestamp) -> None:
        """
        Turn this candidate into a representative.

        The estimator must already be initialised; it is warm-started with
        the buffered distance vectors. Mean, covariance, seed, buffer and
        observation count carry over unchanged.
        """
        if self.is_representative:
            raise RuntimeError("cluster is already a representative")
        for obs in self.buffer:
            estimator.update(obs.distance_vector)
        self.estimator = estimator
        self.kind = ClusterKind.REPRESENTATIVE
        self.promoted_at = now
        self.count_at_promotion = self.observation_count

    def get_density_value(self, obs: Observation) -> float:
        """Density of ``obs`` under the embedded estimator; marks the cluster as used."""
        if self.estimator is None:
            raise RuntimeError("candidates carry no density estimator")
        if obs.timestamp > self.last_used:
            self.last_used = obs.timestamp
        return self.estimator.get_density_value(obs.distance_vector)

    @property
    def average_log_likelihood(self) -> float:
        if self.ll_observations == 0:
            return float('nan')
        return self.cumulative_log_likelihood / self.ll_observations

    def idle_time(self, now: Timestamp) -> int:
        return now.difference(self.last_used)

    def summary(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'observations': self.observation_count,
            'buffered': len(self.buffer),
            'birth': self.birth.value,
            'last_used': self.last_used.value,
            'center': self.representative_observation.distance_vector.tolist(),
            'avg_ll': self.average_log_likelihood,
        }

    def __repr__(self) -> str:
        return (f"Cluster({self.kind.value}, n={self.observation_count}, "
                f"birth={self.birth}, last_used={self.last_used})")
