"""
Layer
=====

Owns every cluster of a RED estimator and routes observations to them.

Lifecycle per cluster:

    absent -> candidate -> representative -> absent (evicted)

Routing of one observation:
    1. Rank representatives by Manhattan distance between their
       representative observation and the incoming distance vector.
    2. Closest representative contains the vector -> add it there.
    3. Otherwise the first candidate that contains it takes it.
    4. Otherwise a new candidate is centred on the observation. Its
       covariance is estimated from the buffers of the nearest
       representatives, or taken from the layer default.
    5. Candidates past the promotion threshold become representatives.
    6. Every ``threshold_garbage_collection`` observations, clusters idle
       for more than ``max_time_being_unused`` ticks are evicted.

Clusters live in a single arena keyed by integer handles. Promotion keeps
the handle; eviction deletes it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from redensity.config import REDConfig
from redensity.core.cluster import Cluster, ClusterKind
from redensity.core.observation import Observation
from redensity.core.timestamp import Timestamp
from redensity.estimators.base import DensityEstimator
from redensity.schema import Header, RandomVariable

logger = logging.getLogger(__name__)


@dataclass
class LayerStats:
    """Lifetime counters of a layer."""
    candidates_created: int = 0
    promotions: int = 0
    evicted_candidates: int = 0
    evicted_representatives: int = 0
    gc_sweeps: int = 0


class Layer:
    """Population of candidates and representatives over one distance space."""

    def __init__(
        self,
        config: REDConfig,
        header: Header,
        target_vars: List[RandomVariable],
        cond_vars: List[RandomVariable],
        estimator_factory: Callable[[], DensityEstimator],
    ):
        self.config = config
        self.header = header
        self.target_vars = list(target_vars)
        self.cond_vars = list(cond_vars)
        self.estimator_factory = estimator_factory

        self._clusters: Dict[int, Cluster] = {}
        self._next_handle = 0

        self.timestamp = Timestamp(0)
        self.num_observations = 0
        self.default_mean: Optional[np.ndarray] = None
        self.default_covariance: Optional[np.ndarray] = None
        self.stats = LayerStats()

    # ------------------------------------------------------------------
    # Arena views
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._clusters)

    def get(self, handle: int) -> Cluster:
        return self._clusters[handle]

    def handles(self, kind: Optional[ClusterKind] = None) -> List[int]:
        return [h for h, c in self._clusters.items() if kind is None or c.kind is kind]

    @property
    def candidates(self) -> List[Cluster]:
        return [c for c in self._clusters.values() if c.kind is ClusterKind.CANDIDATE]

    @property
    def representatives(self) -> List[Cluster]:
        return [c for c in self._clusters.values() if c.kind is ClusterKind.REPRESENTATIVE]

    def _insert(self, cluster: Cluster) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._clusters[handle] = cluster
        return handle

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    def set_default_gaussian(self, mean: Optional[np.ndarray], covariance: Optional[np.ndarray]) -> None:
        """Gaussian used to seed candidates when no neighbour can lend observations."""
        self.default_mean = None if mean is None else np.asarray(mean, dtype=np.float64)
        self.default_covariance = None if covariance is None else np.atleast_2d(
            np.asarray(covariance, dtype=np.float64))

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def weight(self, cluster: Cluster) -> float:
        """Fraction of all routed observations that reached ``cluster``."""
        if self.num_observations == 0:
            return 0.0
        return cluster.observation_count / self.num_observations

    def weights(self) -> Dict[int, float]:
        return {h: self.weight(c) for h, c in self._clusters.items() if c.is_representative}

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    @staticmethod
    def _matches(cluster: Cluster, vector: np.ndarray) -> bool:
        return cluster.is_initialized and cluster.membership(vector)

    def rank_representatives(self, vector: np.ndarray) -> List[Cluster]:
        """Representatives sorted by Manhattan distance to ``vector`` (ascending)."""
        reps = self.representatives
        if not reps:
            return []
        centers = np.array([r.representative_observation.distance_vector for r in reps])
        dist = np.abs(centers - vector).sum(axis=1)
        order = np.argsort(dist, kind='stable')
        return [reps[i] for i in order]

    def nearest_representative(self, vector: np.ndarray, min_observations: int = 0) -> Optional[Cluster]:
        """Euclidean-closest representative with more than ``min_observations`` observations."""
        best, best_dist = None, np.inf
        for r in self.representatives:
            if r.observation_count <= min_observations:
                continue
            d = float(np.sum((r.representative_observation.distance_vector - vector) ** 2))
            if d < best_dist:
                best, best_dist = r, d
        return best

    def add_observation(self, obs: Observation) -> Cluster:
        """Route one observation; returns the cluster that absorbed it."""
        if obs.timestamp > self.timestamp:
            self.timestamp = obs.timestamp
        self.num_observations += 1
        vector = obs.distance_vector

        ranked = self.rank_representatives(vector)
        target = None
        if ranked and self._matches(ranked[0], vector):
            target = ranked[0]

        if target is None:
            for c in self.candidates:
                if self._matches(c, vector):
                    target = c
                    break

        if target is None:
            target = self._create_candidate(obs, ranked)
        else:
            target.add_observation(obs)

        self._promotion_sweep()

        if self.num_observations % self.config.threshold_garbage_collection == 0:
            self.collect_garbage()

        return target

    def _create_candidate(self, obs: Observation, ranked: List[Cluster]) -> Cluster:
        candidate = Cluster(obs, self.config.mahalanobis_distance, seed=self.config.seed)

        k = min(self.config.helping_neighbors, len(ranked))
        sample = [o for neighbour in ranked[:k] for o in neighbour.buffer]
        if not candidate.init_covariance(sample) and self.default_covariance is not None:
            candidate.covariance = self.default_covariance

        candidate.add_observation(obs)
        self._insert(candidate)
        self.stats.candidates_created += 1
        return candidate

    # ------------------------------------------------------------------
    # Promotion and eviction
    # ------------------------------------------------------------------

    def new_estimator(self) -> DensityEstimator:
        """Fresh estimator over the layer's distance space."""
        estimator = self.estimator_factory()
        estimator.init(self.header, self.target_vars, self.cond_vars)
        return estimator

    def _promotion_sweep(self) -> None:
        threshold = self.config.threshold_becoming_representative
        for handle in self.handles(ClusterKind.CANDIDATE):
            candidate = self._clusters[handle]
            if candidate.observation_count > threshold:
                candidate.promote(self.new_estimator(), self.timestamp)
                self.stats.promotions += 1
                logger.debug(
                    f"Promoted cluster {handle} at t={self.timestamp} "
                    f"({candidate.observation_count} observations)"
                )

    def collect_garbage(self) -> int:
        """Evict every cluster idle for more than ``max_time_being_unused`` ticks."""
        limit = self.config.max_time_being_unused
        stale = [h for h, c in self._clusters.items() if c.idle_time(self.timestamp) > limit]
        for handle in stale:
            cluster = self._clusters.pop(handle)
            if cluster.is_representative:
                self.stats.evicted_representatives += 1
            else:
                self.stats.evicted_candidates += 1
        self.stats.gc_sweeps += 1
        if stale:
            logger.debug(f"Garbage collection at t={self.timestamp} evicted {len(stale)} clusters")
        return len(stale)

    def summary(self) -> Dict[str, Any]:
        return {
            'observations': self.num_observations,
            'timestamp': self.timestamp.value,
            'n_candidates': len(self.candidates),
            'n_representatives': len(self.representatives),
            'weights': [self.weight(r) for r in self.representatives],
            'default_mean': None if self.default_mean is None else self.default_mean.tolist(),
            'candidates_created': self.stats.candidates_created,
            'promotions': self.stats.promotions,
            'evicted_candidates': self.stats.evicted_candidates,
            'evicted_representatives': self.stats.evicted_representatives,
        }
