"""
Tests for Layer routing, promotion and garbage collection.

All scenarios run in a 4-D distance space with an isotropic default
covariance of 0.01 * I and threshold 1.0, so membership reduces to a
Euclidean ball of radius 1 around the candidate centre.
"""

import numpy as np
import pytest

from conftest import make_observation
from redensity.core.cluster import ClusterKind
from redensity.core.layer import Layer
from redensity.core.timestamp import Timestamp


@pytest.fixture
def layer(layer_config, distance_header, gaussian_factory):
    lay = Layer(
        layer_config,
        distance_header,
        distance_header.random_variables(),
        [],
        gaussian_factory,
    )
    lay.set_default_gaussian(np.zeros(4), np.eye(4) * 0.01)
    return lay


def feed(layer, center, n, start, rng, std=0.1):
    for t in range(start, start + n):
        layer.add_observation(make_observation(np.asarray(center) + rng.normal(size=4) * std, t))
    return start + n


class TestRouting:

    def test_first_observation_creates_candidate(self, layer):
        """First observation seeds a candidate with the default covariance."""
        target = layer.add_observation(make_observation([0.0] * 4, 1))
        assert len(layer.candidates) == 1
        assert target.observation_count == 1
        assert target.kind is ClusterKind.CANDIDATE
        np.testing.assert_allclose(target.covariance, np.eye(4) * 0.01)

    def test_nearby_observation_joins_candidate(self, layer):
        """Observation inside the ball joins the candidate."""
        first = layer.add_observation(make_observation([0.0] * 4, 1))
        second = layer.add_observation(make_observation([0.2, 0.0, 0.1, 0.0], 2))
        assert second is first
        assert first.observation_count == 2
        assert len(layer) == 1

    def test_distant_observation_creates_candidate(self, layer):
        """Observation outside every ball starts a new candidate."""
        layer.add_observation(make_observation([0.0] * 4, 1))
        layer.add_observation(make_observation([5.0] * 4, 2))
        assert len(layer.candidates) == 2
        assert layer.stats.candidates_created == 2

    def test_candidate_mean_is_observation(self, layer):
        """Candidate mean is its seed observation."""
        target = layer.add_observation(make_observation([0.4, 0.1, 0.2, 0.3], 1))
        np.testing.assert_array_equal(target.mean, [0.4, 0.1, 0.2, 0.3])

    def test_layer_timestamp_is_max(self, layer):
        """Layer time is the latest observation timestamp."""
        layer.add_observation(make_observation([0.0] * 4, 5))
        layer.add_observation(make_observation([0.0] * 4, 3))
        assert layer.timestamp == Timestamp(5)
        assert layer.num_observations == 2

    def test_new_candidate_borrows_neighbour_covariance(self, layer):
        """New candidate covariance comes from the nearest representative buffer."""
        rng = np.random.default_rng(42)
        t = feed(layer, [0.0] * 4, 60, 1, rng)
        assert len(layer.representatives) == 1
        rep = layer.representatives[0]

        far = layer.add_observation(make_observation([5.0] * 4, t))
        X = np.array([o.distance_vector for o in rep.buffer])
        np.testing.assert_allclose(far.covariance, np.cov(X, rowvar=False), atol=1e-12)


class TestPromotion:

    def test_promotion_preserves_handle_and_mass(self, layer):
        """Promotion keeps the handle and the count."""
        rng = np.random.default_rng(42)
        feed(layer, [0.0] * 4, 51, 1, rng)
        (handle,) = layer.handles()
        cluster = layer.get(handle)

        assert cluster.kind is ClusterKind.REPRESENTATIVE
        assert cluster.observation_count == 51
        assert cluster.count_at_promotion == 51
        assert layer.stats.promotions == 1
        assert layer.handles(ClusterKind.REPRESENTATIVE) == [handle]

    def test_not_promoted_at_threshold(self, layer):
        """Count equal to the threshold does not promote."""
        rng = np.random.default_rng(42)
        feed(layer, [0.0] * 4, 50, 1, rng)
        assert len(layer.representatives) == 0
        assert layer.candidates[0].observation_count == 50

    def test_representative_estimator_trained(self, layer):
        """Representative estimator sees every observation."""
        rng = np.random.default_rng(42)
        feed(layer, [0.0] * 4, 80, 1, rng)
        rep = layer.representatives[0]
        assert rep.estimator.n == 80


class TestGarbageCollection:

    def test_idle_representative_evicted(self, layer):
        """Idle representative is evicted at the next sweep."""
        rng = np.random.default_rng(42)
        t = feed(layer, [0.0] * 4, 60, 1, rng)
        feed(layer, [5.0] * 4, 340, t, rng)

        # Sweep at 300 observations: first cluster last used at t=60
        assert layer.stats.evicted_representatives == 1
        assert len(layer.representatives) == 1
        assert layer.representatives[0].representative_observation.distance_vector[0] > 4.0

    def test_idle_candidate_evicted(self, layer):
        """A lone candidate idle past the limit is gone after the next periodic sweep."""
        rng = np.random.default_rng(42)
        lone = layer.add_observation(make_observation([5.0] * 4, 1))
        feed(layer, [0.0] * 4, 300, 2, rng)

        # Sweep at 300 observations: lone candidate idle for 299 ticks
        assert all(c is not lone for c in layer.candidates)
        assert all(r is not lone for r in layer.representatives)
        assert layer.stats.evicted_candidates == 1
        assert layer.stats.evicted_representatives == 0
        assert layer.collect_garbage() == 0

    def test_sweep_is_idempotent(self, layer):
        """A second sweep at the same time point evicts nothing."""
        rng = np.random.default_rng(42)
        t = feed(layer, [0.0] * 4, 10, 1, rng)
        feed(layer, [5.0] * 4, 230, t, rng)
        assert layer.collect_garbage() == 1
        assert layer.stats.evicted_candidates == 1
        assert layer.collect_garbage() == 0

    def test_active_clusters_survive(self, layer):
        """Clusters in use are never evicted."""
        rng = np.random.default_rng(7)
        for t in range(1, 401):
            center = [0.0] * 4 if t % 2 else [5.0] * 4
            layer.add_observation(make_observation(np.asarray(center) + rng.normal(size=4) * 0.1, t))
        assert layer.stats.gc_sweeps == 4
        assert layer.stats.evicted_representatives == 0


class TestMixtureScenario:

    def test_two_components_two_representatives(self, layer):
        """Two separated components end as two representatives."""
        rng = np.random.default_rng(42)
        centers = np.array([[0.0] * 4, [5.0] * 4])
        labels = rng.integers(0, 2, size=1000)
        for t, k in enumerate(labels, start=1):
            layer.add_observation(make_observation(centers[k] + rng.normal(size=4) * 0.1, t))

        assert len(layer.representatives) == 2
        weights = layer.weights()
        assert sum(weights.values()) == pytest.approx(1.0, abs=0.01)
        for w in weights.values():
            assert 0.4 < w < 0.6

    def test_summary(self, layer):
        """Summary reports population and weights."""
        rng = np.random.default_rng(0)
        feed(layer, [0.0] * 4, 60, 1, rng)
        info = layer.summary()
        assert info['n_representatives'] == 1
        assert info['n_candidates'] == 0
        assert info['observations'] == 60
        assert info['weights'] == [1.0]
