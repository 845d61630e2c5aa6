"""
Tests for Cluster: membership, covariance handling, promotion.
"""

import numpy as np
import pytest

from conftest import make_observation
from redensity.core.cluster import MAX_BUFFER_SIZE, Cluster, ClusterKind
from redensity.core.timestamp import Timestamp
from redensity.estimators import GaussianEstimator
from redensity.schema import numeric_header


def isotropic_cluster(center, threshold=1.0, var=0.01, t=1):
    c = Cluster(make_observation(center, t), threshold, seed=1)
    c.covariance = np.eye(len(center)) * var
    return c


def initialized_estimator(dim):
    header = numeric_header("d", [f"d{i}" for i in range(dim)])
    est = GaussianEstimator()
    est.init(header, header.random_variables(), [])
    return est


class TestMembership:

    def test_reflexive(self):
        """A cluster contains its own representative observation."""
        c = isotropic_cluster([0.3, 0.7, 0.1])
        assert c.membership(c.representative_observation.distance_vector)

    def test_isotropic_ball_radius_is_threshold(self):
        """Isotropic covariance gives a Euclidean ball of radius threshold."""
        c = isotropic_cluster([0.0, 0.0], threshold=1.0)
        assert c.membership(np.array([0.6, 0.6]))
        assert not c.membership(np.array([1.0, 1.0]))

    def test_requires_covariance(self):
        """Membership needs a covariance."""
        c = Cluster(make_observation([0.0, 0.0], 1), 3.0)
        assert not c.is_initialized
        with pytest.raises(RuntimeError):
            c.membership(np.zeros(2))

    def test_covariance_shape_checked(self):
        """Covariance must match the mean dimension."""
        c = Cluster(make_observation([0.0, 0.0], 1), 3.0)
        with pytest.raises(ValueError):
            c.covariance = np.eye(3)


class TestInverseCache:

    def test_cached_until_covariance_changes(self):
        """Inverse is cached and invalidated on a new covariance."""
        c = isotropic_cluster([0.0, 0.0, 0.0])
        first = c.inverse_covariance()
        assert c.inverse_covariance() is first
        c.covariance = np.diag([0.02, 0.01, 0.01])
        assert c.inverse_covariance() is not first

    def test_same_seed_same_inverse(self):
        """Equal seed and covariance give an identical inverse."""
        a = isotropic_cluster([0.0, 0.0])
        b = isotropic_cluster([5.0, 5.0])
        np.testing.assert_array_equal(a.inverse_covariance(), b.inverse_covariance())

    def test_init_covariance_from_sample(self):
        """Seeding sample gives the unbiased sample covariance."""
        rng = np.random.default_rng(42)
        sample = [make_observation(v, i + 1) for i, v in enumerate(rng.normal(size=(30, 2)))]
        c = Cluster(make_observation([0.0, 0.0], 31), 3.0)
        assert c.init_covariance(sample)
        X = np.array([o.distance_vector for o in sample])
        np.testing.assert_allclose(c.covariance, np.cov(X, rowvar=False), atol=1e-12)

    def test_init_covariance_needs_two(self):
        """One observation leaves the covariance unset."""
        c = Cluster(make_observation([0.0, 0.0], 1), 3.0)
        assert not c.init_covariance([make_observation([1.0, 1.0], 1)])
        assert c.covariance is None


class TestObservations:

    def test_buffer_is_bounded(self):
        """Buffer keeps the newest observations up to its cap."""
        c = isotropic_cluster([0.0, 0.0])
        for t in range(1, MAX_BUFFER_SIZE + 51):
            c.add_observation(make_observation([0.0, 0.0], t))
        assert c.observation_count == MAX_BUFFER_SIZE + 50
        assert len(c.buffer) == MAX_BUFFER_SIZE
        # Oldest dropped first
        assert c.buffer[0].timestamp == Timestamp(51)

    def test_last_used_tracks_latest(self):
        """Adding an observation refreshes last_used."""
        c = isotropic_cluster([0.0, 0.0], t=1)
        c.add_observation(make_observation([0.0, 0.0], 9))
        assert c.last_used == Timestamp(9)
        assert c.idle_time(Timestamp(20)) == 11

    def test_candidate_has_no_density(self):
        """Candidates cannot answer density queries."""
        c = isotropic_cluster([0.0, 0.0])
        with pytest.raises(RuntimeError):
            c.get_density_value(make_observation([0.0, 0.0], 2))


class TestPromotion:

    def test_state_carries_over(self):
        """Promotion keeps count, covariance and buffer."""
        np.random.seed(42)
        c = isotropic_cluster([0.0, 0.0])
        for t in range(1, 61):
            c.add_observation(make_observation(np.random.randn(2) * 0.1, t))
        cov = c.covariance.copy()

        c.promote(initialized_estimator(2), Timestamp(60))

        assert c.kind is ClusterKind.REPRESENTATIVE
        assert c.observation_count == 60
        assert c.count_at_promotion == 60
        assert c.promoted_at == Timestamp(60)
        np.testing.assert_array_equal(c.covariance, cov)
        # Estimator warm-started from the buffer
        assert c.estimator.n == 60

    def test_density_touches_last_used(self):
        """Querying a representative refreshes last_used."""
        c = isotropic_cluster([0.0, 0.0])
        rng = np.random.default_rng(1)
        for t in range(1, 11):
            c.add_observation(make_observation(rng.normal(size=2) * 0.1, t))
        c.promote(initialized_estimator(2), Timestamp(10))

        p = c.get_density_value(make_observation([0.0, 0.0], 25))
        assert p > 0.0
        assert c.last_used == Timestamp(25)

    def test_promote_twice_fails(self):
        """A representative cannot be promoted again."""
        c = isotropic_cluster([0.0, 0.0])
        c.add_observation(make_observation([0.0, 0.0], 1))
        c.promote(initialized_estimator(2), Timestamp(1))
        with pytest.raises(RuntimeError):
            c.promote(initialized_estimator(2), Timestamp(2))

    def test_log_likelihood_after_warmup(self):
        """Log-likelihood accumulates only past 500 observations."""
        c = isotropic_cluster([0.0, 0.0])
        rng = np.random.default_rng(3)
        c.add_observation(make_observation([0.0, 0.0], 1))
        c.promote(initialized_estimator(2), Timestamp(1))
        assert np.isnan(c.average_log_likelihood)
        for t in range(2, 601):
            c.add_observation(make_observation(rng.normal(size=2) * 0.1, t))
        assert c.ll_observations == 100
        assert np.isfinite(c.average_log_likelihood)
