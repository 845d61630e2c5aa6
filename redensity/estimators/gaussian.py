"""
Online Gaussian Estimator
=========================

Joint Gaussian over all header attributes, updated with Welford's
algorithm. Conditional densities p(X | Y) come from the Schur complement of
the joint covariance, so one model answers both joint queries (used by
representatives) and single-target conditional queries (used by decoders).
"""

import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np
from scipy.linalg import solve, LinAlgError
from scipy.stats import multivariate_normal

from redensity.estimators.base import DensityEstimator, EstimatorType
from redensity.exceptions import UnsupportedConfiguration

logger = logging.getLogger(__name__)


class GaussianEstimator(DensityEstimator):
    """
    Incremental multivariate normal.

    Args:
        ridge: Added to the covariance diagonal before any density query
        min_observations: Densities are 0.0 until this many updates were seen
    """

    supported_types = [
        EstimatorType.CONT_X1_I_Y1___Yl,
        EstimatorType.X1___Xk_I_Y1___Yl,
    ]

    def __init__(self, ridge: float = 1e-6, min_observations: int = 2):
        super().__init__()
        if ridge < 0:
            raise ValueError("ridge must be non-negative")
        self.ridge = float(ridge)
        self.min_observations = max(2, int(min_observations))
        self.n = 0
        self._mean: Optional[np.ndarray] = None
        self._m2: Optional[np.ndarray] = None
        self._params: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]] = None

    def _setup(self) -> None:
        nominal = [v.name for v in self.target_vars + self.cond_vars if v.is_discrete]
        if nominal:
            raise UnsupportedConfiguration(
                "GaussianEstimator supports continuous variables only", nominal
            )
        d = self.header.num_attributes
        self.n = 0
        self._mean = np.zeros(d)
        self._m2 = np.zeros((d, d))
        self._params = None

    def update(self, instance: np.ndarray) -> None:
        x = np.asarray(instance, dtype=np.float64)
        self.n += 1
        delta = x - self._mean
        self._mean = self._mean + delta / self.n
        self._m2 = self._m2 + np.outer(delta, x - self._mean)
        self._params = None

    @property
    def covariance(self) -> Optional[np.ndarray]:
        if self.n < 2:
            return None
        cov = self._m2 / (self.n - 1)
        return 0.5 * (cov + cov.T) + np.eye(cov.shape[0]) * self.ridge

    def _conditional_params(self):
        """(mu_t, mu_c, gain, cov_t_given_c), cached until the next update."""
        if self._params is None:
            cov = self.covariance
            t, c = self.target_idx, self.cond_idx
            mu_t, mu_c = self._mean[t], self._mean[c]
            cov_tt = cov[np.ix_(t, t)]
            if len(c) == 0:
                gain = np.zeros((len(t), 0))
                cond_cov = cov_tt
            else:
                cov_tc = cov[np.ix_(t, c)]
                cov_cc = cov[np.ix_(c, c)]
                try:
                    gain = solve(cov_cc, cov_tc.T, assume_a='pos').T
                except LinAlgError:
                    gain = cov_tc @ np.linalg.pinv(cov_cc)
                cond_cov = cov_tt - gain @ cov_tc.T
                cond_cov = 0.5 * (cond_cov + cond_cov.T) + np.eye(len(t)) * self.ridge
            self._params = (mu_t, mu_c, gain, cond_cov)
        return self._params

    def get_density_value(self, instance: np.ndarray) -> float:
        if self.n < self.min_observations:
            return 0.0
        x = np.asarray(instance, dtype=np.float64)
        mu_t, mu_c, gain, cond_cov = self._conditional_params()
        if len(self.cond_idx):
            loc = mu_t + gain @ (x[self.cond_idx] - mu_c)
        else:
            loc = mu_t
        logp = multivariate_normal.logpdf(x[self.target_idx], mean=loc, cov=cond_cov, allow_singular=True)
        return float(np.exp(logp))

    def get_density_values(self, instances: np.ndarray) -> np.ndarray:
        X = np.atleast_2d(np.asarray(instances, dtype=np.float64))
        if self.n < self.min_observations:
            return np.zeros(X.shape[0])
        mu_t, mu_c, gain, cond_cov = self._conditional_params()
        loc = np.broadcast_to(mu_t, (X.shape[0], len(mu_t)))
        if len(self.cond_idx):
            loc = loc + (X[:, self.cond_idx] - mu_c) @ gain.T
        resid = X[:, self.target_idx] - loc
        logp = multivariate_normal.logpdf(resid, mean=np.zeros(len(mu_t)), cov=cond_cov, allow_singular=True)
        return np.exp(np.atleast_1d(logp)).reshape(X.shape[0])

    def get_model_characteristics(self) -> Dict[str, Any]:
        return {
            'estimator': 'gaussian',
            'observations': self.n,
            'targets': [v.name for v in self.target_vars],
            'conditioned': [v.name for v in self.cond_vars],
            'mean': self._mean.tolist() if self._mean is not None else None,
        }
