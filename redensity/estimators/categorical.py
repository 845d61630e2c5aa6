"""
Categorical estimator for a single nominal target.

Laplace-smoothed category frequencies. Conditioned variables are accepted
so the estimator can stand in wherever p(X | Y) is expected, but they do not
influence the estimate.
"""

from typing import Any, Dict

import numpy as np

from redensity.estimators.base import DensityEstimator, EstimatorType


class CategoricalEstimator(DensityEstimator):

    supported_types = [EstimatorType.DISC_X1_I_Y1___Yl]

    def __init__(self, alpha: float = 1.0):
        super().__init__()
        if alpha < 0:
            raise ValueError("alpha must be non-negative")
        self.alpha = float(alpha)
        self.counts = np.zeros(0)

    def _setup(self) -> None:
        k = self.target_vars[0].attribute.num_values
        self.counts = np.full(k, self.alpha, dtype=np.float64)

    def update(self, instance: np.ndarray) -> None:
        v = int(instance[self.target_idx[0]])
        if 0 <= v < len(self.counts):
            self.counts[v] += 1.0

    def get_density_value(self, instance: np.ndarray) -> float:
        v = int(instance[self.target_idx[0]])
        total = self.counts.sum()
        if not 0 <= v < len(self.counts) or total <= 0:
            return 0.0
        return float(self.counts[v] / total)

    def get_model_characteristics(self) -> Dict[str, Any]:
        return {
            'estimator': 'categorical',
            'target': self.target_vars[0].name if self.target_vars else None,
            'counts': self.counts.tolist(),
        }
