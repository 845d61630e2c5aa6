"""
Embedded density estimators.

    from redensity.estimators import create_estimator
    est = create_estimator('gaussian', ridge=1e-6)
"""

from typing import Dict, List, Type

from redensity.estimators.base import (
    DensityEstimator,
    EstimatorType,
    check_requirements,
)
from redensity.estimators.categorical import CategoricalEstimator
from redensity.estimators.gaussian import GaussianEstimator

ESTIMATORS: Dict[str, Type[DensityEstimator]] = {
    'gaussian': GaussianEstimator,
    'categorical': CategoricalEstimator,
}


def list_estimators() -> List[str]:
    return sorted(ESTIMATORS)


def create_estimator(name: str, **params) -> DensityEstimator:
    """Instantiate a registered estimator (not yet initialised)."""
    if name not in ESTIMATORS:
        available = ", ".join(list_estimators())
        raise KeyError(f"Unknown estimator: '{name}'. Available: {available}")
    return ESTIMATORS[name](**params)


__all__ = [
    'DensityEstimator',
    'EstimatorType',
    'check_requirements',
    'CategoricalEstimator',
    'GaussianEstimator',
    'ESTIMATORS',
    'create_estimator',
    'list_estimators',
]
