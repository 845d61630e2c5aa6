"""
Density Estimator Contract
==========================

Every estimator models p(targets | conditioned) over the attributes of one
header. ``init`` validates the variable partition and raises
UnsupportedConfiguration when the estimator cannot model it.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from redensity.schema import Header, RandomVariable
from redensity.exceptions import UnsupportedConfiguration


class EstimatorType(str, Enum):
    """Variable partitions an estimator can model."""
    DISC_X1_I_Y1___Yl = "discrete_single_target"     # p(X1 | Y1..Yl), X1 discrete
    CONT_X1_I_Y1___Yl = "continuous_single_target"   # p(X1 | Y1..Yl), X1 continuous
    X1___Xk_I_Y1___Yl = "joint"                      # p(X1..Xk | Y1..Yl)

    def matches_type(
        self,
        header: Header,
        target_vars: List[RandomVariable],
        cond_vars: List[RandomVariable],
    ) -> bool:
        if self is EstimatorType.X1___Xk_I_Y1___Yl:
            return True
        if len(target_vars) != 1:
            return False
        if self is EstimatorType.DISC_X1_I_Y1___Yl:
            return target_vars[0].is_discrete
        return target_vars[0].is_continuous


def check_requirements(
    header: Header,
    target_vars: List[RandomVariable],
    cond_vars: List[RandomVariable],
) -> None:
    """
    Targets and conditioned variables must each be duplicate-free, disjoint,
    and together cover exactly the attributes of ``header``.
    """
    problems = []
    target_names = [v.attribute.name for v in target_vars]
    cond_names = [v.attribute.name for v in cond_vars]

    if len(set(target_names)) != len(target_names):
        problems.append("a target variable may only occur once")
    if len(set(cond_names)) != len(cond_names):
        problems.append("a conditioned variable may only occur once")
    if set(target_names) & set(cond_names):
        problems.append("target and conditioned variables have to be disjoint")
    if not target_names:
        problems.append("at least one target variable is required")

    header_names = {a.name for a in header.attributes}
    if set(target_names) | set(cond_names) != header_names:
        problems.append("target + conditioned variables must have exactly the attributes of the header")

    if problems:
        raise UnsupportedConfiguration("invalid variable partition", problems)


class DensityEstimator(ABC):
    """Base class for all embedded density estimators."""

    supported_types: List[EstimatorType] = [EstimatorType.X1___Xk_I_Y1___Yl]

    def __init__(self):
        self.header: Optional[Header] = None
        self.target_vars: List[RandomVariable] = []
        self.cond_vars: List[RandomVariable] = []
        self.target_idx = np.zeros(0, dtype=int)
        self.cond_idx = np.zeros(0, dtype=int)

    def init(
        self,
        header: Header,
        target_vars: List[RandomVariable],
        cond_vars: List[RandomVariable],
    ) -> None:
        check_requirements(header, target_vars, cond_vars)
        if not any(t.matches_type(header, target_vars, cond_vars) for t in self.supported_types):
            supported = ", ".join(t.value for t in self.supported_types)
            raise UnsupportedConfiguration(
                f"{type(self).__name__} does not match any estimator type (supports: {supported})"
            )
        self.header = header
        self.target_vars = list(target_vars)
        self.cond_vars = list(cond_vars)
        self.target_idx = np.array([header.index(v.attribute.name) for v in target_vars], dtype=int)
        self.cond_idx = np.array([header.index(v.attribute.name) for v in cond_vars], dtype=int)
        self._setup()

    def _setup(self) -> None:
        """Allocate model state once the partition is known."""
        pass

    @property
    def is_initialized(self) -> bool:
        return self.header is not None

    @abstractmethod
    def update(self, instance: np.ndarray) -> None:
        """Learn from one instance aligned with the header."""
        pass

    @abstractmethod
    def get_density_value(self, instance: np.ndarray) -> float:
        """Density of the target values given the conditioned values."""
        pass

    def get_density_values(self, instances: np.ndarray) -> np.ndarray:
        """Densities of the rows of a 2-D array."""
        return np.array([self.get_density_value(x) for x in np.atleast_2d(instances)], dtype=np.float64)

    def get_model_characteristics(self) -> Dict[str, Any]:
        return {}
