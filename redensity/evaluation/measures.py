"""
Performance Measures
====================

    LogLikelihood               train on the first half, average log density
                                over the second half
    PrequentialLogLikelihood    update-then-query on every instance, average
                                log density after a warm-up prefix

Densities of exactly 0.0 have no finite log. They are counted in
``n_zero_density`` and left out of the average.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import numpy as np
import polars as pl

from redensity.estimators.base import DensityEstimator
from redensity.io.streams import Stream

logger = logging.getLogger(__name__)

PREFIX_SIZE = 100


class PerformanceMeasure(ABC):
    """Consumes a stream, feeding and querying an initialised estimator."""

    name = 'measure'

    def __init__(self, stream: Stream, estimator: DensityEstimator):
        if not estimator.is_initialized:
            raise RuntimeError(f"{type(estimator).__name__} must be initialised before evaluation")
        self.stream = stream
        self.estimator = estimator
        self.total_log_density = 0.0
        self.n_scored = 0
        self.n_zero_density = 0

    def _score(self, instance: np.ndarray) -> None:
        density = self.estimator.get_density_value(instance)
        if density > 0.0:
            self.total_log_density += math.log(density)
            self.n_scored += 1
        else:
            self.n_zero_density += 1

    @abstractmethod
    def evaluate(self) -> None:
        pass

    @property
    def result(self) -> float:
        """Average log density over scored instances (nan if none)."""
        if self.n_scored == 0:
            return float('nan')
        return self.total_log_density / self.n_scored

    def summary(self) -> Dict[str, Any]:
        return {
            'measure': self.name,
            'value': self.result,
            'n_scored': self.n_scored,
            'n_zero_density': self.n_zero_density,
        }

    def measurements(self) -> pl.DataFrame:
        return pl.DataFrame()


class LogLikelihood(PerformanceMeasure):
    """Hold-out average log-likelihood."""

    name = 'loglikelihood'

    def __init__(self, stream: Stream, estimator: DensityEstimator):
        super().__init__(stream, estimator)
        self.n_train = 0

    def evaluate(self) -> None:
        total = self.stream.number_of_instances
        n_train = total // 2
        n_test = total - n_train

        while self.stream.has_more_instances() and self.n_train < n_train:
            self.estimator.update(self.stream.next_instance())
            self.n_train += 1

        tested = 0
        while self.stream.has_more_instances() and tested < n_test:
            self._score(self.stream.next_instance())
            tested += 1

        logger.info(
            f"LL over {tested} held-out instances (trained on {self.n_train}): {self.result:.4f}"
        )

    def summary(self) -> Dict[str, Any]:
        info = super().summary()
        info['n_train'] = self.n_train
        return info


class PrequentialLogLikelihood(PerformanceMeasure):
    """
    Test-then-train evaluation in update-then-query order.

    Args:
        stream: Initialised stream
        estimator: Initialised estimator
        prefix: Instances processed before scoring starts
    """

    name = 'prequential'

    def __init__(self, stream: Stream, estimator: DensityEstimator, prefix: int = PREFIX_SIZE):
        super().__init__(stream, estimator)
        if prefix < 0:
            raise ValueError(f"prefix must be >= 0, got {prefix}")
        self.prefix = prefix
        self.n_instances = 0
        self._rows: List[Dict[str, Any]] = []

    def evaluate(self) -> None:
        track_population = hasattr(self.estimator, 'n_candidates')

        while self.stream.has_more_instances():
            instance = self.stream.next_instance()
            self.estimator.update(instance)
            if self.n_instances >= self.prefix:
                self._score(instance)

            row = {'instance': self.n_instances, 'prequential_ll': self.result}
            if track_population:
                row['n_candidates'] = self.estimator.n_candidates
                row['n_representatives'] = self.estimator.n_representatives
            self._rows.append(row)
            logger.debug(f"Instance {self.n_instances} with LL {row['prequential_ll']}")
            self.n_instances += 1

        logger.info(
            f"Prequential LL over {self.n_instances} instances: {self.result:.4f} "
            f"({self.n_zero_density} zero densities)"
        )

    def measurements(self) -> pl.DataFrame:
        if not self._rows:
            return pl.DataFrame(schema={'instance': pl.Int64, 'prequential_ll': pl.Float64})
        return pl.DataFrame(self._rows)


MEASURES = {
    'loglikelihood': LogLikelihood,
    'll': LogLikelihood,
    'prequential': PrequentialLogLikelihood,
    'prequentialll': PrequentialLogLikelihood,
}


def create_measure(name: str, stream: Stream, estimator: DensityEstimator, **params) -> PerformanceMeasure:
    key = name.lower().replace('_', '')
    if key not in MEASURES:
        raise ValueError(f"Unknown measure: '{name}'. Available: LL, PrequentialLL")
    return MEASURES[key](stream, estimator, **params)
