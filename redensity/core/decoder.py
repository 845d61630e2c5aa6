"""
Decoder
=======

Reconstructs one source attribute from the distance vector. The decoder
learns p(attribute | distance vector) and reports an expectation that
feeds the correction factor for attributes the landmarks do not cover:

    nominal attribute:  1 / num_values
    numeric attribute:  integral of the conditional density over the
                        observed range on NUM_BINS midpoints, divided by
                        NUM_BINS
"""

from typing import Callable, Optional

import numpy as np

from redensity.estimators import CategoricalEstimator, GaussianEstimator
from redensity.estimators.base import DensityEstimator
from redensity.schema import Attribute, Header

NUM_BINS = 100


def default_decoder_estimator(attribute: Attribute) -> DensityEstimator:
    if attribute.is_nominal:
        return CategoricalEstimator()
    return GaussianEstimator()


class Decoder:
    """Conditional model of source attribute ``target_index`` given the distance vector."""

    def __init__(
        self,
        distance_header: Header,
        attribute: Attribute,
        target_index: int,
        minimum: float = 0.0,
        maximum: float = 0.0,
        estimator_factory: Optional[Callable[[Attribute], DensityEstimator]] = None,
    ):
        self.attribute = attribute
        self.target_index = int(target_index)
        self.minimum = float(minimum)
        self.maximum = float(maximum)

        self.header = Header(
            "distances_to_landmarks_plus_attribute",
            list(distance_header.attributes) + [attribute],
        )
        variables = self.header.random_variables()
        factory = estimator_factory or default_decoder_estimator
        self.estimator = factory(attribute)
        self.estimator.init(self.header, variables[-1:], variables[:-1])

    def _joint(self, distance_vector: np.ndarray, value: float) -> np.ndarray:
        return np.append(np.asarray(distance_vector, dtype=np.float64), value)

    def update(self, instance: np.ndarray, distance_vector: np.ndarray) -> None:
        self.estimator.update(self._joint(distance_vector, instance[self.target_index]))

    def expected_value(self, distance_vector: np.ndarray) -> float:
        if self.attribute.is_nominal:
            return 1.0 / self.attribute.num_values

        bin_size = (self.maximum - self.minimum) / NUM_BINS
        if bin_size <= 0:
            # Constant attribute: nothing was lost by projecting it away
            return 1.0

        midpoints = self.minimum + bin_size * (np.arange(NUM_BINS) + 0.5)
        d = np.asarray(distance_vector, dtype=np.float64)
        grid = np.column_stack([np.tile(d, (NUM_BINS, 1)), midpoints])
        densities = self.estimator.get_density_values(grid)
        return float(np.sum(densities * bin_size)) / NUM_BINS
