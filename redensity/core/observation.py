"""
Observation: an instance together with its distance vector and the time
point at which it was drawn from the stream.
"""

from dataclasses import dataclass

import numpy as np

from redensity.core.timestamp import Timestamp


def _frozen(values) -> np.ndarray:
    arr = np.array(values, dtype=np.float64)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Observation:
    instance: np.ndarray
    distance_vector: np.ndarray
    timestamp: Timestamp

    def __post_init__(self):
        object.__setattr__(self, 'instance', _frozen(self.instance))
        object.__setattr__(self, 'distance_vector', _frozen(self.distance_vector))

    @property
    def dim(self) -> int:
        """Dimensionality of the distance vector (number of landmarks)."""
        return int(self.distance_vector.shape[0])

    def __str__(self) -> str:
        return f"{self.instance} : {self.distance_vector} : {self.timestamp}"
