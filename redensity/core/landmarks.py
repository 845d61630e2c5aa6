"""
Landmarks and Projection
========================

Landmarks are synthetic records that span the attribute space. Every
instance is projected onto its vector of distances to the landmarks.

Landmark i (0 <= i < num_landmarks):
    attribute j <  i : small step above the baseline, 0.1 * (i - j + 1) of
                       the range (nominal: category (i - j + 1) mod k)
    attribute j == i : observed maximum (nominal: last category)
    attribute j >  i : baseline, the observed minimum (nominal: category 0)
plus one landmark with every attribute at the baseline.

Distance to landmark i is the p-norm of the per-attribute differences,
numeric differences divided by the observed range, nominal differences by
the number of categories. Attributes with zero range contribute nothing.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from redensity.schema import Attribute, Header

logger = logging.getLogger(__name__)

# Step between successive landmarks on attributes below the landmark index
LANDMARK_STEP = 0.1


@dataclass
class AttributeRanges:
    """Observed per-attribute extremes of the warm-up sample."""
    minimum: np.ndarray
    maximum: np.ndarray

    @classmethod
    def from_sample(cls, instances: Sequence[np.ndarray]) -> 'AttributeRanges':
        X = np.asarray(instances, dtype=np.float64)
        if X.ndim != 2 or X.shape[0] == 0:
            raise ValueError("need a non-empty 2-D sample to compute attribute ranges")
        return cls(minimum=X.min(axis=0), maximum=X.max(axis=0))

    @property
    def span(self) -> np.ndarray:
        return self.maximum - self.minimum


def select_landmarks(header: Header, ranges: AttributeRanges, num_landmarks: int) -> np.ndarray:
    """
    Synthesise ``num_landmarks + 1`` landmark records.

    Returns:
        (num_landmarks + 1, num_attributes) array in the raw attribute space
    """
    n_att = header.num_attributes
    landmarks = np.zeros((num_landmarks + 1, n_att))

    for i in range(num_landmarks):
        for j, att in enumerate(header.attributes):
            landmarks[i, j] = _landmark_value(att, i, j, ranges.minimum[j], ranges.maximum[j])

    for j, att in enumerate(header.attributes):
        landmarks[num_landmarks, j] = 0.0 if att.is_nominal else ranges.minimum[j]

    logger.info(f"{len(landmarks)} landmarks")
    for row in landmarks:
        logger.debug(f"Landmark {row.tolist()}")
    return landmarks


def _landmark_value(att: Attribute, i: int, j: int, lo: float, hi: float) -> float:
    if att.is_nominal:
        k = att.num_values
        if j < i:
            return float((i - j + 1) % k)
        if j == i:
            return float(k - 1)
        return 0.0
    if j < i:
        return lo + LANDMARK_STEP * (i - j + 1) * (hi - lo)
    if j == i:
        return hi
    return lo


class Projection:
    """Maps instances to their distance vectors against a fixed landmark set."""

    def __init__(self, header: Header, landmarks: np.ndarray, ranges: AttributeRanges, norm: float = 2.0):
        if norm <= 0:
            raise ValueError("norm must be positive")
        self.header = header
        self.landmarks = np.asarray(landmarks, dtype=np.float64)
        self.norm = float(norm)

        nominal = header.nominal_mask()
        span = ranges.span
        scale = np.where(nominal, header.cardinalities(), span)
        # Zero-range numeric attributes get weight 0
        self._inv_scale = np.where(scale > 0, 1.0 / np.where(scale > 0, scale, 1.0), 0.0)

    @property
    def dim(self) -> int:
        return self.landmarks.shape[0]

    def distance_header(self) -> Header:
        """Header of the distance space: one numeric attribute per landmark."""
        return Header("distances_to_landmarks",
                      [Attribute(f"landmark{i}") for i in range(self.dim)])

    def project(self, instance: np.ndarray) -> np.ndarray:
        x = np.asarray(instance, dtype=np.float64)
        diffs = np.abs((x - self.landmarks) * self._inv_scale)
        return np.sum(diffs ** self.norm, axis=1) ** (1.0 / self.norm)

    def project_many(self, instances: Sequence[np.ndarray]) -> np.ndarray:
        X = np.asarray(instances, dtype=np.float64)
        diffs = np.abs((X[:, None, :] - self.landmarks[None, :, :]) * self._inv_scale)
        return np.sum(diffs ** self.norm, axis=2) ** (1.0 / self.norm)
