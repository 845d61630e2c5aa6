"""
RED: Representative-based online density Estimation
===================================================

Single-pass density estimator for data streams:

    1. Buffer the first INITIALIZATION_BATCH + num_landmarks instances.
    2. From that warm-up sample derive attribute ranges, synthesise the
       landmarks, train the decoders, seed the correction factor and the
       layer's default Gaussian, then route the sample through the layer.
    3. Afterwards every instance is projected, stamped with the next
       logical time and routed through the layer; decoders learn from it.

Density of an instance:

    correction_factor(d) * representative.density(d)

where d is the distance vector, the representative is the Euclidean-closest
one with more than QUERY_EVIDENCE_FLOOR observations, and the correction
factor is the product of the decoder expectations of all attributes with
index >= num_landmarks. Without a qualifying representative the density is
0.0; before warm-up completes it is 0.0 as well.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from redensity.config import REDConfig
from redensity.core.decoder import Decoder
from redensity.core.gaussian import sample_covariance, sample_mean
from redensity.core.landmarks import AttributeRanges, Projection, select_landmarks
from redensity.core.layer import Layer
from redensity.core.observation import Observation
from redensity.core.timestamp import LogicalClock
from redensity.estimators import create_estimator
from redensity.estimators.base import DensityEstimator, EstimatorType
from redensity.exceptions import UnsupportedConfiguration
from redensity.schema import Attribute, Header

logger = logging.getLogger(__name__)

INITIALIZATION_BATCH = 250

# Representatives with less evidence do not answer density queries
QUERY_EVIDENCE_FLOOR = 200


class RED(DensityEstimator):
    """
    Online density estimator built from landmark projection and an evolving
    population of Gaussian clusters.

    Joint densities only. The partition type is the general p(X1..Xk | Y1..Yl)
    one, but ``init`` raises UnsupportedConfiguration when any conditioned
    variable is given.

    Args:
        config: RED options; keyword options are used when omitted

    Usage:
        red = RED(REDConfig(num_landmarks=3))
        red.init(header, header.random_variables(), [])
        for x in stream:
            red.update(x)
        p = red.get_density_value(x)
    """

    # Only the empty conditioning set is accepted, see _setup
    supported_types = [EstimatorType.X1___Xk_I_Y1___Yl]

    def __init__(self, config: Optional[REDConfig] = None, **options):
        super().__init__()
        if config is not None and options:
            raise ValueError("pass either a REDConfig or keyword options, not both")
        self.config = config if config is not None else REDConfig.from_dict(options)
        self._reset()

    def _reset(self) -> None:
        self.buffer: List[np.ndarray] = []
        self.warmed_up = False
        self.clock = LogicalClock()
        self.num_observations = 0

        self.ranges: Optional[AttributeRanges] = None
        self.landmarks: Optional[np.ndarray] = None
        self.projection: Optional[Projection] = None
        self.distance_header: Optional[Header] = None
        self.layer: Optional[Layer] = None
        self.decoders: List[Decoder] = []

        self.correction_factor = 1.0
        self.num_correction_updates = 0

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def _setup(self) -> None:
        if self.cond_vars:
            raise UnsupportedConfiguration(
                "RED estimates joint densities only; conditioned variables are not supported",
                [v.name for v in self.cond_vars],
            )
        self._reset()
        # Surface an incompatible representative estimator now, not at the first promotion
        self._new_representative_estimator().init(
            self._distance_header(), self._distance_header().random_variables(), []
        )

    def _distance_header(self) -> Header:
        n = self.config.num_landmarks + 1
        return Header("distances_to_landmarks", [Attribute(f"landmark{i}") for i in range(n)])

    def _new_representative_estimator(self) -> DensityEstimator:
        return create_estimator(self.config.estimator, **self.config.estimator_params)

    @property
    def required_instances(self) -> int:
        return INITIALIZATION_BATCH + self.config.num_landmarks

    def _initialize(self) -> None:
        sample = np.asarray(self.buffer, dtype=np.float64)

        self.ranges = AttributeRanges.from_sample(sample)
        self.landmarks = select_landmarks(self.header, self.ranges, self.config.num_landmarks)
        self.projection = Projection(self.header, self.landmarks, self.ranges, self.config.norm)
        self.distance_header = self.projection.distance_header()
        distances = self.projection.project_many(sample)

        self.decoders = [
            Decoder(self.distance_header, self.header.attribute(i), i,
                    self.ranges.minimum[i], self.ranges.maximum[i])
            for i in range(self.config.num_landmarks, self.header.num_attributes)
        ]
        for x, d in zip(sample, distances):
            for decoder in self.decoders:
                decoder.update(x, d)

        self.correction_factor = 1.0
        self.num_correction_updates = 0
        for d in distances:
            self._update_correction_factor(d)

        self.layer = Layer(
            self.config,
            self.distance_header,
            self.distance_header.random_variables(),
            [],
            self._new_representative_estimator,
        )
        observations = [Observation(x, d, self.clock.tick()) for x, d in zip(sample, distances)]
        vectors = [o.distance_vector for o in observations]
        self.layer.set_default_gaussian(sample_mean(vectors), sample_covariance(vectors))
        for obs in observations:
            self.layer.add_observation(obs)

        self.num_observations += len(observations)
        self.buffer = []
        self.warmed_up = True
        logger.info(
            f"RED initialised from {len(observations)} instances: "
            f"{len(self.decoders)} decoders, {len(self.layer.candidates)} candidates, "
            f"{len(self.layer.representatives)} representatives"
        )

    # ------------------------------------------------------------------
    # Stream interface
    # ------------------------------------------------------------------

    def _check_instance(self, instance: np.ndarray) -> np.ndarray:
        if not self.is_initialized:
            raise RuntimeError("RED.init must be called before update or query")
        x = np.asarray(instance, dtype=np.float64).ravel()
        if x.shape[0] != self.header.num_attributes:
            raise ValueError(
                f"instance has {x.shape[0]} values, header has {self.header.num_attributes} attributes"
            )
        return x

    def update(self, instance: np.ndarray) -> None:
        x = self._check_instance(instance)

        if not self.warmed_up:
            self.buffer.append(x)
            if len(self.buffer) >= self.required_instances:
                self._initialize()
            return

        d = self.projection.project(x)
        self.layer.add_observation(Observation(x, d, self.clock.tick()))
        for decoder in self.decoders:
            decoder.update(x, d)
        self.num_observations += 1

    def compute_distance_vector(self, instance: np.ndarray) -> np.ndarray:
        if self.projection is None:
            raise RuntimeError("landmarks are selected once the warm-up buffer is full")
        return self.projection.project(self._check_instance(instance))

    # ------------------------------------------------------------------
    # Density
    # ------------------------------------------------------------------

    def correction(self, distance_vector: np.ndarray) -> float:
        """Product of decoder expectations for attributes not covered by landmarks."""
        factor = 1.0
        for decoder in self.decoders:
            factor *= decoder.expected_value(distance_vector)
        return factor

    def _update_correction_factor(self, distance_vector: np.ndarray) -> float:
        factor = self.correction(distance_vector)
        n = self.num_correction_updates
        self.correction_factor = (self.correction_factor * n + factor) / (n + 1)
        self.num_correction_updates += 1
        return factor

    def get_density_value(self, instance: np.ndarray) -> float:
        x = self._check_instance(instance)
        if not self.warmed_up:
            logger.debug(
                f"No estimate yet: {len(self.buffer)}/{self.required_instances} warm-up instances"
            )
            return 0.0

        d = self.projection.project(x)
        factor = self._update_correction_factor(d)

        rep = self.layer.nearest_representative(d, QUERY_EVIDENCE_FLOOR)
        p = 0.0
        if rep is not None:
            p = rep.get_density_value(Observation(x, d, self.clock.now))

        logger.debug(f"Candidates: {self.n_candidates}")
        logger.debug(f"Representatives: {self.n_representatives}")
        return factor * p

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def n_candidates(self) -> int:
        return len(self.layer.candidates) if self.layer is not None else 0

    @property
    def n_representatives(self) -> int:
        return len(self.layer.representatives) if self.layer is not None else 0

    def get_model_characteristics(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            'estimator': 'red',
            'options': self.config.to_dict(),
            'warmed_up': self.warmed_up,
            'observations': self.num_observations,
            'correction_factor': self.correction_factor,
        }
        if self.warmed_up:
            info['landmarks'] = self.landmarks.tolist()
            info['layer'] = self.layer.summary()
        return info
