"""
redensity: online density estimation on data streams.

Public API:
    from redensity import RED, REDConfig
    red = RED(REDConfig(num_landmarks=3))
    red.init(header, header.random_variables(), [])

Layout:
    redensity.core        RED estimator (landmarks, clusters, layer, decoders)
    redensity.estimators  Embedded density estimators (gaussian, categorical)
    redensity.io          Streams, manifests, output writers
    redensity.evaluation  Log-likelihood measures and the density estimation job
"""

from redensity.config import REDConfig, load_config
from redensity.core import RED
from redensity.exceptions import UnsupportedConfiguration
from redensity.schema import Attribute, Header, RandomVariable

__version__ = "0.1.0"

__all__ = [
    "RED",
    "REDConfig",
    "load_config",
    "UnsupportedConfiguration",
    "Attribute",
    "Header",
    "RandomVariable",
]
