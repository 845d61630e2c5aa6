"""Evaluation measures and the manifest-driven job."""

from redensity.evaluation.measures import (
    PREFIX_SIZE,
    LogLikelihood,
    PerformanceMeasure,
    PrequentialLogLikelihood,
    create_measure,
)
from redensity.evaluation.job import DensityEstimationJob, build_estimator, build_stream

__all__ = [
    'PREFIX_SIZE',
    'PerformanceMeasure',
    'LogLikelihood',
    'PrequentialLogLikelihood',
    'create_measure',
    'DensityEstimationJob',
    'build_estimator',
    'build_stream',
]
