"""
Density Estimation Job
======================

Manifest-driven evaluation run:

    1. Load the stream (CSV file or synthetic mixture).
    2. Initialise the estimator with every stream variable as a target.
    3. Evaluate with the configured measure and time it.
    4. Write result.json and measurements.parquet to the output directory.
"""

import logging
import time
from typing import Any, Dict, Optional

from redensity.config import REDConfig
from redensity.core.red import RED
from redensity.estimators import create_estimator
from redensity.estimators.base import DensityEstimator
from redensity.evaluation.measures import PerformanceMeasure, PrequentialLogLikelihood, create_measure
from redensity.io.manifest import (
    get_estimator_block,
    get_measure_block,
    get_output_dir,
    get_stream_path,
    load_manifest,
)
from redensity.io.streams import CsvStream, Stream
from redensity.io.synthetic import gaussian_mixture_stream
from redensity.io.writer import write_measurements, write_result

logger = logging.getLogger(__name__)


def build_stream(manifest: Dict[str, Any]) -> Stream:
    """Stream described by ``paths.stream`` or the ``stream`` block."""
    block = dict(manifest.get('stream') or {})
    path = get_stream_path(manifest)
    if path is not None:
        return CsvStream(path, nominal=block.get('nominal'), columns=block.get('columns'))

    kind = block.pop('type', None)
    if kind == 'gaussian_mixture':
        return gaussian_mixture_stream(**block)
    raise ValueError("manifest needs paths.stream or a stream block with type: gaussian_mixture")


def build_estimator(name: str, options: Dict[str, Any]) -> DensityEstimator:
    if name.lower() == 'red':
        return RED(REDConfig.from_dict(options))
    return create_estimator(name, **options)


class DensityEstimationJob:
    """
    Evaluate one estimator on one stream.

    Usage:
        job = DensityEstimationJob.from_manifest('run/manifest.yaml')
        result = job.run()
        job.write_output()
    """

    def __init__(self, manifest: Dict[str, Any]):
        self.manifest = manifest
        self.stream: Optional[Stream] = None
        self.estimator: Optional[DensityEstimator] = None
        self.measure: Optional[PerformanceMeasure] = None
        self.elapsed_time = 0.0

    @classmethod
    def from_manifest(cls, manifest_path: str) -> 'DensityEstimationJob':
        return cls(load_manifest(manifest_path))

    def init(self) -> None:
        self.stream = build_stream(self.manifest)
        self.stream.init()
        header = self.stream.get_header()
        target_vars = self.stream.get_random_variables()

        est = get_estimator_block(self.manifest)
        self.estimator = build_estimator(est['name'], est['options'])
        self.estimator.init(header, target_vars, [])
        logger.info(
            f"Initialised {type(self.estimator).__name__} on {self.stream.number_of_instances} "
            f"instances x {header.num_attributes} attributes"
        )

    def run(self) -> Dict[str, Any]:
        self.init()

        measure = get_measure_block(self.manifest)
        name = measure.pop('name')
        self.measure = create_measure(name, self.stream, self.estimator, **measure)

        start = time.perf_counter()
        self.measure.evaluate()
        self.elapsed_time = time.perf_counter() - start
        logger.info(f"Evaluation finished in {self.elapsed_time:.2f}s")
        return self.result()

    def result(self) -> Dict[str, Any]:
        if self.measure is None:
            raise RuntimeError("job has not been run")
        info = self.measure.summary()
        info['elapsed_time'] = self.elapsed_time
        info['model'] = self.estimator.get_model_characteristics()
        return info

    def write_output(self) -> Dict[str, Any]:
        """Write result.json (and measurements.parquet for prequential runs)."""
        output_dir = get_output_dir(self.manifest)
        job = {k: v for k, v in self.manifest.items() if not k.startswith('_')}
        paths = {'result': str(write_result({'job': job, 'result': self.result()}, output_dir))}
        if isinstance(self.measure, PrequentialLogLikelihood):
            written = write_measurements(self.measure.measurements(), output_dir)
            if written is not None:
                paths['measurements'] = str(written)
        return paths
