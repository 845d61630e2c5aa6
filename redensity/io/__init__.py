"""Streams, manifests and job outputs."""

from redensity.io.streams import Stream, ArrayStream, CsvStream
from redensity.io.synthetic import (
    gaussian_mixture_stream,
    mixture_density,
    sample_gaussian_mixture,
)
from redensity.io.manifest import load_manifest
from redensity.io.writer import write_measurements, write_result

__all__ = [
    'Stream',
    'ArrayStream',
    'CsvStream',
    'gaussian_mixture_stream',
    'mixture_density',
    'sample_gaussian_mixture',
    'load_manifest',
    'write_measurements',
    'write_result',
]
