"""
Tests for the log-likelihood measures, the density estimation job and the CLI.
"""

import json

import numpy as np
import polars as pl
import pytest
import yaml

from redensity import RED
from redensity.cli import main
from redensity.estimators import GaussianEstimator
from redensity.evaluation import (
    DensityEstimationJob,
    LogLikelihood,
    PrequentialLogLikelihood,
    create_measure,
)
from redensity.io.streams import ArrayStream


def initialized(estimator, stream):
    stream.init()
    estimator.init(stream.get_header(), stream.get_random_variables(), [])
    return estimator


@pytest.fixture
def normal_stream():
    np.random.seed(42)
    return ArrayStream(np.random.randn(400, 2))


@pytest.fixture
def mixture_manifest(tmp_path):
    manifest = {
        'stream': {
            'type': 'gaussian_mixture',
            'means': [[0.0, 0.0], [5.0, 5.0]],
            'stds': [0.5, 0.5],
            'n_samples': 800,
            'seed': 42,
        },
        'estimator': {'name': 'red', 'options': {'numLandmarks': 2}},
        'measure': {'name': 'PrequentialLL', 'prefix': 100},
        'paths': {'output_dir': 'out'},
    }
    path = tmp_path / "manifest.yaml"
    path.write_text(yaml.dump(manifest))
    return path


class TestLogLikelihood:

    def test_half_split(self, normal_stream):
        """Train on the first half, score the second."""
        est = initialized(GaussianEstimator(), normal_stream)
        measure = LogLikelihood(normal_stream, est)
        measure.evaluate()
        assert measure.n_train == 200
        assert measure.n_scored == 200
        # Standard normal in 2-D: E[log p] = -log(2 pi) - 1
        assert measure.result == pytest.approx(-np.log(2 * np.pi) - 1.0, abs=0.3)

    def test_requires_initialised_estimator(self, normal_stream):
        """Measures need an initialised estimator."""
        normal_stream.init()
        with pytest.raises(RuntimeError):
            LogLikelihood(normal_stream, GaussianEstimator())


class TestPrequentialLogLikelihood:

    def test_prefix_not_scored(self, normal_stream):
        """Prefix instances are processed but not scored."""
        est = initialized(GaussianEstimator(), normal_stream)
        measure = PrequentialLogLikelihood(normal_stream, est, prefix=100)
        measure.evaluate()

        assert measure.n_instances == 400
        assert measure.n_scored + measure.n_zero_density == 300
        df = measure.measurements()
        assert df.height == 400
        assert df['prequential_ll'][:100].is_nan().all()
        assert np.isfinite(df['prequential_ll'][-1])
        assert 'n_candidates' not in df.columns

    def test_zero_densities_counted(self, normal_stream):
        """Zero densities are counted, not averaged."""
        est = initialized(RED(num_landmarks=2), normal_stream)
        measure = PrequentialLogLikelihood(normal_stream, est, prefix=0)
        measure.evaluate()
        # No estimate during the 252-instance warm-up
        assert measure.n_zero_density >= est.required_instances - 1
        assert {'n_candidates', 'n_representatives'} <= set(measure.measurements().columns)

    def test_negative_prefix(self, normal_stream):
        """Negative prefix is rejected."""
        est = initialized(GaussianEstimator(), normal_stream)
        with pytest.raises(ValueError):
            PrequentialLogLikelihood(normal_stream, est, prefix=-1)

    def test_create_measure(self, normal_stream):
        """Measure names resolve case-insensitively."""
        est = initialized(GaussianEstimator(), normal_stream)
        assert isinstance(create_measure('LL', normal_stream, est), LogLikelihood)
        assert isinstance(create_measure('prequential_ll', normal_stream, est), PrequentialLogLikelihood)
        with pytest.raises(ValueError):
            create_measure('auc', normal_stream, est)


class TestDensityEstimationJob:

    def test_synthetic_prequential(self, mixture_manifest, tmp_path):
        """Synthetic manifest writes result and measurements."""
        job = DensityEstimationJob.from_manifest(str(mixture_manifest))
        result = job.run()
        paths = job.write_output()

        assert result['measure'] == 'prequential'
        assert result['elapsed_time'] >= 0.0
        assert result['model']['estimator'] == 'red'

        with open(paths['result']) as f:
            written = json.load(f)
        assert written['job']['estimator']['name'] == 'red'
        assert '_data_dir' not in written['job']

        df = pl.read_parquet(paths['measurements'])
        assert df.height == 800
        assert (tmp_path / "out" / "measurements.parquet").exists()

    def test_csv_loglikelihood(self, tmp_path):
        """CSV manifest with hold-out LL writes result only."""
        rng = np.random.default_rng(42)
        pl.DataFrame({'a': rng.normal(size=300), 'b': rng.normal(size=300)}).write_csv(tmp_path / "data.csv")
        (tmp_path / "manifest.yaml").write_text(yaml.dump({
            'paths': {'stream': 'data.csv', 'output_dir': 'results'},
            'estimator': {'name': 'gaussian'},
            'measure': {'name': 'LL'},
        }))

        job = DensityEstimationJob.from_manifest(str(tmp_path))
        result = job.run()
        paths = job.write_output()

        assert result['measure'] == 'loglikelihood'
        assert result['n_train'] == 150
        assert np.isfinite(result['value'])
        assert 'measurements' not in paths

    def test_stream_required(self, tmp_path):
        """Manifest without a stream is rejected."""
        (tmp_path / "manifest.yaml").write_text(yaml.dump({'estimator': {'name': 'red'}}))
        job = DensityEstimationJob.from_manifest(str(tmp_path))
        with pytest.raises(ValueError, match="paths.stream"):
            job.run()

    def test_missing_manifest(self, tmp_path):
        """Missing manifest raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            DensityEstimationJob.from_manifest(str(tmp_path / "nowhere"))


class TestCLI:

    def test_runs_manifest(self, mixture_manifest, tmp_path):
        """CLI runs a manifest and exits 0."""
        assert main([str(mixture_manifest), '-q']) == 0
        assert (tmp_path / "out" / "result.json").exists()

    def test_missing_manifest_exit_code(self, tmp_path):
        """CLI exits 1 on a missing manifest."""
        assert main([str(tmp_path / "absent.yaml"), '-q']) == 1
