"""
Manifest: parse a job manifest.yaml.

    paths:
      stream: data/stream.csv
      output_dir: output
    stream:
      nominal: [color]
    estimator:
      name: red
      options:
        numLandmarks: 2
    measure:
      name: prequential
      prefix: 100
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional


def load_manifest(manifest_path: str) -> Dict[str, Any]:
    """
    Load a manifest.

    Tries:
        1. manifest_path itself (if it's a .yaml file)
        2. manifest_path/manifest.yaml
    """
    p = Path(manifest_path)

    if p.is_file() and p.suffix in ('.yaml', '.yml'):
        path = p
    else:
        path = p / 'manifest.yaml'

    if not path.exists():
        raise FileNotFoundError(f"No manifest.yaml at {manifest_path}")

    with open(path) as f:
        manifest = yaml.safe_load(f) or {}

    if not isinstance(manifest, dict):
        raise ValueError(f"Manifest {path} must be a mapping, got {type(manifest).__name__}")

    # Relative paths resolve against the manifest's directory
    manifest['_manifest_path'] = str(path)
    manifest['_data_dir'] = str(path.parent)

    return manifest


def get_stream_path(manifest: Dict[str, Any]) -> Optional[str]:
    """Absolute path of the stream file, or None for a synthetic stream."""
    rel = manifest.get('paths', {}).get('stream')
    if rel is None:
        return None
    return str(Path(manifest.get('_data_dir', '.')) / rel)


def get_output_dir(manifest: Dict[str, Any]) -> str:
    """Absolute path of the output directory (created if missing)."""
    out_rel = manifest.get('paths', {}).get('output_dir', 'output')
    out_path = Path(manifest.get('_data_dir', '.')) / out_rel
    out_path.mkdir(parents=True, exist_ok=True)
    return str(out_path)


def get_estimator_block(manifest: Dict[str, Any]) -> Dict[str, Any]:
    block = manifest.get('estimator') or {}
    return {
        'name': block.get('name', 'red'),
        'options': dict(block.get('options') or {}),
    }


def get_measure_block(manifest: Dict[str, Any]) -> Dict[str, Any]:
    block = dict(manifest.get('measure') or {})
    block.setdefault('name', 'prequential')
    return block
