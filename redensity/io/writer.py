"""
Writer: job outputs go through here.

Measurements are written as parquet, the run summary as JSON.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import polars as pl

logger = logging.getLogger(__name__)


def _safe_write(df: pl.DataFrame, path: Path) -> bool:
    """
    Guard against writing invalid parquet files.

    Returns True if a file was written, False if skipped.
    """
    if df is None:
        return False

    if len(df.columns) == 0:
        logger.warning(f"Skipped {path} (empty schema, 0 columns)")
        return False

    if df.height == 0:
        # Schema-only parquet: columns defined, 0 rows
        df.head(0).write_parquet(str(path))
        return True

    df.write_parquet(str(path))
    return True


def write_measurements(df: pl.DataFrame, output_dir: str, name: str = 'measurements') -> Optional[Path]:
    """
    Write a measurement table to ``output_dir/<name>.parquet``.

    Returns:
        Path to written file, or None if skipped
    """
    path = Path(output_dir) / f"{name}.parquet"
    path.parent.mkdir(parents=True, exist_ok=True)

    if not _safe_write(df, path):
        return None

    logger.info(f"-> {path} ({len(df)} rows)")
    return path


def _to_builtin(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _to_builtin(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return _to_builtin(value.item())
    if isinstance(value, float) and not np.isfinite(value):
        return None
    return value


def write_result(result: Dict[str, Any], output_dir: str, name: str = 'result') -> Path:
    """Write the run summary to ``output_dir/<name>.json``. Non-finite floats become null."""
    path = Path(output_dir) / f"{name}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(_to_builtin(result), f, indent=2)
    logger.info(f"-> {path}")
    return path
