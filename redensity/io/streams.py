"""
Streams
=======

A stream hands out instances one at a time together with the header that
describes them. Exhaustion stops ingestion; it never resets an estimator.

    ArrayStream   in-memory 2-D array
    CsvStream     CSV file read with polars; string columns become nominal
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import polars as pl

from redensity.schema import Attribute, Header, RandomVariable

logger = logging.getLogger(__name__)

NOMINAL_DTYPES = (pl.Utf8, pl.Categorical, pl.Boolean)


class Stream(ABC):
    """Pull-based source of instances."""

    def __init__(self):
        self._position = 0
        self._values: Optional[np.ndarray] = None
        self._header: Optional[Header] = None

    @abstractmethod
    def _load(self) -> None:
        """Populate ``_values`` and ``_header``."""
        pass

    def init(self) -> None:
        self._load()
        self._position = 0

    def _require_init(self) -> None:
        if self._values is None:
            raise RuntimeError(f"{type(self).__name__}.init must be called first")

    def get_header(self) -> Header:
        self._require_init()
        return self._header

    def get_random_variables(self) -> List[RandomVariable]:
        return self.get_header().random_variables()

    @property
    def number_of_instances(self) -> int:
        self._require_init()
        return int(self._values.shape[0])

    def has_more_instances(self) -> bool:
        self._require_init()
        return self._position < self._values.shape[0]

    def next_instance(self) -> Optional[np.ndarray]:
        """Next instance, or None once the stream is exhausted."""
        if not self.has_more_instances():
            return None
        x = self._values[self._position]
        self._position += 1
        return x.copy()

    @property
    def is_restartable(self) -> bool:
        return True

    def restart(self) -> None:
        self._require_init()
        self._position = 0

    def __iter__(self):
        while self.has_more_instances():
            yield self.next_instance()


class ArrayStream(Stream):
    """Stream over the rows of an in-memory array."""

    def __init__(self, values, header: Optional[Header] = None):
        super().__init__()
        self._source = np.asarray(values, dtype=np.float64)
        if self._source.ndim != 2:
            raise ValueError(f"ArrayStream needs a 2-D array, got shape {self._source.shape}")
        if header is None:
            header = Header("array", [Attribute(f"x{i}") for i in range(self._source.shape[1])])
        if header.num_attributes != self._source.shape[1]:
            raise ValueError(
                f"header has {header.num_attributes} attributes, data has {self._source.shape[1]} columns"
            )
        self._source_header = header

    def _load(self) -> None:
        self._values = self._source
        self._header = self._source_header


class CsvStream(Stream):
    """
    Stream over a CSV file.

    Args:
        path: CSV file with a header row
        nominal: Columns to treat as nominal even if numeric
        columns: Subset (and order) of columns to use
    """

    def __init__(self, path, nominal: Optional[Sequence[str]] = None,
                 columns: Optional[Sequence[str]] = None):
        super().__init__()
        self.path = Path(path)
        self.nominal = set(nominal or [])
        self.columns = list(columns) if columns else None

    def _load(self) -> None:
        if not self.path.exists():
            raise FileNotFoundError(f"Stream file not found: {self.path}")
        df = pl.read_csv(self.path)
        if self.columns:
            missing = [c for c in self.columns if c not in df.columns]
            if missing:
                raise ValueError(f"columns not in {self.path.name}: {missing}")
            df = df.select(self.columns)

        nulls = {c: n for c, n in zip(df.columns, df.null_count().row(0)) if n > 0}
        if nulls:
            raise ValueError(f"missing values are not supported: {nulls}")

        attributes: List[Attribute] = []
        encoded: Dict[str, np.ndarray] = {}
        for col in df.columns:
            series = df[col]
            if col in self.nominal or series.dtype in NOMINAL_DTYPES:
                raw = [str(v) for v in series.to_list()]
                categories = sorted(set(raw))
                index = {v: i for i, v in enumerate(categories)}
                attributes.append(Attribute(col, tuple(categories)))
                encoded[col] = np.array([index[v] for v in raw], dtype=np.float64)
            else:
                attributes.append(Attribute(col))
                encoded[col] = series.cast(pl.Float64).to_numpy()

        self._header = Header(self.path.stem, attributes)
        self._values = np.column_stack([encoded[c] for c in df.columns]) if df.width else np.zeros((0, 0))
        logger.info(
            f"Loaded {self._values.shape[0]} instances with {len(attributes)} attributes from {self.path}"
        )
