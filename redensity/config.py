"""
RED Configuration
=================

Named, validated options of the RED estimator.

Option names follow Python conventions. camelCase option names, including
the legacy spellings ``mahalonobisDistance`` and ``tresholdGarbageCollection``,
are accepted as aliases by ``REDConfig.from_dict``.

Usage:
    from redensity.config import load_config
    config = load_config('red.yaml')
"""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

from redensity.estimators import list_estimators


OPTION_ALIASES = {
    'numLandmarks': 'num_landmarks',
    'mahalonobisDistance': 'mahalanobis_distance',
    'mahalanobisDistance': 'mahalanobis_distance',
    'thresholdBecomingRepresentative': 'threshold_becoming_representative',
    'helpingNeighbors': 'helping_neighbors',
    'tresholdGarbageCollection': 'threshold_garbage_collection',
    'thresholdGarbageCollection': 'threshold_garbage_collection',
    'maxTimeBeingUnused': 'max_time_being_unused',
    'estimatorParams': 'estimator_params',
}


@dataclass
class REDConfig:
    """Options of the RED estimator."""
    seed: int = 1
    norm: float = 2.0
    num_landmarks: int = 1
    mahalanobis_distance: float = 3.0
    threshold_becoming_representative: int = 200
    helping_neighbors: int = 3
    threshold_garbage_collection: int = 1000
    max_time_being_unused: int = 10000
    estimator: str = "gaussian"
    estimator_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        positive = {
            'seed': self.seed,
            'norm': self.norm,
            'num_landmarks': self.num_landmarks,
            'mahalanobis_distance': self.mahalanobis_distance,
            'threshold_becoming_representative': self.threshold_becoming_representative,
            'threshold_garbage_collection': self.threshold_garbage_collection,
            'max_time_being_unused': self.max_time_being_unused,
        }
        for name, value in positive.items():
            if value is None or value <= 0:
                raise ValueError(f"Illegal value for option {name}: {value!r} (must be > 0)")
        if self.helping_neighbors < 0:
            raise ValueError(
                f"Illegal value for option helping_neighbors: {self.helping_neighbors!r} (must be >= 0)"
            )
        if self.estimator not in list_estimators():
            raise ValueError(
                f"Illegal value for option estimator: {self.estimator!r} "
                f"(available: {', '.join(list_estimators())})"
            )

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> 'REDConfig':
        raw = raw or {}
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in raw.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown RED option: '{key}'")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path) -> REDConfig:
    """Load RED options from a YAML file (top-level mapping or an ``options`` block)."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if 'options' in raw and isinstance(raw['options'], dict):
        raw = raw['options']
    return REDConfig.from_dict(raw)
