"""
Attribute schema for stream instances.

An instance is a 1-D float array aligned with a Header. Nominal attributes
are stored as the float index of their category.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Attribute:
    """A single column of a stream. Numeric iff ``values`` is None."""
    name: str
    values: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if self.values is not None:
            object.__setattr__(self, 'values', tuple(self.values))
            if len(self.values) == 0:
                raise ValueError(f"nominal attribute '{self.name}' needs at least one value")

    @property
    def is_nominal(self) -> bool:
        return self.values is not None

    @property
    def is_numeric(self) -> bool:
        return self.values is None

    @property
    def num_values(self) -> int:
        """Number of categories (0 for numeric attributes)."""
        return len(self.values) if self.values is not None else 0

    def index_of(self, value: str) -> int:
        if self.values is None:
            raise ValueError(f"attribute '{self.name}' is numeric")
        return self.values.index(value)


@dataclass(frozen=True)
class RandomVariable:
    """A random variable backed by one attribute of a header."""
    name: str
    attribute: Attribute

    @property
    def is_discrete(self) -> bool:
        return self.attribute.is_nominal

    @property
    def is_continuous(self) -> bool:
        return self.attribute.is_numeric


@dataclass
class Header:
    """Ordered attribute list shared by all instances of a stream."""
    relation: str
    attributes: List[Attribute] = field(default_factory=list)

    def __post_init__(self):
        self.attributes = list(self.attributes)
        names = [a.name for a in self.attributes]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate attribute names in header '{self.relation}'")

    @property
    def num_attributes(self) -> int:
        return len(self.attributes)

    def attribute(self, i: int) -> Attribute:
        return self.attributes[i]

    def index(self, name: str) -> int:
        for i, att in enumerate(self.attributes):
            if att.name == name:
                return i
        raise KeyError(f"no attribute '{name}' in header '{self.relation}'")

    def random_variables(self) -> List[RandomVariable]:
        return [RandomVariable(att.name, att) for att in self.attributes]

    def nominal_mask(self) -> np.ndarray:
        """Boolean mask, True where the attribute is nominal."""
        return np.array([a.is_nominal for a in self.attributes], dtype=bool)

    def cardinalities(self) -> np.ndarray:
        """Number of categories per attribute (0 for numeric)."""
        return np.array([a.num_values for a in self.attributes], dtype=np.float64)


def numeric_header(relation: str, names: Sequence[str]) -> Header:
    """Header with one numeric attribute per name."""
    return Header(relation, [Attribute(n) for n in names])
