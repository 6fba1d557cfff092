"""
Category compatibility model.

Maps an ordered pair of category tags to a signed affinity in [-1, 1].
Positive values attract and form connections, negative values repel.
The model is built once at ``init`` and never mutated afterwards.
"""

import math

import numpy as np

from .errors import ConfigurationError


class CompatibilityModel:
    """
    Immutable affinity table over a fixed category set.

    The table may be given as ``{(a, b): value}`` or nested
    ``{a: {b: value}}``.  For a symmetric model a pair only needs to be listed
    once; the mirror entry is filled in and a conflicting mirror is rejected.
    An asymmetric model must list every ordered pair explicitly.
    """

    def __init__(self, categories: list, table: dict,
                 asymmetric: bool = False) -> None:
        if not categories:
            raise ConfigurationError("compatibility model needs at least one category")
        self.categories: tuple = tuple(categories)
        self.asymmetric: bool = bool(asymmetric)
        self._index: dict = {tag: i for i, tag in enumerate(self.categories)}

        pairs = self._flatten(table)
        n = len(self.categories)
        matrix = np.full((n, n), np.nan)
        for (a, b), value in pairs.items():
            if a not in self._index or b not in self._index:
                raise ConfigurationError(
                    f"compatibility entry ({a!r}, {b!r}) names an unknown category")
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"affinity for ({a!r}, {b!r}) must be a number, got {value!r}")
            if not math.isfinite(value) or not -1.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"affinity for ({a!r}, {b!r}) must be in [-1, 1], got {value}")
            i, j = self._index[a], self._index[b]
            matrix[i, j] = value

        if not self.asymmetric:
            for i in range(n):
                for j in range(i + 1, n):
                    fwd, rev = matrix[i, j], matrix[j, i]
                    if np.isnan(fwd):
                        matrix[i, j] = rev
                    elif np.isnan(rev):
                        matrix[j, i] = fwd
                    elif fwd != rev:
                        raise ConfigurationError(
                            f"symmetric model has conflicting entries for "
                            f"({self.categories[i]!r}, {self.categories[j]!r}): "
                            f"{fwd} vs {rev}; declare asymmetric=True")

        missing = [(self.categories[i], self.categories[j])
                   for i in range(n) for j in range(n) if np.isnan(matrix[i, j])]
        if missing:
            raise ConfigurationError(f"missing compatibility entries: {missing}")

        matrix.setflags(write=False)
        self._matrix = matrix

    @staticmethod
    def _flatten(table: dict) -> dict:
        pairs: dict = {}
        for key, value in dict(table).items():
            if isinstance(value, dict):
                for other, v in value.items():
                    pairs[(key, other)] = v
            elif isinstance(key, tuple) and len(key) == 2:
                pairs[key] = value
            else:
                raise ConfigurationError(
                    f"compatibility key {key!r} must be a (tag, tag) pair")
        return pairs

    def affinity(self, a, b) -> float:
        return float(self._matrix[self._index[a], self._index[b]])

    __call__ = affinity

    def index_of(self, tag) -> int:
        return self._index[tag]

    def __contains__(self, tag) -> bool:
        return tag in self._index

    def as_matrix(self) -> np.ndarray:
        """Read-only affinity matrix indexed by category order."""
        return self._matrix

    def is_symmetric(self) -> bool:
        return bool(np.array_equal(self._matrix, self._matrix.T))
