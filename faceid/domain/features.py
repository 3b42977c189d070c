"""
Face feature vectors and the distance engine
"""
from collections.abc import Mapping
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import ShapeMismatch

# Landmark groups used for matching, in vector order
FEATURE_GROUPS = ("leftEye", "leftIris", "lips", "rightEye", "rightIris")

# Maximum distance still considered the same face
DEFAULT_THRESHOLD = 0.075


class FeatureVector(Mapping):
    """Mapping of feature group name to its flattened, normalized coordinates"""

    def __init__(self, groups: Optional[Mapping] = None):
        self._groups: Dict[str, np.ndarray] = {}
        for key, values in (groups or {}).items():
            self.add(key, values)

    def add(self, key: str, values) -> None:
        """Add a group from a point set or a flat sequence of numbers"""
        if hasattr(values, "flatten") and not isinstance(values, np.ndarray):
            values = values.flatten()
        self._groups[key] = np.asarray(values, dtype=np.float64).reshape(-1)

    @classmethod
    def from_dict(cls, data: Mapping) -> "FeatureVector":
        if isinstance(data, FeatureVector):
            return data
        return cls(data)

    def to_dict(self) -> Dict[str, List[float]]:
        return {key: values.tolist() for key, values in self._groups.items()}

    @property
    def shape(self) -> Dict[str, int]:
        return {key: int(values.size) for key, values in self._groups.items()}

    def __getitem__(self, key: str) -> np.ndarray:
        return self._groups[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        if set(self) != set(other):
            return False
        return all(np.array_equal(self[k], np.asarray(other[k], dtype=np.float64)) for k in self)

    __hash__ = None

    def __repr__(self) -> str:
        return f"FeatureVector({self.shape})"

    def distance(self, other: "FeatureVector") -> float:
        return distance(self, other)

    def find(
        self,
        candidates: Sequence["FeatureVector"],
        threshold: float = DEFAULT_THRESHOLD,
    ) -> Optional[Tuple[int, float]]:
        return find_best(self, candidates, threshold)


def distance(a: FeatureVector, b: FeatureVector) -> float:
    """Mean over groups of the Euclidean norm of the flattened group difference

    Both vectors must carry the same groups with the same lengths, otherwise
    ShapeMismatch is raised.
    """
    a = FeatureVector.from_dict(a)
    b = FeatureVector.from_dict(b)
    if a.shape != b.shape:
        raise ShapeMismatch(a.shape, b.shape)
    if not len(a):
        raise ShapeMismatch(a.shape, b.shape)

    per_group = [float(np.linalg.norm(a[key] - b[key])) for key in a]
    return sum(per_group) / len(per_group)


def find_best(
    probe: FeatureVector,
    candidates: Sequence[FeatureVector],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[Tuple[int, float]]:
    """Position and distance of the closest candidate within threshold

    The earliest candidate wins a tie. Returns None when no candidate is
    within threshold.
    """
    best: Optional[Tuple[int, float]] = None
    for index, candidate in enumerate(candidates):
        dist = distance(probe, candidate)
        if dist <= threshold and (best is None or dist < best[1]):
            best = (index, dist)
    return best
