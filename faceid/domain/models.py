"""
Domain models/entities
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import numpy as np

from .features import FEATURE_GROUPS, FeatureVector

# Landmark groups reported by the detector, feature-bearing or not
LANDMARK_GROUPS = (
    "faceOval",
    "leftEye",
    "leftEyebrow",
    "leftIris",
    "lips",
    "rightEye",
    "rightEyebrow",
    "rightIris",
)

UNIT_SCALE = 1.0


class Point:
    """A single 3-D keypoint, optionally tagged with its group name"""

    AXES = ("x", "y", "z")

    def __init__(self, x: float, y: float, z: float = 0.0, name: Optional[str] = None):
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)
        self.name = name
        # Pre-normalization coordinates, for diagnostics only
        self.orig: Optional[Dict[str, float]] = None

    @classmethod
    def from_dict(cls, data) -> "Point":
        if isinstance(data, Point):
            return cls(data.x, data.y, data.z, data.name)
        return cls(
            x=data["x"],
            y=data["y"],
            z=data.get("z", 0.0),
            name=data.get("name"),
        )

    def flatten(self) -> List[float]:
        return [self.x, self.y, self.z]

    def normalize(
        self,
        x_min: Optional[float] = None,
        y_min: Optional[float] = None,
        z_min: Optional[float] = None,
        x_scale: Optional[float] = None,
        y_scale: Optional[float] = None,
        z_scale: Optional[float] = None,
    ) -> "Point":
        """Translate then scale each axis in place; None leaves an axis untouched"""
        offsets = (x_min, y_min, z_min)
        scales = (x_scale, y_scale, z_scale)
        for axis, offset, scale in zip(self.AXES, offsets, scales):
            if offset is None and scale is None:
                continue
            if self.orig is None:
                self.orig = {}
            self.orig.setdefault(axis, getattr(self, axis))
            value = getattr(self, axis)
            if offset is not None:
                value -= offset
            if scale is not None:
                value *= scale
            setattr(self, axis, value)
        return self

    def __repr__(self) -> str:
        return f"Point(x={self.x!r}, y={self.y!r}, z={self.z!r}, name={self.name!r})"


class PointSet:
    """Ordered group of points"""

    def __init__(self, points: Optional[Iterable[Point]] = None, name: Optional[str] = None):
        self.points: List[Point] = [p for p in (points or []) if isinstance(p, Point)]
        self.name = name
        self._center: Optional[Point] = None

    @classmethod
    def from_list(cls, points: Iterable, name: Optional[str] = None) -> "PointSet":
        return cls([Point.from_dict(p) for p in points], name=name)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def _axis(self, axis: str) -> np.ndarray:
        return np.array([getattr(p, axis) for p in self.points], dtype=np.float64)

    def get_named(self, name: str) -> List[Point]:
        return [p for p in self.points if p.name == name]

    def get_mean(self, axis: str) -> float:
        return float(np.mean(self._axis(axis)))

    def get_min(self, axis: str) -> float:
        return float(np.min(self._axis(axis)))

    def get_max(self, axis: str) -> float:
        return float(np.max(self._axis(axis)))

    @property
    def center(self) -> Optional[Point]:
        """Mean point of the set, computed once"""
        if not self.points:
            return None
        if self._center is None:
            self._center = Point(
                x=self.get_mean("x"),
                y=self.get_mean("y"),
                z=self.get_mean("z"),
                name="center",
            )
        return self._center

    def flatten(self) -> List[float]:
        """x, y, z of every point, interleaved in point order"""
        values: List[float] = []
        for point in self.points:
            values.extend(point.flatten())
        return values

    def normalize(self, **kwargs) -> "PointSet":
        for point in self.points:
            point.normalize(**kwargs)
        self._center = None
        return self


@dataclass
class BoundingBox:
    """Face bounding box in image pixels"""
    x_min: float
    y_min: float
    width: float
    height: float


@dataclass
class ImageShape:
    """Source image dimensions"""
    height: int
    width: int
    channels: int = 3


def _axis_scale(extent: float, unit_scale: float) -> float:
    """Scale that maps an extent onto unit_scale; neutral for a zero extent"""
    extent = abs(extent)
    if extent == 0 or not np.isfinite(extent):
        return 1.0
    return unit_scale / extent


class Landmark:
    """One detected face: bounding box plus grouped, normalized keypoints"""

    def __init__(
        self,
        box: BoundingBox,
        keypoints: Iterable,
        shape: Optional[ImageShape] = None,
        scale: float = UNIT_SCALE,
    ):
        self.box = box
        self.shape = shape
        self.scale = scale
        self.points = PointSet.from_list(keypoints)
        self.groups: Dict[str, PointSet] = {}
        self._features: Optional[FeatureVector] = None

        if len(self.points):
            self._normalize()
        for group in LANDMARK_GROUPS:
            members = self.points.get_named(group)
            if members:
                self.groups[group] = PointSet(members, name=group)

    def _normalize(self):
        z_min = self.points.get_min("z")
        z_max = self.points.get_max("z")
        self.points.normalize(
            x_min=self.box.x_min,
            y_min=self.box.y_min,
            z_min=z_min,
            x_scale=_axis_scale(self.box.width, self.scale),
            y_scale=_axis_scale(self.box.height, self.scale),
            z_scale=_axis_scale(z_max - z_min, self.scale),
        )

    def __getitem__(self, group: str) -> PointSet:
        return self.groups[group]

    def __contains__(self, group: str) -> bool:
        return group in self.groups

    @property
    def features(self) -> FeatureVector:
        """Feature-bearing groups flattened into a feature vector, built once"""
        if self._features is None:
            features = FeatureVector()
            for group in FEATURE_GROUPS:
                if group in self.groups:
                    features.add(group, self.groups[group])
            self._features = features
        return self._features

    def compare(self, other: Optional["Landmark"]) -> Optional[float]:
        if other is None:
            return None
        return self.features.distance(other.features)


@dataclass
class MatchResult:
    """Best match of a scan: absolute index and confidence (1 - distance)"""
    index: int
    confidence: float

    @classmethod
    def from_distance(cls, index: int, distance: float) -> "MatchResult":
        return cls(index=int(index), confidence=1.0 - float(distance))

    def to_dict(self) -> dict:
        return {
            "label": self.index,
            "confidence": self.confidence,
        }


@dataclass
class HealthStatus:
    """Service health status"""
    status: str
    model: str
    version: str

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "model": self.model,
            "version": self.version,
        }
