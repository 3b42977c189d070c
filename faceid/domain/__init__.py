from .exceptions import DetectionFailure, FaceIdError, ShapeMismatch
from .features import DEFAULT_THRESHOLD, FEATURE_GROUPS, FeatureVector, distance, find_best
from .messages import NO_FACE, ScanRequest, ScanStatus, SlotState, slot_state
from .models import BoundingBox, ImageShape, Landmark, MatchResult, Point, PointSet

__all__ = [
    "BoundingBox",
    "DEFAULT_THRESHOLD",
    "DetectionFailure",
    "FEATURE_GROUPS",
    "FaceIdError",
    "FeatureVector",
    "ImageShape",
    "Landmark",
    "MatchResult",
    "NO_FACE",
    "Point",
    "PointSet",
    "ScanRequest",
    "ScanStatus",
    "ShapeMismatch",
    "SlotState",
    "distance",
    "find_best",
    "slot_state",
]
