from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from faceid.domain.interfaces import LandmarkSourceInterface
from faceid.domain.models import LANDMARK_GROUPS, BoundingBox, HealthStatus, Landmark

# Top-left pixel of each synthetic landmark group
GROUP_ORIGINS = {
    "faceOval": (10.0, 10.0),
    "leftEye": (30.0, 40.0),
    "leftEyebrow": (30.0, 30.0),
    "leftIris": (32.0, 40.0),
    "lips": (50.0, 70.0),
    "rightEye": (70.0, 40.0),
    "rightEyebrow": (70.0, 30.0),
    "rightIris": (68.0, 40.0),
}


def make_keypoints(
    shift: float = 0.0,
    groups: Iterable[str] = LANDMARK_GROUPS,
    points_per_group: int = 4,
) -> List[dict]:
    keypoints = []
    for group in groups:
        ox, oy = GROUP_ORIGINS[group]
        for i in range(points_per_group):
            keypoints.append({"x": ox + i + shift, "y": oy + i, "z": float(i), "name": group})
    return keypoints


def make_landmark(shift: float = 0.0, **kwargs) -> Landmark:
    return Landmark(
        box=BoundingBox(x_min=0.0, y_min=0.0, width=100.0, height=100.0),
        keypoints=make_keypoints(shift, **kwargs),
    )


class FakeSource(LandmarkSourceInterface):
    """Landmark source answering from a bytes -> landmark table"""

    def __init__(self, faces: Optional[Dict[bytes, object]] = None, on_detect: Optional[Callable] = None):
        self.faces = faces or {}
        self.on_detect = on_detect
        self.calls: List[bytes] = []

    def detect(self, data: bytes) -> Optional[Landmark]:
        self.calls.append(data)
        if self.on_detect is not None:
            self.on_detect(data)
        face = self.faces.get(data)
        if isinstance(face, Exception):
            raise face
        return face


class FakeFaceService:
    """Face service answering probes from a bytes -> landmark table"""

    def __init__(self, faces, ready=True):
        self.faces = faces
        self.ready = ready
        self.closed = False

    def get_features(self, image_data):
        face = self.faces.get(image_data)
        return [face.features] if face is not None else []

    def get_faces_from_url(self, image_url):
        face = self.faces.get(image_url)
        return [face] if face is not None else []

    def detect_faces(self, image_data, face=True, feature=True):
        landmark = self.faces.get(image_data)
        if landmark is None:
            return []
        data = {}
        if face:
            data["face"] = b"\x89PNG"
        if feature:
            data["features"] = landmark.features
        return [data]

    def get_health(self):
        return HealthStatus(status="ok" if self.ready else "error", model="fake", version="0")

    def is_ready(self):
        return self.ready

    def close(self):
        self.closed = True


def candidate_landmarks() -> Dict[bytes, Landmark]:
    """Five samples; only item2 matches make_landmark()"""
    faces = {}
    for i in range(5):
        faces[f"item{i}".encode()] = make_landmark() if i == 2 else make_landmark(shift=10.0 * (i + 1))
    return faces


def candidate_source() -> FakeSource:
    """Module level source factory, picklable for process workers"""
    faces: Dict[bytes, object] = dict(candidate_landmarks())
    faces[b"blank"] = None
    return FakeSource(faces)
