from types import SimpleNamespace

import pytest

from faceid.domain.features import FEATURE_GROUPS
from faceid.domain.models import LANDMARK_GROUPS, ImageShape
from faceid.infrastructure import mediapipe_detector
from faceid.infrastructure.mediapipe_detector import (
    GROUP_CONNECTIONS,
    IRIS_START,
    MediaPipeDetector,
    download_model,
    keypoint_names,
)

MESH_POINTS = 478


def fake_face(count=MESH_POINTS):
    """Normalized landmarks on a diagonal: x 0.1-0.6, y 0.2-0.6, z -0.05-0.05"""
    face = []
    for i in range(count):
        t = i / (count - 1)
        face.append(SimpleNamespace(x=0.1 + 0.5 * t, y=0.2 + 0.4 * t, z=-0.05 + 0.1 * t))
    return face


def test_every_group_has_connections():
    assert set(GROUP_CONNECTIONS) == set(LANDMARK_GROUPS)


def test_keypoint_names_cover_feature_groups():
    names = keypoint_names()
    groups = set(names.values())

    assert set(FEATURE_GROUPS) <= groups
    # Iris points only exist past the 468 mesh points
    iris = [index for index, name in names.items() if name.endswith("Iris")]
    assert min(iris) >= IRIS_START
    assert all(0 <= index < MESH_POINTS for index in names)


class TestToLandmark:

    def test_pixel_space_box_and_shape(self):
        detector = MediaPipeDetector(refine_landmarks=True, load=False)

        landmark = detector._to_landmark(fake_face(), width=200, height=100, channels=3)

        assert landmark.box.x_min == pytest.approx(20.0)
        assert landmark.box.y_min == pytest.approx(20.0)
        assert landmark.box.width == pytest.approx(100.0)
        assert landmark.box.height == pytest.approx(40.0)
        assert landmark.shape == ImageShape(height=100, width=200, channels=3)

    def test_points_are_normalized(self):
        detector = MediaPipeDetector(refine_landmarks=True, load=False)

        landmark = detector._to_landmark(fake_face(), width=200, height=100, channels=3)

        for axis in ("x", "y", "z"):
            assert landmark.points.get_min(axis) == pytest.approx(0.0)
            assert landmark.points.get_max(axis) == pytest.approx(1.0)

    def test_groups_named_from_connections(self):
        detector = MediaPipeDetector(refine_landmarks=True, load=False)

        landmark = detector._to_landmark(fake_face(), width=200, height=100, channels=3)

        assert set(landmark.groups) == set(LANDMARK_GROUPS)
        assert list(landmark.features) == list(FEATURE_GROUPS)
        assert len(landmark["leftIris"]) == 4
        assert len(landmark["rightIris"]) == 4

    def test_unrefined_drops_iris(self):
        detector = MediaPipeDetector(refine_landmarks=False, load=False)

        landmark = detector._to_landmark(fake_face(), width=200, height=100, channels=3)

        assert len(landmark.points) == IRIS_START
        assert "leftIris" not in landmark
        assert list(landmark.features) == ["leftEye", "lips", "rightEye"]


def test_unloaded_detector_is_not_ready():
    detector = MediaPipeDetector(load=False)

    assert not detector.is_ready()
    assert detector.get_health().status == "error"
    assert detector.detect_faces(None) == []
    detector.close()


class TestDownloadModel:

    def test_existing_model_is_kept(self, tmp_path, monkeypatch):
        path = tmp_path / "face_landmarker.task"
        path.write_bytes(b"cached")

        def fail(*args, **kwargs):
            raise AssertionError("unexpected download")

        monkeypatch.setattr(mediapipe_detector.requests, "get", fail)

        assert download_model("http://models/face.task", str(path)) == str(path)
        assert path.read_bytes() == b"cached"

    def test_missing_model_is_downloaded(self, tmp_path, monkeypatch):
        path = tmp_path / "models" / "face_landmarker.task"
        requested = []

        def get(url, timeout):
            requested.append(url)
            return SimpleNamespace(content=b"model", raise_for_status=lambda: None)

        monkeypatch.setattr(mediapipe_detector.requests, "get", get)

        download_model("http://models/face.task", str(path))

        assert requested == ["http://models/face.task"]
        assert path.read_bytes() == b"model"
