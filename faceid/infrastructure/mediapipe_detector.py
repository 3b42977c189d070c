"""
MediaPipe FaceLandmarker implementation of face detector
"""
import logging
import os
import threading
from typing import Dict, List, Optional

import numpy as np
import mediapipe as mp
import requests

from faceid.config import get_config
from faceid.domain.interfaces import FaceDetectorInterface
from faceid.domain.models import BoundingBox, HealthStatus, ImageShape, Landmark

logger = logging.getLogger(__name__)

vision = mp.tasks.vision
connections = vision.FaceLandmarksConnections

# Landmark connection sets for each named landmark group
GROUP_CONNECTIONS = {
    "faceOval": connections.FACE_LANDMARKS_FACE_OVAL,
    "leftEye": connections.FACE_LANDMARKS_LEFT_EYE,
    "leftEyebrow": connections.FACE_LANDMARKS_LEFT_EYEBROW,
    "leftIris": connections.FACE_LANDMARKS_LEFT_IRIS,
    "lips": connections.FACE_LANDMARKS_LIPS,
    "rightEye": connections.FACE_LANDMARKS_RIGHT_EYE,
    "rightEyebrow": connections.FACE_LANDMARKS_RIGHT_EYEBROW,
    "rightIris": connections.FACE_LANDMARKS_RIGHT_IRIS,
}

# Iris points follow the 468 mesh points
IRIS_START = 468


def keypoint_names() -> Dict[int, str]:
    """Face mesh keypoint index -> group name, first group wins"""
    names: Dict[int, str] = {}
    for group, edges in GROUP_CONNECTIONS.items():
        for index in sorted({i for edge in edges for i in (edge.start, edge.end)}):
            names.setdefault(index, group)
    return names


def download_model(url: str, path: str, timeout: float = 60) -> str:
    """Fetch the landmarker model bundle unless it is already on disk"""
    if os.path.exists(path):
        return path

    logger.info(f"Downloading face landmarker model from {url}")
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    partial = f"{path}.part"
    with open(partial, "wb") as f:
        f.write(response.content)
    os.replace(partial, path)
    logger.info(f"Model saved to {path}")
    return path


class MediaPipeDetector(FaceDetectorInterface):
    """Face landmark detector using the MediaPipe FaceLandmarker task"""

    MODEL_NAME = "mediapipe-face-landmarker"

    def __init__(
        self,
        refine_landmarks: Optional[bool] = None,
        scale: Optional[float] = None,
        model_path: Optional[str] = None,
        load: bool = True,
    ):
        self.config = get_config()
        self.refine_landmarks = (
            self.config.REFINE_LANDMARKS if refine_landmarks is None else refine_landmarks
        )
        self.scale = self.config.UNIT_SCALE if scale is None else scale
        self.model_path = model_path or self.config.FACE_MODEL_PATH
        self.names = keypoint_names()
        self.model = None
        self.is_initialized = False
        # One graph per detector, detect() calls are serialized
        self._lock = threading.Lock()
        if load:
            self._initialize()

    def _initialize(self):
        """Initialize the FaceLandmarker model"""
        try:
            logger.info(
                f"Initializing FaceLandmarker (refine_landmarks={self.refine_landmarks}, "
                f"max_faces={self.config.MAX_FACES})"
            )
            download_model(self.config.FACE_MODEL_URL, self.model_path)
            options = vision.FaceLandmarkerOptions(
                base_options=mp.tasks.BaseOptions(model_asset_path=self.model_path),
                running_mode=vision.RunningMode.IMAGE,
                num_faces=self.config.MAX_FACES,
                min_face_detection_confidence=self.config.MIN_CONFIDENCE,
                min_face_presence_confidence=self.config.MIN_CONFIDENCE,
            )
            self.model = vision.FaceLandmarker.create_from_options(options)
            self.is_initialized = True
            logger.info("FaceLandmarker model initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize FaceLandmarker: {e}")
            self.is_initialized = False
            raise

    def detect_faces(self, image: np.ndarray) -> List[Landmark]:
        """Detect face landmarks in an RGB image"""
        if not self.is_initialized:
            logger.error("Model not initialized")
            return []

        try:
            height, width = image.shape[:2]
            channels = image.shape[2] if image.ndim == 3 else 1

            mp_image = mp.Image(
                image_format=mp.ImageFormat.SRGB,
                data=np.ascontiguousarray(image, dtype=np.uint8),
            )
            with self._lock:
                result = self.model.detect(mp_image)

            landmarks: List[Landmark] = []
            for face in result.face_landmarks or []:
                landmarks.append(self._to_landmark(face, width, height, channels))
            return landmarks

        except Exception as e:
            logger.error(f"Face detection failed: {e}")
            return []

    def _to_landmark(self, face, width: int, height: int, channels: int) -> Landmark:
        """Convert normalized landmarks (relative coordinates) to a pixel-space landmark"""
        keypoints = []
        for index, lm in enumerate(face):
            if not self.refine_landmarks and index >= IRIS_START:
                break
            keypoints.append({
                "x": lm.x * width,
                "y": lm.y * height,
                # Landmark depth uses roughly the same scale as x
                "z": lm.z * width,
                "name": self.names.get(index),
            })

        xs = [p["x"] for p in keypoints]
        ys = [p["y"] for p in keypoints]
        box = BoundingBox(
            x_min=min(xs),
            y_min=min(ys),
            width=max(xs) - min(xs),
            height=max(ys) - min(ys),
        )
        return Landmark(
            box=box,
            keypoints=keypoints,
            shape=ImageShape(height=height, width=width, channels=channels),
            scale=self.scale,
        )

    def get_health(self) -> HealthStatus:
        """Get health status"""
        return HealthStatus(
            status="ok" if self.is_initialized else "error",
            model=self.MODEL_NAME,
            version=mp.__version__,
        )

    def is_ready(self) -> bool:
        """Check if detector is ready"""
        return self.is_initialized

    def close(self):
        with self._lock:
            if self.model is not None:
                self.model.close()
                self.model = None
                self.is_initialized = False
