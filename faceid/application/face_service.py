"""
Face landmark service - application layer
"""
import logging
from io import BytesIO
from typing import List, Optional

import numpy as np
from PIL import Image

from faceid.domain.exceptions import DetectionFailure
from faceid.domain.features import FeatureVector
from faceid.domain.interfaces import (
    FaceDetectorInterface,
    ImageLoaderInterface,
    LandmarkSourceInterface,
)
from faceid.domain.models import HealthStatus, Landmark

logger = logging.getLogger(__name__)


class FaceService(LandmarkSourceInterface):
    """Service for detecting faces and building their features"""

    def __init__(
        self,
        detector: FaceDetectorInterface,
        image_loader: ImageLoaderInterface,
        face_size: int = 0,
    ):
        self.detector = detector
        self.image_loader = image_loader
        self.face_size = face_size

    def get_faces(self, image_data: bytes) -> List[Landmark]:
        """Detect all faces in image bytes"""
        image = self.image_loader.load_from_bytes(image_data)
        if image is None:
            logger.warning("Failed to decode image")
            return []
        return self.detector.detect_faces(image)

    def get_faces_from_url(self, image_url: str) -> List[Landmark]:
        """Detect all faces in an image URL"""
        image = self.image_loader.load_from_url(image_url)
        if image is None:
            logger.warning("Failed to load image from URL")
            return []
        return self.detector.detect_faces(image)

    def detect(self, data: bytes) -> Optional[Landmark]:
        """Primary (first) face in image bytes

        Raises DetectionFailure when the bytes cannot be decoded or the
        detector fails.
        """
        image = self.image_loader.load_from_bytes(data)
        if image is None:
            raise DetectionFailure("Failed to decode image")
        try:
            faces = self.detector.detect_faces(image)
        except Exception as e:
            raise DetectionFailure(f"Face detection failed: {e}") from e
        if faces:
            return faces[0]
        return None

    def get_features(self, image_data: bytes) -> List[FeatureVector]:
        """Feature vectors of every face in image bytes"""
        return [face.features for face in self.get_faces(image_data)]

    def detect_faces(self, image_data: bytes, face: bool = True, feature: bool = True) -> List[dict]:
        """Cropped face images and/or features of every face in image bytes"""
        image = self.image_loader.load_from_bytes(image_data)
        if image is None:
            logger.warning("Failed to decode image")
            return []

        results = []
        for landmark in self.detector.detect_faces(image):
            data = {}
            if face:
                data["face"] = self._crop(image, landmark)
            if feature:
                data["features"] = landmark.features
            results.append(data)
        return results

    def _crop(self, image: np.ndarray, landmark: Landmark) -> bytes:
        """PNG of the face box, resized to face_size when configured"""
        height, width = image.shape[:2]
        left = int(landmark.box.x_min)
        top = int(landmark.box.y_min)
        box_width = int(landmark.box.width)
        box_height = int(landmark.box.height)

        face_img = Image.fromarray(image)
        # Only crop when the detected box lies inside the image
        if left >= 0 and top >= 0 and left + box_width < width and top + box_height < height:
            face_img = face_img.crop((left, top, left + box_width, top + box_height))
            if self.face_size and max(box_width, box_height) > 0:
                scale = self.face_size / max(box_width, box_height)
                face_img = face_img.resize((
                    int(np.ceil(box_width * scale)),
                    int(np.ceil(box_height * scale)),
                ))

        buffer = BytesIO()
        face_img.save(buffer, format="PNG")
        return buffer.getvalue()

    def get_health(self) -> HealthStatus:
        """Get service health status"""
        return self.detector.get_health()

    def is_ready(self) -> bool:
        """Check if service is ready"""
        return self.detector.is_ready()

    def close(self):
        """Release the detector model"""
        self.detector.close()
