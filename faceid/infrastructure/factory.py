"""
Factories wiring infrastructure into services
"""
from faceid.application.face_service import FaceService
from faceid.config import get_config

from .image_loader import ImageLoader


def create_face_service() -> FaceService:
    """FaceService backed by MediaPipe; also the worker source factory"""
    from .mediapipe_detector import MediaPipeDetector

    config = get_config()
    return FaceService(
        detector=MediaPipeDetector(),
        image_loader=ImageLoader(),
        face_size=config.FACE_SIZE,
    )
