"""
Application configuration settings
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration"""
    # Flask
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", 5000))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # MediaPipe FaceLandmarker settings
    FACE_MODEL_PATH = os.getenv(
        "FACE_MODEL_PATH", os.path.join(os.path.expanduser("~"), ".faceid", "face_landmarker.task")
    )
    FACE_MODEL_URL = os.getenv(
        "FACE_MODEL_URL",
        "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1/face_landmarker.task",
    )
    REFINE_LANDMARKS = os.getenv("REFINE_LANDMARKS", "true").lower() == "true"  # Keep iris points
    MAX_FACES = int(os.getenv("MAX_FACES", 10))  # Max faces to detect per image
    MIN_CONFIDENCE = float(os.getenv("MIN_CONFIDENCE", 0.5))  # Min detection confidence

    # Matching settings
    MATCH_THRESHOLD = float(os.getenv("MATCH_THRESHOLD", 0.075))  # Max distance for the same face
    UNIT_SCALE = float(os.getenv("UNIT_SCALE", 1.0))

    # Worker pool settings
    WORKERS = int(os.getenv("WORKERS", os.cpu_count() or 1))
    WORKER_BACKEND = os.getenv("WORKER_BACKEND", "process")  # process, thread
    SCAN_TIMEOUT = float(os.getenv("SCAN_TIMEOUT", 300))  # Seconds to wait for all partitions

    # Image settings
    MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE", 10 * 1024 * 1024))  # 10MB
    FACE_SIZE = int(os.getenv("FACE_SIZE", 0))  # Resize cropped faces, 0 keeps detected size


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


def get_config():
    """Get configuration based on environment"""
    env = os.getenv("FLASK_ENV", "development")
    if env == "production":
        return ProductionConfig()
    return DevelopmentConfig()
