"""
Domain interfaces (ports)
"""
from abc import ABC, abstractmethod
from typing import List, Optional
import numpy as np

from .models import HealthStatus, Landmark


class FaceDetectorInterface(ABC):
    """Interface for face landmark detection"""

    @abstractmethod
    def detect_faces(self, image: np.ndarray) -> List[Landmark]:
        """Detect face landmarks in an RGB image array"""
        pass

    @abstractmethod
    def get_health(self) -> HealthStatus:
        """Get detector health status"""
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        """Check if the detector is ready"""
        pass

    def close(self):
        """Release model resources"""


class ImageLoaderInterface(ABC):
    """Interface for image loading"""

    @abstractmethod
    def load_from_url(self, url: str) -> Optional[np.ndarray]:
        """Load image from URL"""
        pass

    @abstractmethod
    def load_from_bytes(self, data: bytes) -> Optional[np.ndarray]:
        """Load image from bytes"""
        pass


class LandmarkSourceInterface(ABC):
    """Capability used by the scanner: raw sample to its primary face"""

    @abstractmethod
    def detect(self, data: bytes) -> Optional[Landmark]:
        """Landmark of the first face in data, None when no face is found"""
        pass

    def close(self):
        """Release the source's resources"""
