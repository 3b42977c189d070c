"""
Domain exceptions
"""


class FaceIdError(Exception):
    """Base error for the face identity service"""


class DetectionFailure(FaceIdError):
    """No face found in a sample, or the sample could not be decoded"""


class ShapeMismatch(FaceIdError):
    """Two feature vectors do not share the same groups and lengths"""

    def __init__(self, left, right):
        self.left = left
        self.right = right
        super().__init__(
            f"Unable to compare between different face features: {left} vs {right}"
        )
