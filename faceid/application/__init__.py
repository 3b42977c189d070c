from .face_service import FaceService
from .identity_service import IdentityService, merge_matches, split_range
from .scanner import CancellationToken, PartitionScanner, ScanOutcome
from .worker import ScanWorker, run_worker

__all__ = [
    "CancellationToken",
    "FaceService",
    "IdentityService",
    "PartitionScanner",
    "ScanOutcome",
    "ScanWorker",
    "merge_matches",
    "run_worker",
    "split_range",
]
