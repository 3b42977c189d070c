"""
Partition scanner - best match for a probe within an index range
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, MutableSequence, Optional

from faceid.domain.exceptions import DetectionFailure
from faceid.domain.features import DEFAULT_THRESHOLD, FeatureVector, find_best
from faceid.domain.interfaces import LandmarkSourceInterface
from faceid.domain.messages import (
    NO_FACE,
    ScanRequest,
    ScanStatus,
    Slot,
    SlotState,
    UpdateEvent,
    slot_state,
)
from faceid.domain.models import MatchResult

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative stop flag for a single scan"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ScanOutcome:
    """Result of one partition scan"""
    status: ScanStatus
    matched: Optional[MatchResult] = None
    processed: List[int] = field(default_factory=list)
    candidates: int = 0


class PartitionScanner:
    """Scans items[start..end] against a probe feature vector

    Raw slots are resolved through the landmark source and written back into
    the item store; every newly resolved slot is reported through on_update.
    """

    def __init__(
        self,
        source: LandmarkSourceInterface,
        threshold: float = DEFAULT_THRESHOLD,
        on_update: Optional[Callable[[UpdateEvent], None]] = None,
        worker_id: Optional[int] = None,
    ):
        self.source = source
        self.threshold = threshold
        self.on_update = on_update
        self.worker_id = worker_id
        self.state = ScanStatus.IDLE

    def resolve(self, items: MutableSequence[Slot], index: int, work_id: Optional[str] = None) -> Optional[Slot]:
        """Cached slot at index, detecting and caching it first if still raw"""
        if index < 0 or index >= len(items):
            return None
        slot = items[index]
        if slot_state(slot) != SlotState.RAW:
            return slot

        try:
            landmark = self.source.detect(bytes(slot))
        except DetectionFailure as e:
            logger.warning(f"FACEID> [{self.worker_id}] No face at {index}: {e}")
            landmark = None

        resolved: Slot = NO_FACE
        if landmark is not None and len(landmark.features):
            resolved = landmark.features
        items[index] = resolved
        self._notify(UpdateEvent(index=index, data=resolved, worker=self.worker_id, work_id=work_id))
        return resolved

    def _notify(self, event: UpdateEvent):
        if self.on_update is None:
            return
        try:
            self.on_update(event)
        except Exception as e:
            logger.error(f"FACEID> [{self.worker_id}] Failed to publish update {event.index}: {e}")

    def scan(self, request: ScanRequest, token: Optional[CancellationToken] = None) -> ScanOutcome:
        """Scan request.start..request.end inclusive, ascending"""
        token = token or CancellationToken()
        self.state = ScanStatus.SCANNING
        logger.info(
            f"FACEID> [{self.worker_id}] Verifying {request.work_id} "
            f"from {request.start} to {request.end}"
        )

        features: List[FeatureVector] = []
        indices: List[int] = []
        processed: List[int] = []
        matched: Optional[MatchResult] = None

        try:
            for index in range(request.start, request.end + 1):
                if token.cancelled:
                    self.state = ScanStatus.CANCELLED
                    logger.info(f"FACEID> [{self.worker_id}] Stopped at {index}")
                    break
                slot = self.resolve(request.items, index, request.work_id)
                processed.append(index)
                if isinstance(slot, FeatureVector):
                    features.append(slot)
                    indices.append(index)

            if self.state != ScanStatus.CANCELLED:
                if features:
                    best = find_best(request.probe, features, self.threshold)
                    if best is not None:
                        position, dist = best
                        matched = MatchResult.from_distance(indices[position], dist)
                self.state = ScanStatus.COMPLETED
                logger.info(f"FACEID> [{self.worker_id}] Done verifying {len(features)} sample(s)")
        except Exception as e:
            logger.error(f"FACEID> [{self.worker_id}] Err: {e}", exc_info=True)
            self.state = ScanStatus.FAILED
            matched = None

        return ScanOutcome(
            status=self.state,
            matched=matched,
            processed=processed,
            candidates=len(features),
        )
