"""
Identity service - template registry and partitioned identification
"""
import logging
import queue
import threading
import time
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from faceid.domain.features import FeatureVector
from faceid.domain.messages import CMD_DONE, CMD_UPDATE, Slot, decode_slot, do_message
from faceid.domain.models import MatchResult

from .face_service import FaceService

logger = logging.getLogger(__name__)


def split_range(count: int, parts: int) -> List[Tuple[int, int]]:
    """Split 0..count-1 into at most `parts` contiguous inclusive ranges"""
    if count <= 0:
        return []
    parts = max(1, min(parts, count))
    size, extra = divmod(count, parts)
    ranges = []
    start = 0
    for part in range(parts):
        end = start + size + (1 if part < extra else 0) - 1
        ranges.append((start, end))
        start = end + 1
    return ranges


def merge_matches(matches: Sequence[Optional[MatchResult]]) -> Optional[MatchResult]:
    """Highest confidence across partitions, earliest partition on a tie"""
    best = None
    for match in matches:
        if match is not None and (best is None or match.confidence > best.confidence):
            best = match
    return best


class IdentityService:
    """Registers face templates and identifies probes against them"""

    VERSION = "FACEIDENTITY-1.0"

    def __init__(self, face_service: FaceService, store, pool, timeout: float = 300):
        self.face_service = face_service
        self.store = store
        self.pool = pool
        self.timeout = timeout
        # One identification at a time shares the pool's event queue
        self._lock = threading.Lock()

    def self_test(self) -> str:
        return self.VERSION

    def register(self, template_id: str, data: bytes, force: bool = False) -> bool:
        if force and self.store.has(template_id):
            self.store.remove(template_id)
        success = self.store.add(template_id, data)
        logger.info(f"Register template {template_id} [{'OK' if success else 'FAIL'}]")
        return success

    def unregister(self, template_id: str) -> bool:
        success = self.store.remove(template_id)
        logger.info(f"Unregister template {template_id} [{'OK' if success else 'FAIL'}]")
        return success

    def has(self, template_id: str) -> bool:
        return self.store.has(template_id)

    def count(self) -> int:
        return self.store.count()

    def clear(self):
        self.store.clear()
        logger.info("Templates cleared")

    def shutdown(self):
        """Stop the workers and release the detector"""
        self.pool.shutdown()
        self.face_service.close()

    def detect(self, data: bytes, face: bool = True, feature: bool = True) -> List[dict]:
        return self.face_service.detect_faces(data, face=face, feature=feature)

    def identify(self, data: bytes, work_id: Optional[str] = None) -> Optional[dict]:
        """Identify the first face in image bytes"""
        features = self.face_service.get_features(data)
        if not features:
            logger.info("No face found in probe")
            return None
        return self.identify_features(features[0], work_id)

    def identify_url(self, image_url: str, work_id: Optional[str] = None) -> Optional[dict]:
        faces = self.face_service.get_faces_from_url(image_url)
        if not faces:
            logger.info("No face found in probe")
            return None
        return self.identify_features(faces[0].features, work_id)

    def identify_features(self, feature: FeatureVector, work_id: Optional[str] = None) -> Optional[dict]:
        """Scan every template across the pool and merge the partition results"""
        work_id = work_id or uuid.uuid4().hex
        with self._lock:
            ids, items = self.store.snapshot()
            ranges = split_range(len(items), self.pool.size)
            if not ranges:
                return None

            logger.info(f"Identify {work_id} against {len(items)} template(s) in {len(ranges)} partition(s)")
            for worker_id, (start, end) in enumerate(ranges, 1):
                self.pool.send(worker_id, do_message(work_id, items, feature, start, end))

            matches, persisted = self._collect(work_id, ids, items, len(ranges))

        candidates = []
        for worker_id in range(1, len(ranges) + 1):
            match = matches.get(worker_id)
            if match is not None and not self._still_registered(ids, items, persisted, match.index):
                logger.info(f"Template {ids[match.index]} changed during identify {work_id}, match dropped")
                match = None
            candidates.append(match)

        best = merge_matches(candidates)
        if best is None:
            return None
        return {
            "id": ids[best.index],
            "label": best.index,
            "confidence": best.confidence,
        }

    def _still_registered(self, ids: List[str], items: List[Slot], persisted: Dict[int, Slot], index: int) -> bool:
        """Template at index still holds the slot that was scanned"""
        template_id = ids[index]
        if self.store.holds(template_id, items[index]):
            return True
        return index in persisted and self.store.holds(template_id, persisted[index])

    def _collect(
        self, work_id: str, ids: List[str], items: List[Slot], pending: int
    ) -> Tuple[Dict[int, Optional[MatchResult]], Dict[int, Slot]]:
        matches: Dict[int, Optional[MatchResult]] = {}
        persisted: Dict[int, Slot] = {}
        deadline = time.monotonic() + self.timeout
        while pending:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"Identify {work_id} timed out, stopping workers")
                self.pool.stop_all()
                break
            try:
                event = self.pool.next_event(timeout=remaining)
            except queue.Empty:
                continue

            if (event.get("work") or {}).get("id") != work_id:
                logger.debug(f"Ignoring stale event {event.get('cmd')}")
                continue
            if event.get("cmd") == CMD_UPDATE:
                index = event["index"]
                slot = decode_slot(event["data"])
                if self.store.update(ids[index], slot, expected=items[index]):
                    persisted[index] = slot
            elif event.get("cmd") == CMD_DONE:
                pending -= 1
                matched = event.get("matched")
                if matched is not None:
                    matches[event["worker"]] = MatchResult(
                        index=int(matched["label"]),
                        confidence=float(matched["confidence"]),
                    )
                else:
                    matches[event["worker"]] = None
                logger.debug(f"Worker {event['worker']} done: {event.get('status')}")
        return matches, persisted
