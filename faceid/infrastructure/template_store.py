"""
In-memory template registry
"""
import logging
import threading
from typing import Dict, List, Optional, Tuple

from faceid.domain.messages import Slot, SlotState, decode_slot, slot_state

logger = logging.getLogger(__name__)


class TemplateStore:
    """Ordered template id -> slot registry shared by all scans

    Slots start as raw image bytes and are replaced by their feature vector
    (or NO_FACE) as scans report updates.
    """

    def __init__(self):
        self._templates: Dict[str, Slot] = {}
        self._lock = threading.Lock()

    def add(self, template_id: str, data) -> bool:
        with self._lock:
            if template_id in self._templates:
                return False
            self._templates[template_id] = decode_slot(data)
            return True

    def remove(self, template_id: str) -> bool:
        with self._lock:
            return self._templates.pop(template_id, None) is not None

    def has(self, template_id: str) -> bool:
        with self._lock:
            return template_id in self._templates

    def get(self, template_id: str) -> Slot:
        with self._lock:
            return self._templates[template_id]

    def count(self) -> int:
        with self._lock:
            return len(self._templates)

    def clear(self):
        with self._lock:
            self._templates.clear()

    def snapshot(self) -> Tuple[List[str], List[Slot]]:
        """Template ids and slots in registration order"""
        with self._lock:
            return list(self._templates.keys()), list(self._templates.values())

    def holds(self, template_id: str, slot: Slot) -> bool:
        """True when template_id is registered and still maps to this exact slot"""
        with self._lock:
            return template_id in self._templates and self._templates[template_id] is slot

    def update(self, template_id: str, data, expected: Optional[Slot] = None) -> bool:
        """Persist a resolved slot; ignored when the template is gone or not raw

        With expected, the slot is only replaced while the template still holds
        that exact object.
        """
        slot = decode_slot(data)
        with self._lock:
            if template_id not in self._templates:
                return False
            current = self._templates[template_id]
            if expected is not None and current is not expected:
                return False
            if slot_state(current) != SlotState.RAW:
                return False
            self._templates[template_id] = slot
        logger.debug(f"Template {template_id} updated: {slot_state(slot).value}")
        return True

    def stats(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in SlotState}
        with self._lock:
            for slot in self._templates.values():
                counts[slot_state(slot).value] += 1
        return counts
