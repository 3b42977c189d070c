"""
Item store slots and worker protocol messages
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, MutableSequence, Optional, Union

from .features import FeatureVector
from .models import MatchResult

CMD_DO = "do"
CMD_STOP = "stop"
CMD_UPDATE = "update"
CMD_DONE = "done"


class _NoFace:
    """Marks a sample where no face was found"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_FACE"

    def __reduce__(self):
        return (_NoFace, ())


NO_FACE = _NoFace()

Slot = Union[bytes, FeatureVector, _NoFace]


class SlotState(str, Enum):
    RAW = "raw"
    FEATURE = "feature"
    NO_FACE = "no_face"


class ScanStatus(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


def slot_state(slot: Slot) -> SlotState:
    if isinstance(slot, FeatureVector):
        return SlotState.FEATURE
    if isinstance(slot, (bytes, bytearray, memoryview)):
        return SlotState.RAW
    return SlotState.NO_FACE


def decode_slot(data: Any) -> Slot:
    """Convert the wire form of a slot into its in-memory form"""
    if data is None or data is NO_FACE:
        return NO_FACE
    if isinstance(data, FeatureVector):
        return data
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        # Binary string, one byte per character
        return data.encode("latin-1")
    if isinstance(data, dict):
        # Node.js Buffer serialized as JSON
        if data.get("type") == "Buffer" and data.get("data") is not None:
            return bytes(data["data"])
        return FeatureVector.from_dict(data)
    raise ValueError(f"Unsupported item data: {type(data).__name__}")


def encode_slot(slot: Slot) -> Any:
    """Wire form of a resolved slot: a feature dict or None for no face"""
    if isinstance(slot, FeatureVector):
        return slot.to_dict()
    if isinstance(slot, (bytes, bytearray, memoryview)):
        return bytes(slot)
    return None


@dataclass
class ScanRequest:
    """One partition scan: probe features against items[start..end]"""
    work_id: str
    probe: FeatureVector
    items: MutableSequence[Slot]
    start: int
    end: int

    @classmethod
    def from_message(cls, message: dict) -> "ScanRequest":
        work = message["work"]
        items = work.get("items") or []
        return cls(
            work_id=str(work.get("id")),
            probe=FeatureVector.from_dict(work["feature"]),
            items=[decode_slot(item) for item in items],
            start=int(message["start"]),
            end=int(message["end"]),
        )


@dataclass
class UpdateEvent:
    """Slot index now holds data"""
    index: int
    data: Slot
    worker: Optional[int] = None
    work_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "cmd": CMD_UPDATE,
            "index": self.index,
            "data": encode_slot(self.data),
            "worker": self.worker,
            "work": {"id": self.work_id},
        }


@dataclass
class DoneEvent:
    """Terminal event of one scan"""
    work_id: str
    matched: Optional[MatchResult] = None
    worker: Optional[int] = None
    status: ScanStatus = ScanStatus.COMPLETED

    def to_dict(self) -> dict:
        return {
            "cmd": CMD_DONE,
            "work": {"id": self.work_id},
            "matched": self.matched.to_dict() if self.matched else None,
            "worker": self.worker,
            "status": self.status.value,
        }


def do_message(work_id: str, items: List[Any], feature: FeatureVector, start: int, end: int) -> dict:
    return {
        "cmd": CMD_DO,
        "work": {
            "id": work_id,
            "items": items,
            "feature": FeatureVector.from_dict(feature).to_dict(),
        },
        "start": start,
        "end": end,
    }


def stop_message() -> dict:
    return {"cmd": CMD_STOP}
