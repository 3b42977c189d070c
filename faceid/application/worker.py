"""
Scan worker - runs partition scans for the host over a message channel
"""
import logging
import queue
import threading
from typing import Callable, Optional

from faceid.domain.features import DEFAULT_THRESHOLD
from faceid.domain.interfaces import LandmarkSourceInterface
from faceid.domain.messages import (
    CMD_DO,
    CMD_STOP,
    DoneEvent,
    ScanRequest,
    ScanStatus,
    UpdateEvent,
)

from .scanner import CancellationToken, PartitionScanner

logger = logging.getLogger(__name__)


class ScanWorker:
    """Handles do/stop commands and emits update/done events through send"""

    def __init__(
        self,
        worker_id: int,
        source: LandmarkSourceInterface,
        send: Callable[[dict], None],
        threshold: float = DEFAULT_THRESHOLD,
    ):
        self.worker_id = worker_id
        self.source = source
        self.send = send
        self.threshold = threshold
        self._token: Optional[CancellationToken] = None
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._token is not None

    def handle(self, message: dict) -> Optional[DoneEvent]:
        """Dispatch one inbound message"""
        cmd = message.get("cmd") if isinstance(message, dict) else None
        if cmd == CMD_DO:
            return self.verify(message)
        if cmd == CMD_STOP:
            self.stop()
            return None
        logger.warning(f"FACEID> [{self.worker_id}] Unknown command: {cmd}")
        return None

    def verify(self, message: dict) -> DoneEvent:
        """Run one partition scan and send its done event"""
        token = CancellationToken()
        with self._lock:
            self._token = token
        try:
            try:
                request = ScanRequest.from_message(message)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.error(f"FACEID> [{self.worker_id}] Invalid work: {e}")
                work = message.get("work")
                done = DoneEvent(
                    work_id=str(work.get("id") if isinstance(work, dict) else None),
                    worker=self.worker_id,
                    status=ScanStatus.FAILED,
                )
            else:
                scanner = PartitionScanner(
                    self.source,
                    threshold=self.threshold,
                    on_update=self._send_update,
                    worker_id=self.worker_id,
                )
                outcome = scanner.scan(request, token)
                done = DoneEvent(
                    work_id=request.work_id,
                    matched=outcome.matched,
                    worker=self.worker_id,
                    status=outcome.status,
                )
            self.send(done.to_dict())
            return done
        finally:
            with self._lock:
                if self._token is token:
                    self._token = None

    def stop(self):
        """Cancel the in-flight scan, if any"""
        with self._lock:
            token = self._token
        if token is not None:
            token.cancel()
            logger.info(f"FACEID> [{self.worker_id}] Stopping")

    def _send_update(self, event: UpdateEvent):
        self.send(event.to_dict())

    def serve(self, inbox):
        """Read commands from inbox until None arrives

        Scans run on a separate thread so a stop is seen while scanning.
        Work queued before None still runs to completion.
        """
        pending: "queue.Queue[Optional[dict]]" = queue.Queue()
        runner = threading.Thread(
            target=self._run_pending,
            args=(pending,),
            name=f"scan-worker-{self.worker_id}",
            daemon=True,
        )
        runner.start()
        while True:
            message = inbox.get()
            if message is None:
                pending.put(None)
                break
            if isinstance(message, dict) and message.get("cmd") == CMD_STOP:
                self.stop()
            else:
                pending.put(message)
        runner.join()

    def _run_pending(self, pending):
        while True:
            message = pending.get()
            if message is None:
                break
            self.handle(message)


def run_worker(
    worker_id: int,
    inbox,
    outbox,
    source_factory: Callable[[], LandmarkSourceInterface],
    threshold: float = DEFAULT_THRESHOLD,
):
    """Worker entry point, for a process or a thread"""
    logger.info(f"FACEID> [{worker_id}] Worker started")
    source = source_factory()
    worker = ScanWorker(worker_id, source, outbox.put, threshold=threshold)
    try:
        worker.serve(inbox)
    finally:
        source.close()
    logger.info(f"FACEID> [{worker_id}] Worker finished")
