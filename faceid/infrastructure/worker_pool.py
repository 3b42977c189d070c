"""
Worker pool - scan workers as processes or threads
"""
import logging
import multiprocessing
import queue
import threading
from typing import Callable, List, Optional

from faceid.application.worker import run_worker
from faceid.domain.features import DEFAULT_THRESHOLD
from faceid.domain.interfaces import LandmarkSourceInterface
from faceid.domain.messages import stop_message

logger = logging.getLogger(__name__)

BACKENDS = ("process", "thread")


class WorkerPool:
    """Fixed set of scan workers, each with its own inbox and a shared event queue

    With the process backend source_factory must be picklable (a module level
    function).
    """

    def __init__(
        self,
        size: int,
        source_factory: Callable[[], LandmarkSourceInterface],
        threshold: float = DEFAULT_THRESHOLD,
        backend: str = "process",
    ):
        if backend not in BACKENDS:
            raise ValueError(f"Unknown worker backend: {backend}")
        self.size = max(1, int(size))
        self.source_factory = source_factory
        self.threshold = threshold
        self.backend = backend
        self._inboxes: List = []
        self._workers: List = []
        self._events = None
        self._lock = threading.Lock()

    @property
    def started(self) -> bool:
        return bool(self._workers)

    def _new_queue(self):
        if self.backend == "process":
            return multiprocessing.Queue()
        return queue.Queue()

    def _new_worker(self, worker_id: int, inbox):
        args = (worker_id, inbox, self._events, self.source_factory, self.threshold)
        if self.backend == "process":
            return multiprocessing.Process(
                target=run_worker, args=args, name=f"faceid-worker-{worker_id}", daemon=True
            )
        return threading.Thread(
            target=run_worker, args=args, name=f"faceid-worker-{worker_id}", daemon=True
        )

    def start(self):
        with self._lock:
            if self._workers:
                return
            logger.info(f"Starting {self.size} {self.backend} worker(s)")
            self._events = self._new_queue()
            for worker_id in range(1, self.size + 1):
                inbox = self._new_queue()
                worker = self._new_worker(worker_id, inbox)
                worker.start()
                self._inboxes.append(inbox)
                self._workers.append(worker)

    def send(self, worker_id: int, message: dict):
        """Deliver a message to worker_id (1-based)"""
        if not self._workers:
            self.start()
        self._inboxes[worker_id - 1].put(message)

    def stop_all(self):
        for inbox in self._inboxes:
            inbox.put(stop_message())

    def next_event(self, timeout: Optional[float] = None) -> dict:
        """Next update/done event from any worker; raises queue.Empty on timeout"""
        if self._events is None:
            raise queue.Empty
        return self._events.get(timeout=timeout)

    def shutdown(self, timeout: float = 5.0):
        with self._lock:
            if not self._workers:
                return
            logger.info("Shutting down workers")
            for inbox in self._inboxes:
                inbox.put(stop_message())
                inbox.put(None)
            for worker in self._workers:
                worker.join(timeout)
                if self.backend == "process" and worker.is_alive():
                    logger.warning(f"Terminating {worker.name}")
                    worker.terminate()
            self._inboxes = []
            self._workers = []
            self._events = None
