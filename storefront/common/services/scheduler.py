import logging
import threading
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class PeriodicWorker:
    """Runs ``job`` on a daemon thread now and then every ``interval_seconds``."""

    def __init__(self, name: str, job: Callable[[], object], interval_seconds: float) -> None:
        self.name = name
        self._job = job
        self.interval_seconds = float(interval_seconds)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info("%s started (every %.0fs)", self.name, self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("%s stopped", self.name)

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self._job()
            except Exception:
                # a failing cycle must not kill the worker thread
                logger.exception("%s cycle failed", self.name)
            self._stop.wait(self.interval_seconds)
