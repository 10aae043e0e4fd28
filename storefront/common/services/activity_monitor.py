import logging
from datetime import timedelta
from typing import Dict, Optional

from ..db import SessionFactory
from ..models import User, utcnow
from .logging import log_event
from .scheduler import PeriodicWorker


logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(minutes=5)


class UserActivityMonitor:
    """Marks users active or inactive from their last request time."""

    def __init__(self, session_factory: SessionFactory, active_window: timedelta = ACTIVE_WINDOW) -> None:
        self._session_factory = session_factory
        self.active_window = active_window
        self._worker: Optional[PeriodicWorker] = None

    def start(self, interval_seconds: float = 120) -> None:
        if self._worker is None:
            self._worker = PeriodicWorker("user-activity-monitor", self.update_statuses, interval_seconds)
        self._worker.start()

    def stop(self) -> None:
        if self._worker is not None:
            self._worker.stop(timeout=1)

    def update_statuses(self) -> Dict[str, int]:
        cutoff = utcnow() - self.active_window
        changed = {"activated": 0, "deactivated": 0}
        with self._session_factory() as session:
            for user in session.query(User).all():
                recent = user.last_activity is not None and user.last_activity >= cutoff
                status = "active" if recent else "inactive"
                if user.status == status:
                    continue
                user.status = status
                changed["activated" if recent else "deactivated"] += 1
                log_event("info", "user.status_changed", user_id=user.id, status=status)
        logger.debug("User activity check: %s", changed)
        return changed
