"""
Payment status reconciliation.

Webhooks from the provider can be lost, so pending orders that already have
an invoice are re-checked on a timer. Cycles never overlap: a cycle that
starts while another is running returns immediately.
"""
import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Dict, Optional, Sequence

from ..db import SessionFactory
from ..errors import InvoiceNotFoundError
from ..models import Order, OrderStatus, utcnow
from .logging import log_event
from .payment_status import apply_invoice_status
from .scheduler import PeriodicWorker


logger = logging.getLogger(__name__)

RECONCILE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PROCESSING_PAYMENT.value)
LOOKBACK = timedelta(hours=24)
BATCH_LIMIT = 100
DEFAULT_RETRY_DELAYS = (1, 3, 5, 10)


class PaymentStatusReconciler:
    def __init__(
        self,
        session_factory: SessionFactory,
        gateway,
        *,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._gateway = gateway
        self._retry_delays = tuple(retry_delays) or (0,)
        self._sleep = sleep
        self._guard = threading.Lock()
        self._worker: Optional[PeriodicWorker] = None

    @property
    def is_checking(self) -> bool:
        return self._guard.locked()

    def delay_before(self, index: int) -> float:
        """Pause before the order at ``index``; nothing before the first one."""
        if index <= 0:
            return 0
        return self._retry_delays[min(index - 1, len(self._retry_delays) - 1)]

    def start(self, interval_minutes: float = 15) -> None:
        if self._worker is None:
            self._worker = PeriodicWorker("payment-reconciler", self.check_pending_payments, interval_minutes * 60)
        self._worker.start()

    def stop(self) -> None:
        if self._worker is not None:
            self._worker.stop(timeout=1)

    def trigger_async(self) -> bool:
        """Run one cycle on a background thread; False if one is already running."""
        if self.is_checking:
            return False
        threading.Thread(target=self.check_pending_payments, name="payment-reconciler-once", daemon=True).start()
        return True

    def check_pending_payments(self) -> Optional[Dict[str, int]]:
        if not self._guard.acquire(blocking=False):
            logger.info("Payment check already running; skipping this cycle")
            return None
        try:
            return self._run_cycle()
        finally:
            self._guard.release()

    def _pending_orders(self):
        cutoff = utcnow() - LOOKBACK
        with self._session_factory() as session:
            rows = (
                session.query(Order.id, Order.paykeeper_id)
                .filter(
                    Order.status.in_(RECONCILE_STATUSES),
                    Order.paykeeper_id.isnot(None),
                    Order.created_at >= cutoff,
                )
                .order_by(Order.created_at.asc())
                .limit(BATCH_LIMIT)
                .all()
            )
            return [(r.id, r.paykeeper_id) for r in rows]

    def _run_cycle(self) -> Dict[str, int]:
        summary = {"checked": 0, "updated": 0, "skipped": 0, "errors": 0}
        orders = self._pending_orders()
        logger.info("Found %d orders awaiting payment confirmation", len(orders))

        for index, (order_id, invoice_id) in enumerate(orders):
            delay = self.delay_before(index)
            if delay:
                self._sleep(delay)
            summary["checked"] += 1
            try:
                if self._check_order(order_id, invoice_id):
                    summary["updated"] += 1
            except InvoiceNotFoundError:
                summary["skipped"] += 1
            except Exception:
                # one bad order must not stop the rest of the batch
                summary["errors"] += 1
                logger.exception("Payment check failed for order %s", order_id)

        log_event("info", "payment.reconcile_cycle", **summary)
        return summary

    def _check_order(self, order_id: str, invoice_id: str) -> bool:
        invoice = self._gateway.get_invoice(invoice_id)
        with self._session_factory() as session:
            order = session.get(Order, order_id)
            if order is None:
                return False
            previous = order.status
            if not apply_invoice_status(order, invoice):
                return False
            log_event(
                "info", "order.status_changed", order_id=order_id, old=previous, new=order.status, source="reconciler"
            )
            return True
