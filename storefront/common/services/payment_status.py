from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..models import Order, OrderStatus, utcnow


# provider vocabulary -> local order status
PROVIDER_STATUS_MAP = {
    "paid": OrderStatus.PAID,
    "failed": OrderStatus.FAILED,
    "cancelled": OrderStatus.FAILED,
    "new": OrderStatus.PENDING,
    "processing": OrderStatus.PROCESSING_PAYMENT,
}


def map_provider_status(provider_status: Optional[str]) -> OrderStatus:
    """Map a PayKeeper invoice status to the local enum; unknown means failed."""
    key = (provider_status or "").strip().lower()
    return PROVIDER_STATUS_MAP.get(key, OrderStatus.FAILED)


def parse_provider_time(value: Any) -> Optional[datetime]:
    if not value:
        return None
    text = str(value).strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.strptime(text, "%Y-%m-%d %H:%M:%S")
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def apply_invoice_status(order: Order, invoice: Dict[str, Any]) -> bool:
    """
    Write the mapped invoice status onto ``order``.

    Returns False and leaves the row untouched when the status already
    matches. A move to ``paid`` stamps ``paid_at`` from the invoice, or now.
    """
    new_status = map_provider_status(invoice.get("status"))
    if order.status == new_status.value:
        return False
    order.status = new_status.value
    if new_status is OrderStatus.PAID:
        order.paid_at = parse_provider_time(invoice.get("paid_at")) or utcnow()
    return True
