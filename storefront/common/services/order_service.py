import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..db import SessionFactory
from ..errors import InvoiceNotFoundError, NotFoundError, PaymentGatewayError, ValidationError
from ..models import Order, OrderItem, OrderStatus, User, utcnow
from ..utils.dto import to_order_dto
from ..utils.validators import amounts_match, parse_datetime, parse_money, parse_quantity, require_text
from .logging import log_event
from .payment_status import apply_invoice_status, map_provider_status


logger = logging.getLogger(__name__)

# statuses an administrator may set by hand
ADMIN_SETTABLE_STATUSES = (
    OrderStatus.PENDING.value,
    OrderStatus.PAID.value,
    OrderStatus.FAILED.value,
    OrderStatus.COMPLETED.value,
)

WEBHOOK_FIELDS = ("id", "sum", "orderid", "status")


class OrderService:
    """Order creation, payment and status tracking backed by DB.

    Responsibilities:
    - Snapshot the checkout cart into an order and its items in one transaction
    - Mint a provider invoice for a pending order
    - Apply webhook notifications and on-demand status checks
    """

    def __init__(self, session_factory: SessionFactory, gateway, mailer=None) -> None:
        self._session_factory = session_factory
        self._gateway = gateway
        self._mailer = mailer

    # --- creation ---

    def create_order(self, user_id: str, payload: Dict) -> Dict:
        cart = payload.get("cart")
        if (
            not cart
            or not isinstance(cart, list)
            or not payload.get("delivery_address")
            or not payload.get("delivery_time")
            or payload.get("total_amount") in (None, "")
        ):
            raise ValidationError("cart, delivery_address, delivery_time and total_amount are required")

        lines = [self._cart_line(raw) for raw in cart]
        delivery_cost = parse_money(payload.get("delivery_cost") or 0, "delivery_cost")
        total_amount = parse_money(payload["total_amount"], "total_amount")
        delivery_time = parse_datetime(payload["delivery_time"], "delivery_time")
        address = require_text(payload["delivery_address"], "delivery_address")
        comment = (payload.get("comment") or "").strip() or None

        computed = sum((line["total"] for line in lines), Decimal("0")) + delivery_cost
        if not amounts_match(computed, total_amount):
            raise ValidationError("Order total does not match the cart", "total_amount")
        if delivery_time < utcnow():
            raise ValidationError("Delivery time is in the past", "delivery_time")

        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")
            order = Order(
                user_id=user_id,
                total_amount=total_amount,
                delivery_address=address,
                delivery_time=delivery_time,
                delivery_cost=delivery_cost,
                comment=comment,
                status=OrderStatus.PENDING.value,
                paykeeper_id=None,
            )
            order.items = [OrderItem(**line) for line in lines]
            session.add(order)
            session.flush()
            result = to_order_dto(order)
            notification = self._notification(user, order)

        log_event("info", "order.created", order_id=result["id"], items=len(lines), total=result["total_amount"])
        if self._mailer is not None:
            # the order is committed; a mail problem must not turn it into an error
            try:
                self._mailer.send_order_notification(notification)
            except Exception:
                logger.exception("Order notification failed for order %s", result["id"])
        return result

    @staticmethod
    def _cart_line(raw: Any) -> Dict:
        if not isinstance(raw, dict):
            raise ValidationError("cart items must be objects", "cart")
        quantity = parse_quantity(raw.get("quantity"), "cart")
        if quantity < 1:
            raise ValidationError("cart item quantity must be >= 1", "cart")
        price = parse_money(raw.get("price"), "price")
        return {
            "product_id": require_text(raw.get("product_id"), "product_id"),
            "name": require_text(raw.get("name"), "name"),
            "quantity": quantity,
            "price": price,
            "total": price * quantity,
        }

    @staticmethod
    def _notification(user: User, order: Order) -> Dict:
        return {
            "order_id": order.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "phone": user.phone_number,
            "delivery_address": order.delivery_address,
            "delivery_date": order.delivery_time.strftime("%d.%m.%Y"),
            "delivery_time": order.delivery_time.strftime("%H:%M"),
            "comment": order.comment,
            "items": [
                {"name": it.name, "quantity": it.quantity, "total": float(it.total)} for it in order.items
            ],
            "total_amount": float(order.total_amount),
            "status": order.status,
        }

    # --- reads and admin updates ---

    def list_orders(self, user_id: str) -> List[Dict]:
        with self._session_factory() as session:
            rows = (
                session.query(Order)
                .filter(Order.user_id == user_id)
                .order_by(Order.created_at.desc())
                .all()
            )
            return [to_order_dto(r) for r in rows]

    def get_order(self, order_id: str, *, user_id: str) -> Dict:
        with self._session_factory() as session:
            order = self._owned_order(session, order_id, user_id)
            return to_order_dto(order)

    def update_status(self, order_id: str, status: Optional[str]) -> Dict:
        if status not in ADMIN_SETTABLE_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(ADMIN_SETTABLE_STATUSES)}", "status")
        with self._session_factory() as session:
            order = session.get(Order, order_id)
            if not order:
                raise NotFoundError("Order not found")
            previous = order.status
            order.status = status
            if status == OrderStatus.PAID.value and order.paid_at is None:
                order.paid_at = utcnow()
            session.flush()
            log_event("info", "order.status_changed", order_id=order_id, old=previous, new=status, source="admin")
            return to_order_dto(order)

    def delete_order(self, order_id: str, *, user_id: str) -> None:
        with self._session_factory() as session:
            order = self._owned_order(session, order_id, user_id)
            if order.status != OrderStatus.PENDING.value:
                raise ValidationError("Only pending orders can be deleted")
            session.delete(order)
        log_event("info", "order.deleted", order_id=order_id, user_id=user_id)

    @staticmethod
    def _owned_order(session, order_id: str, user_id: str) -> Order:
        order = (
            session.query(Order)
            .filter(Order.id == order_id, Order.user_id == user_id)
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")
        return order

    # --- payments ---

    def generate_payment(self, user_id: str, payload: Dict) -> Dict:
        """Create a provider invoice for a pending order and remember its id."""
        order_id = payload.get("order_id")
        description = payload.get("description")
        client_email = payload.get("client_email")
        if not order_id or payload.get("amount") in (None, "") or not description or not client_email:
            raise ValidationError("order_id, amount, description and client_email are required")
        amount = parse_money(payload["amount"], "amount")

        with self._session_factory() as session:
            order = self._owned_order(session, order_id, user_id)
            if order.status != OrderStatus.PENDING.value:
                raise ValidationError("Order is not awaiting payment")
            if not amounts_match(order.total_amount, amount):
                raise ValidationError("Payment amount does not match the order total", "amount")
            user = session.get(User, user_id)
            client_name = f"{user.last_name} {user.first_name}" if user and user.first_name and user.last_name else None

        invoice = self._gateway.create_invoice(
            order_id=order_id,
            amount=amount,
            description=str(description),
            client_email=str(client_email),
            client_phone=payload.get("client_phone"),
            client_name=client_name,
        )

        with self._session_factory() as session:
            order = session.get(Order, order_id)
            if not order:
                raise NotFoundError("Order not found")
            order.paykeeper_id = invoice["invoice_id"]
            order.status = OrderStatus.PROCESSING_PAYMENT.value
        log_event("info", "payment.invoice_created", order_id=order_id, invoice_id=invoice["invoice_id"])
        return {"order_id": order_id, "invoice_id": invoice["invoice_id"], "payment_link": invoice["payment_link"]}

    def handle_webhook(self, payload: Dict) -> Dict:
        """
        Apply a provider payment notification.

        An amount that differs from the order total by more than a cent marks
        the order failed and is then reported as a 400; the failed status is
        committed before the error is raised.
        """
        missing = [key for key in WEBHOOK_FIELDS if not payload.get(key)]
        if missing:
            logger.error("Webhook payload missing %s", ", ".join(missing))
            raise ValidationError("Incomplete payment notification")
        invoice_id = str(payload["id"])
        order_id = str(payload["orderid"])
        try:
            paid_sum = parse_money(payload["sum"], "sum")
        except ValidationError:
            raise ValidationError("Incomplete payment notification") from None

        with self._session_factory() as session:
            order = session.get(Order, order_id)
            if not order:
                logger.error("Webhook for unknown order %s", order_id)
                raise NotFoundError("Order not found")
            previous = order.status
            order.paykeeper_id = invoice_id
            mismatch = not amounts_match(order.total_amount, paid_sum)
            if mismatch:
                logger.error("Amount mismatch for order %s: order %s, paid %s", order_id, order.total_amount, paid_sum)
                order.status = OrderStatus.FAILED.value
            else:
                new_status = map_provider_status(payload["status"])
                order.status = new_status.value
                if new_status is OrderStatus.PAID:
                    order.paid_at = utcnow()
            current = order.status

        log_event(
            "warning" if mismatch else "info",
            "order.status_changed",
            order_id=order_id,
            old=previous,
            new=current,
            source="webhook",
        )
        if mismatch:
            raise ValidationError("Payment amount does not match the order total", "sum")
        return {"success": True}

    def check_payment_status(self, order_id: str, *, user_id: str) -> Dict:
        with self._session_factory() as session:
            order = self._owned_order(session, order_id, user_id)
            invoice_id = order.paykeeper_id
        if not invoice_id:
            raise ValidationError("No payment has been created for this order")

        try:
            invoice = self._gateway.get_invoice(invoice_id)
        except InvoiceNotFoundError:
            raise ValidationError("Payment not found at the payment provider") from None
        except PaymentGatewayError as exc:
            raise PaymentGatewayError(
                "Payment provider returned an error",
                status_code=502,
                details={"status": exc.status_code, "message": exc.message},
            ) from exc

        mapped = map_provider_status(invoice.get("status"))
        with self._session_factory() as session:
            order = session.get(Order, order_id)
            if order is None:
                raise NotFoundError("Order not found")
            previous = order.status
            if apply_invoice_status(order, invoice):
                log_event(
                    "info", "order.status_changed", order_id=order_id, old=previous, new=order.status, source="check"
                )

        return {
            "order_id": order_id,
            "status": mapped.value,
            "status_text": invoice.get("status"),
            "amount": invoice.get("pay_amount"),
            "payment_id": invoice_id,
            "payment_details": {
                "paid_at": invoice.get("paid_at"),
                "payment_method": invoice.get("payment_method"),
            },
            "last_checked": utcnow().isoformat(),
        }
