import logging
import smtplib
from email.message import EmailMessage
from typing import Dict, List


logger = logging.getLogger(__name__)


def format_order_notification(details: Dict) -> str:
    lines: List[str] = [
        f"Delivery order from {details['first_name']} {details['last_name']}",
        f"Phone: {details.get('phone') or 'not provided'}",
        f"Email: {details['email']}",
        f"Delivery: {details['delivery_date']} at {details['delivery_time']}",
        f"Address: {details['delivery_address']}",
    ]
    if details.get("comment"):
        lines.append(f"Comment: {details['comment']}")
    lines.append("")
    lines.append("Items:")
    for index, item in enumerate(details["items"], start=1):
        lines.append(f"{index}. {item['name']} x{item['quantity']} = {item['total']:.2f}")
    lines.append("")
    lines.append(f"Total: {details['total_amount']:.2f}")
    paid = details.get("status") == "paid"
    lines.append(f"Payment status: {'paid' if paid else 'not paid'}")
    return "\n".join(lines)


class OrderMailer:
    """Sends the shop's new-order notification over SMTP."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        user: str,
        password: str,
        use_ssl: bool = True,
        recipient: str = "",
        timeout: int = 15,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_ssl = use_ssl
        self.recipient = recipient or user
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.user)

    def send_order_notification(self, details: Dict) -> bool:
        """Send and report success; delivery problems are logged, not raised."""
        if not self.enabled:
            logger.info("SMTP not configured; skipping notification for order %s", details.get("order_id"))
            return False

        msg = EmailMessage()
        msg["Subject"] = f"New order from {details['first_name']} {details['last_name']}"
        msg["From"] = f"Storefront <{self.user}>"
        msg["To"] = self.recipient
        msg.set_content(format_order_notification(details))

        try:
            if self.use_ssl:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as smtp:
                    smtp.login(self.user, self.password)
                    smtp.send_message(msg)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                    smtp.starttls()
                    smtp.login(self.user, self.password)
                    smtp.send_message(msg)
        except Exception:
            # bad host names or credentials surface as UnicodeError, not SMTPException
            logger.exception("Order notification failed for order %s", details.get("order_id"))
            return False
        logger.info("Order notification sent for order %s", details.get("order_id"))
        return True
