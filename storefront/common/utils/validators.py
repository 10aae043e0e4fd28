import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..errors import ValidationError


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MONEY_TOLERANCE = Decimal("0.01")


def require_text(value: Any, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{field} is required", field)
    return text


def normalize_email(value: Any) -> str:
    email = require_text(value, "email").lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address", "email")
    return email


def ensure_positive_int(value: Any, field: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field) from None
    if number < 0:
        raise ValidationError(f"{field} must be >= 0", field)
    return number


def parse_money(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", field) from None
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field} must be a non-negative number", field)
    return amount


def amounts_match(expected: Decimal, actual: Decimal) -> bool:
    """True when two amounts agree to within one cent."""
    return abs(Decimal(expected) - Decimal(actual)) <= MONEY_TOLERANCE


def parse_datetime(value: Any, field: str) -> datetime:
    """Parse an ISO 8601 timestamp into naive UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = require_text(value, field)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO 8601 timestamp", field) from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Store phones as 7XXXXXXXXXX (11 digits) or XXXXXXXXXX (10 digits)."""
    if not value:
        return None
    digits = re.sub(r"\D", "", str(value))
    if len(digits) == 11 and digits[0] in "78":
        return "7" + digits[1:]
    if len(digits) == 10:
        return digits
    raise ValidationError("Phone number must look like 7XXXXXXXXXX or XXXXXXXXXX", "phone_number")


def parse_quantity(value: Any, field: str = "quantity") -> int:
    """Whole-number quantity; fractional or boolean input is rejected, never truncated."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer", field)
        return int(value)
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field) from None
