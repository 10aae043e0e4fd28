"""Exceptions raised by the storefront services.

Routes never build error responses for these by hand; the handler registered
in ``storefront.app`` maps ``status_code`` to the HTTP status.
"""

from typing import Any, Dict, Optional


class StoreError(ValueError):
    """Base exception for all storefront errors."""

    status_code = 400

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(StoreError):
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message, details={"field": field} if field else None)


class AuthError(StoreError):
    status_code = 401


class ForbiddenError(StoreError):
    status_code = 403


class NotFoundError(StoreError):
    status_code = 404


class ConflictError(StoreError):
    status_code = 409


class PaymentGatewayError(StoreError):
    """Failure talking to the payment provider.

    ``status_code`` carries the provider's HTTP status when it answered, 502
    when it did not answer at all.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code or 502
        super().__init__(message, details=details)


class InvoiceNotFoundError(PaymentGatewayError):
    """The provider does not know the invoice (yet)."""

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found at payment provider", status_code=404)
