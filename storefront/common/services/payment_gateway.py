"""
PayKeeper invoice API client.

Authentication is HTTP Basic with the merchant's API user; invoice creation
additionally needs a short-lived form token from ``/info/settings/token/``.
"""
import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from ..errors import InvoiceNotFoundError, PaymentGatewayError


class PayKeeperClient:
    REQUEST_TIMEOUT = 10
    SERVICE_NAME_LIMIT = 128

    def __init__(self, base_url: str, user: str, password: str, session: Optional[requests.Session] = None) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self._auth = (user, password)
        self._http = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self._auth[0] and self._auth[1])

    def payment_link(self, invoice_id: str) -> str:
        return f"{self.base_url}/bill/{invoice_id}/"

    def create_invoice(
        self,
        *,
        order_id: str,
        amount: Decimal,
        description: str,
        client_email: str,
        client_phone: Optional[str] = None,
        client_name: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Create an invoice and return ``{"invoice_id", "payment_link"}``.

        Raises PaymentGatewayError carrying the provider status code and
        the provider's own error text when it gave one.
        """
        self._ensure_configured()
        token = self._get_token()

        payload = {
            "pay_amount": f"{Decimal(amount):.2f}",
            "orderid": str(order_id),
            "service_name": description[: self.SERVICE_NAME_LIMIT],
            "client_email": client_email,
            "token": token,
        }
        if client_name:
            payload["clientid"] = client_name
        if client_phone:
            digits = re.sub(r"\D", "", client_phone)
            if len(digits) >= 10:
                payload["client_phone"] = digits

        self.logger.info("Creating PayKeeper invoice for order %s", order_id)
        data = self._request("POST", "/change/invoice/preview/", data=payload)
        invoice_id = data.get("invoice_id") if isinstance(data, dict) else None
        if not invoice_id:
            self.logger.error("Invalid PayKeeper invoice response: %s", data)
            raise PaymentGatewayError("Invoice ID not received from PayKeeper")
        invoice_id = str(invoice_id)
        return {"invoice_id": invoice_id, "payment_link": self.payment_link(invoice_id)}

    def get_invoice(self, invoice_id: str) -> Dict[str, Any]:
        """Fetch invoice details; raises InvoiceNotFoundError on HTTP 404."""
        self._ensure_configured()
        try:
            data = self._request("GET", "/info/invoice/byid/", params={"id": invoice_id})
        except PaymentGatewayError as exc:
            if exc.status_code == 404:
                raise InvoiceNotFoundError(invoice_id) from None
            raise
        if not isinstance(data, dict):
            raise PaymentGatewayError("Unexpected invoice payload from PayKeeper")
        return data

    def _get_token(self) -> str:
        data = self._request("GET", "/info/settings/token/")
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise PaymentGatewayError("Token not received from PayKeeper")
        return token

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise PaymentGatewayError("PayKeeper credentials not configured", status_code=500)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._http.request(
                method,
                url,
                auth=self._auth,
                headers={"Accept": "application/json"},
                timeout=self.REQUEST_TIMEOUT,
                **kwargs,
            )
        except requests.exceptions.Timeout:
            self.logger.error("PayKeeper timeout: %s %s", method, url)
            raise PaymentGatewayError("PayKeeper request timed out", status_code=504) from None
        except requests.exceptions.RequestException as exc:
            self.logger.error("PayKeeper connection error: %s %s: %s", method, url, exc)
            raise PaymentGatewayError("Could not reach PayKeeper") from None

        if response.status_code != 200:
            message = f"PayKeeper API error: HTTP {response.status_code}"
            body = None
            try:
                body = response.json()
                if isinstance(body, dict):
                    message = body.get("msg") or body.get("error") or body.get("message") or message
            except ValueError:
                self.logger.debug("PayKeeper response text: %s", response.text[:200])
            self.logger.error("PayKeeper %s %s failed: %s", method, url, message)
            raise PaymentGatewayError(message, status_code=response.status_code, details={"response": body})

        try:
            data = response.json()
        except ValueError:
            raise PaymentGatewayError("PayKeeper returned a non-JSON response") from None
        # PayKeeper reports some failures as 200 with {"result": "fail", "msg": ...}
        if isinstance(data, dict) and data.get("result") == "fail":
            raise PaymentGatewayError(data.get("msg") or "PayKeeper request failed", status_code=400)
        return data
