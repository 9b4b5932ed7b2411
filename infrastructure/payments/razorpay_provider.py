import logging
from typing import Any, Dict, Optional

import httpx

from core.services.payment_provider import (
    PaymentProvider, PaymentOrder, PaymentGatewayError, signature_matches,
)

logger = logging.getLogger(__name__)


# REST API Razorpay: только POST /orders и GET /orders/{id}, подпись проверяется локально
class RazorpayPaymentProvider(PaymentProvider):
    name = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not key_id or not key_secret:
            raise ValueError("Razorpay key id and key secret are required")
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(
            base_url=self.base_url,
            auth=(key_id, key_secret),
            timeout=timeout,
        )

    @staticmethod
    def _to_order(data: Dict[str, Any]) -> PaymentOrder:
        return PaymentOrder(
            id=str(data["id"]),
            amount=int(data.get("amount", 0)),
            currency=str(data.get("currency", "")),
            receipt=str(data.get("receipt") or ""),
            status=str(data.get("status", "")),
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error") or {}
            return error.get("description") or response.text
        except ValueError:
            return response.text

    def create_order(self, amount: int, currency: str, receipt: str) -> PaymentOrder:
        payload = {"amount": int(amount), "currency": currency, "receipt": receipt}
        try:
            response = self._client.post("/orders", json=payload)
        except httpx.HTTPError as e:
            logger.error("Razorpay order creation failed: %s", e)
            raise PaymentGatewayError(f"Payment gateway unavailable: {e}") from e

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error("Razorpay rejected order (receipt=%s): %s %s", receipt, response.status_code, message)
            raise PaymentGatewayError(message, status_code=response.status_code)

        order = self._to_order(response.json())
        logger.info("Razorpay order %s created: %s %s", order.id, order.amount, order.currency)
        return order

    def fetch_order(self, order_id: str) -> Optional[PaymentOrder]:
        try:
            response = self._client.get(f"/orders/{order_id}")
        except httpx.HTTPError as e:
            logger.error("Razorpay order fetch failed for %s: %s", order_id, e)
            raise PaymentGatewayError(f"Payment gateway unavailable: {e}") from e

        # Razorpay отвечает 400 BAD_REQUEST_ERROR на несуществующий id
        if response.status_code in (400, 404):
            logger.warning("Razorpay order %s not found: %s", order_id, self._error_message(response))
            return None
        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error("Razorpay order fetch for %s returned %s: %s", order_id, response.status_code, message)
            raise PaymentGatewayError(message, status_code=response.status_code)

        data = response.json()
        if not data or not data.get("id"):
            return None
        return self._to_order(data)

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return signature_matches(self.key_secret, order_id, payment_id, signature)
