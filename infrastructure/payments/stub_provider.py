import logging
from threading import Lock
from typing import Dict, Optional
from uuid import uuid4

from core.services.payment_provider import (
    PaymentProvider, PaymentOrder, compute_signature, signature_matches,
)

logger = logging.getLogger(__name__)


class StubPaymentProvider(PaymentProvider):
    """Класс-заглушка шлюза для локальной разработки: заказы хранятся в памяти.

    С auto_pay=True каждый заказ сразу считается оплаченным.
    """
    name = "stub"

    def __init__(self, secret: str = "stub-secret", auto_pay: bool = True):
        self.secret = secret
        self.auto_pay = auto_pay
        self._orders: Dict[str, PaymentOrder] = {}
        self._lock = Lock()

    def create_order(self, amount: int, currency: str, receipt: str) -> PaymentOrder:
        order = PaymentOrder(
            id=f"order_stub_{uuid4().hex[:14]}",
            amount=int(amount),
            currency=currency,
            receipt=receipt,
            status="paid" if self.auto_pay else "created",
        )
        with self._lock:
            self._orders[order.id] = order
        logger.debug("Stub order %s created for %s %s", order.id, amount, currency)
        return order

    def fetch_order(self, order_id: str) -> Optional[PaymentOrder]:
        with self._lock:
            return self._orders.get(order_id)

    def mark_paid(self, order_id: str) -> PaymentOrder:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise KeyError(order_id)
            order.status = "paid"
            return order

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(self.secret, order_id, payment_id)

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return signature_matches(self.secret, order_id, payment_id, signature)
