import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


class PaymentGatewayError(Exception):
    """Ошибка обращения к платёжному шлюзу (сеть, авторизация, 4xx/5xx)."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class PaymentOrder:
    id: str
    amount: int             # в минимальных единицах (пайсы, центы)
    currency: str
    receipt: str
    status: str             # created | attempted | paid

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def signature_matches(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    expected = compute_signature(secret, order_id, payment_id)
    return hmac.compare_digest(expected, signature)


class PaymentProvider(ABC):
    name: str = "abstract"

    @abstractmethod
    def create_order(self, amount: int, currency: str, receipt: str) -> PaymentOrder:...

    @abstractmethod
    def fetch_order(self, order_id: str) -> Optional[PaymentOrder]:...

    @abstractmethod
    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:...
