from dataclasses import dataclass
from typing import Optional

@dataclass
class Transaction:
    id: Optional[int]
    user_id: int
    plan: str               # "Basic" | "Advanced" | "Premium"
    credits: int            # кредиты, начисляемые после оплаты
    amount: int             # цена плана в основных единицах валюты
    currency: str
    payment: bool           # False -> True только один раз
    order_id: str           # id заказа у платёжного шлюза
    created_at: str
    payment_id: Optional[str] = None
