import logging
from typing import List, Optional, Tuple
from uuid import uuid4

from core.entities.plan import get_plan
from core.entities.transaction import Transaction
from core.entities.user import User
from core.repositories.transaction_repository import TransactionRepository
from core.repositories.user_repository import UserRepository
from core.services.payment_provider import PaymentProvider, PaymentOrder

logger = logging.getLogger(__name__)


class InvalidSignatureError(ValueError):
    pass

class TransactionNotFoundError(ValueError):
    pass

class PaymentAlreadyProcessedError(ValueError):
    pass

class PaymentNotCompletedError(ValueError):
    pass


def create_payment_order(
    users: UserRepository,
    transactions: TransactionRepository,
    provider: PaymentProvider,
    user_id: int,
    plan_id: Optional[str],
    currency: str,
) -> Tuple[PaymentOrder, Transaction]:
    user = users.get_by_id(user_id)
    if user is None or not plan_id:
        raise ValueError("Missing Details")
    plan = get_plan(plan_id)

    # сначала заказ у шлюза, потом транзакция с его id
    order = provider.create_order(
        amount=plan.price * 100,
        currency=currency,
        receipt=uuid4().hex,
    )
    tx = transactions.create_transaction(
        user_id=user.id,
        plan=plan.id,
        credits=plan.credits,
        amount=plan.price,
        currency=currency,
        order_id=order.id,
    )
    logger.info("Order %s created for user %s, plan %s (%s)", order.id, user.id, plan.id, provider.name)
    return order, tx


def verify_payment(
    users: UserRepository,
    transactions: TransactionRepository,
    provider: PaymentProvider,
    user_id: int,
    order_id: Optional[str],
    payment_id: Optional[str] = None,
    signature: Optional[str] = None,
) -> User:
    if not order_id:
        raise ValueError("Missing Razorpay Order ID")

    # payment_id сохраняем только после проверки подписи
    verified_payment_id = None
    if payment_id and signature:
        if not provider.verify_signature(order_id, payment_id, signature):
            logger.warning("Signature mismatch for order %s (user %s)", order_id, user_id)
            raise InvalidSignatureError("Invalid payment signature")
        verified_payment_id = payment_id

    order = provider.fetch_order(order_id)
    if order is None or not order.id:
        raise ValueError("Invalid Razorpay order")

    tx = transactions.get_by_order_id(order.id)
    if tx is None or tx.user_id != user_id:
        raise TransactionNotFoundError("Transaction not found")

    if tx.payment:
        raise PaymentAlreadyProcessedError("Payment already processed")

    if not order.is_paid:
        raise PaymentNotCompletedError("Payment not completed yet")

    updated = transactions.confirm_payment(tx.id, verified_payment_id)
    if updated is None:
        # другой запрос успел подтвердить раньше
        raise PaymentAlreadyProcessedError("Payment already processed")

    logger.info("Order %s paid, %s credits added to user %s", order.id, tx.credits, updated.id)
    return updated


def list_user_transactions(
    transactions: TransactionRepository,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
) -> List[Transaction]:
    limit = max(1, min(100, int(limit)))
    offset = max(0, int(offset))
    return transactions.list_for_user(user_id, limit=limit, offset=offset)
