from abc import ABC, abstractmethod
from typing import Optional, List
from core.entities.transaction import Transaction
from core.entities.user import User


class TransactionRepository(ABC):
    @abstractmethod
    def create_transaction(self, user_id: int, plan: str, credits: int, amount: int,
                           currency: str, order_id: str) -> Transaction:...

    @abstractmethod
    def get_by_order_id(self, order_id: str) -> Optional[Transaction]:...

    @abstractmethod
    def confirm_payment(self, transaction_id: int, payment_id: Optional[str]) -> Optional[User]:
        """Ставит payment=True и начисляет кредиты одной транзакцией БД.

        Возвращает обновлённого пользователя или None, если флаг уже был
        выставлен (повторное подтверждение ничего не начисляет).
        """

    @abstractmethod
    def list_for_user(self, user_id: int, limit: int = 100, offset: int = 0) -> List[Transaction]:...
