from abc import ABC, abstractmethod
from typing import Optional
from core.entities.user import User


class UserRepository(ABC):
    @abstractmethod
    def create_user(self, name: str, email: str, password_hash: str, credit_balance: int = 0) -> User:...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:...

    @abstractmethod
    def get_by_id(self, user_id: int) -> Optional[User]:...
