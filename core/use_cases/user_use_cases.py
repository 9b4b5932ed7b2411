import logging
from typing import Optional
from passlib.context import CryptContext
from config.settings import settings
from core.entities.user import User
from core.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class UserNotFoundError(ValueError):
    pass

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def register_user(repo: UserRepository, name: str, email: str, password: str) -> User:
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email or not password:
        raise ValueError("Missing Details")
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password length should be at least {settings.MIN_PASSWORD_LENGTH} characters")
    existing = repo.get_by_email(email)
    if existing is not None:
        raise ValueError("User with this email already exists")
    password_hash = get_password_hash(password)
    user = repo.create_user(
        name=name, email=email, password_hash=password_hash, credit_balance=settings.INITIAL_CREDITS
    )
    logger.info("Registered user %s", user.id)
    return user

def authenticate_user(repo: UserRepository, email: str, password: str) -> Optional[User]:
    email = (email or "").strip().lower()
    user = repo.get_by_email(email)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user

def get_user_credits(repo: UserRepository, user_id: int) -> User:
    user = repo.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError("User not found")
    return user
