import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Header, status
from jose import jwt, JWTError
from pydantic import BaseModel, EmailStr

from config.settings import settings
from core.entities.plan import PlanNotFoundError, list_plans
from core.entities.user import User

from core.use_cases.user_use_cases import register_user, authenticate_user, get_user_credits
from core.use_cases.payment_use_cases import (
    create_payment_order,
    verify_payment,
    list_user_transactions,
    InvalidSignatureError,
    TransactionNotFoundError,
    PaymentAlreadyProcessedError,
    PaymentNotCompletedError,
)
from infrastructure.db.sqlite import SQLiteUserRepository, SQLiteTransactionRepository, connect

from core.services.payment_provider import PaymentProvider, PaymentGatewayError

from infrastructure.payments.razorpay_provider import RazorpayPaymentProvider
from infrastructure.payments.stub_provider import StubPaymentProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])

NOT_AUTHORIZED = "Not Authorized. Login Again."


def get_db():
    conn = connect(settings.DB_PATH)
    try:
        yield conn
    finally:
        conn.close()

def get_user_repo(conn: sqlite3.Connection = Depends(get_db)) -> SQLiteUserRepository:
    return SQLiteUserRepository(conn)

def get_transaction_repo(conn: sqlite3.Connection = Depends(get_db)) -> SQLiteTransactionRepository:
    return SQLiteTransactionRepository(conn)

# один экземпляр на процесс: заглушка хранит заказы в памяти
@lru_cache(maxsize=1)
def get_payment_provider() -> PaymentProvider:
    if settings.razorpay_configured:
        return RazorpayPaymentProvider(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            base_url=settings.RAZORPAY_API_URL,
            timeout=settings.PAYMENT_TIMEOUT_SECONDS,
        )
    logger.warning("Razorpay keys are not configured, using stub payment provider")
    return StubPaymentProvider()

# jwt авторизация
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return authorization.split(" ", 1)[1]

def get_current_user(
    token: str = Depends(get_bearer_token),
    repo: SQLiteUserRepository = Depends(get_user_repo),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=NOT_AUTHORIZED,
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        sub = payload.get("sub")
        if sub is None:
            raise credentials_exception
        user_id = int(sub)
    except (JWTError, ValueError):
        logger.info("Rejected bearer token")
        raise credentials_exception

    user = repo.get_by_id(user_id)
    if user is None:
        raise credentials_exception
    return user


class UserName(BaseModel):
    name: str

class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str

class LoginRequest(BaseModel):
    email: str
    password: str

class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserName

class CreditsResponse(BaseModel):
    success: bool = True
    credits: int
    user: UserName

class PlanItem(BaseModel):
    id: str
    credits: int
    price: int
    description: str

class PaymentRequest(BaseModel):
    planId: Optional[str] = None

class OrderItem(BaseModel):
    id: str
    amount: int
    currency: str
    receipt: str
    status: str

class PaymentResponse(BaseModel):
    success: bool = True
    order: OrderItem

class VerifyRequest(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None

class VerifyResponse(BaseModel):
    success: bool = True
    message: str
    credits: int

# DTO для транзакций
class TransactionItem(BaseModel):
    id: int
    plan: str
    credits: int
    amount: int
    currency: str
    payment: bool
    order_id: str
    payment_id: Optional[str] = None
    created_at: str


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest, repo: SQLiteUserRepository = Depends(get_user_repo)):
    try:
        user = register_user(repo, name=payload.name, email=payload.email, password=payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    token = create_access_token({"sub": str(user.id)})
    return AuthResponse(token=token, user=UserName(name=user.name))

@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, repo: SQLiteUserRepository = Depends(get_user_repo)):
    user = authenticate_user(repo, email=payload.email, password=payload.password)
    if not user:
        logger.info("Failed login attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token({"sub": str(user.id)})
    return AuthResponse(token=token, user=UserName(name=user.name))

@router.get("/credits", response_model=CreditsResponse)
def credits(
    current_user: User = Depends(get_current_user),
    repo: SQLiteUserRepository = Depends(get_user_repo),
):
    user = get_user_credits(repo, current_user.id)
    return CreditsResponse(credits=user.credit_balance, user=UserName(name=user.name))

@router.get("/plans", response_model=List[PlanItem])
def plans():
    return [PlanItem(id=p.id, credits=p.credits, price=p.price, description=p.description) for p in list_plans()]

@router.post("/pay-razor", response_model=PaymentResponse)
def pay_razor(
    payload: PaymentRequest,
    current_user: User = Depends(get_current_user),
    users: SQLiteUserRepository = Depends(get_user_repo),
    transactions: SQLiteTransactionRepository = Depends(get_transaction_repo),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    try:
        order, _ = create_payment_order(
            users=users,
            transactions=transactions,
            provider=provider,
            user_id=current_user.id,
            plan_id=payload.planId,
            currency=settings.CURRENCY,
        )
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PaymentGatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PaymentResponse(order=OrderItem(**order.to_dict()))

@router.post("/verify-razor", response_model=VerifyResponse)
def verify_razor(
    payload: VerifyRequest,
    current_user: User = Depends(get_current_user),
    users: SQLiteUserRepository = Depends(get_user_repo),
    transactions: SQLiteTransactionRepository = Depends(get_transaction_repo),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    try:
        updated = verify_payment(
            users=users,
            transactions=transactions,
            provider=provider,
            user_id=current_user.id,
            order_id=payload.razorpay_order_id,
            payment_id=payload.razorpay_payment_id,
            signature=payload.razorpay_signature,
        )
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PaymentAlreadyProcessedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PaymentNotCompletedError as e:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(e))
    except PaymentGatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    except (InvalidSignatureError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return VerifyResponse(message="Credits added successfully", credits=updated.credit_balance)

@router.get("/transactions", response_model=List[TransactionItem])
def get_transactions(
    limit: int = 50,
    offset: int = 0,
    current_user: User = Depends(get_current_user),
    transactions: SQLiteTransactionRepository = Depends(get_transaction_repo),
):
    txs = list_user_transactions(transactions, current_user.id, limit=limit, offset=offset)
    return [
        TransactionItem(
            id=tx.id,
            plan=tx.plan,
            credits=tx.credits,
            amount=tx.amount,
            currency=tx.currency,
            payment=tx.payment,
            order_id=tx.order_id,
            payment_id=tx.payment_id,
            created_at=tx.created_at,
        )
        for tx in txs
    ]
