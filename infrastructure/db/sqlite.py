import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional, List
from pathlib import Path

from core.entities.user import User
from core.entities.transaction import Transaction
from core.repositories.user_repository import UserRepository
from core.repositories.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str) -> None:
    if db_path != ":memory:" and not db_path.startswith("file:"):
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, check_same_thread=False)
    try:
        cur = conn.cursor()

        cur.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            credit_balance INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            plan TEXT NOT NULL,
            credits INTEGER NOT NULL,
            amount INTEGER NOT NULL,
            currency TEXT NOT NULL,
            payment INTEGER NOT NULL DEFAULT 0,
            order_id TEXT UNIQUE NOT NULL,
            payment_id TEXT,
            created_at TEXT NOT NULL,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );
        """)
        conn.commit()
    finally:
        conn.close()
    logger.info("Database initialised at %s", db_path)


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        credit_balance=int(row["credit_balance"]),
        created_at=row["created_at"],
    )


def _row_to_tx(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row["id"],
        user_id=row["user_id"],
        plan=row["plan"],
        credits=int(row["credits"]),
        amount=int(row["amount"]),
        currency=row["currency"],
        payment=bool(row["payment"]),
        order_id=row["order_id"],
        payment_id=row["payment_id"],
        created_at=row["created_at"],
    )


class SQLiteUserRepository(UserRepository):
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def create_user(self, name: str, email: str, password_hash: str, credit_balance: int = 0) -> User:
        created_at = _now()
        cur = self.conn.cursor()
        try:
            cur.execute(
                "INSERT INTO users (name, email, password_hash, credit_balance, created_at) VALUES (?, ?, ?, ?, ?)",
                (name, email, password_hash, int(credit_balance), created_at),
            )
        except sqlite3.IntegrityError:
            self.conn.rollback()
            raise ValueError("User with this email already exists")
        self.conn.commit()
        return User(id=cur.lastrowid, name=name, email=email, password_hash=password_hash,
                    credit_balance=int(credit_balance), created_at=created_at)

    def get_by_email(self, email: str) -> Optional[User]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE email = ?", (email,))
        row = cur.fetchone()
        return _row_to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = cur.fetchone()
        return _row_to_user(row) if row else None


class SQLiteTransactionRepository(TransactionRepository):
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def create_transaction(self, user_id: int, plan: str, credits: int, amount: int,
                           currency: str, order_id: str) -> Transaction:
        created_at = _now()
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO transactions (user_id, plan, credits, amount, currency, payment, order_id, created_at) "
            "VALUES (?, ?, ?, ?, ?, 0, ?, ?)",
            (int(user_id), plan, int(credits), int(amount), currency, order_id, created_at),
        )
        self.conn.commit()
        return Transaction(id=cur.lastrowid, user_id=int(user_id), plan=plan, credits=int(credits),
                           amount=int(amount), currency=currency, payment=False,
                           order_id=order_id, created_at=created_at)

    def get_by_order_id(self, order_id: str) -> Optional[Transaction]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM transactions WHERE order_id = ?", (order_id,))
        row = cur.fetchone()
        return _row_to_tx(row) if row else None

    def confirm_payment(self, transaction_id: int, payment_id: Optional[str]) -> Optional[User]:
        cur = self.conn.cursor()
        try:
            # флаг меняется только с 0 на 1, rowcount == 0 значит уже подтверждено
            cur.execute(
                "UPDATE transactions SET payment = 1, payment_id = ? WHERE id = ? AND payment = 0",
                (payment_id, int(transaction_id)),
            )
            if cur.rowcount == 0:
                self.conn.rollback()
                return None
            cur.execute(
                "UPDATE users SET credit_balance = credit_balance + "
                "(SELECT credits FROM transactions WHERE id = ?) "
                "WHERE id = (SELECT user_id FROM transactions WHERE id = ?)",
                (int(transaction_id), int(transaction_id)),
            )
            if cur.rowcount == 0:
                self.conn.rollback()
                raise ValueError("User not found")
            cur.execute(
                "SELECT u.* FROM users u JOIN transactions t ON t.user_id = u.id WHERE t.id = ?",
                (int(transaction_id),),
            )
            row = cur.fetchone()
            self.conn.commit()
        except sqlite3.Error:
            self.conn.rollback()
            raise
        return _row_to_user(row)

    def list_for_user(self, user_id: int, limit: int = 100, offset: int = 0) -> List[Transaction]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM transactions WHERE user_id = ? ORDER BY id DESC LIMIT ? OFFSET ?",
            (int(user_id), int(limit), int(offset)),
        )
        rows = cur.fetchall()
        return [_row_to_tx(r) for r in rows]
