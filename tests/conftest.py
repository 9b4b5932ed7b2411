import pytest
from fastapi.testclient import TestClient

from config.settings import settings
from infrastructure.db.sqlite import init_db, connect, SQLiteUserRepository, SQLiteTransactionRepository
from infrastructure.payments.stub_provider import StubPaymentProvider
from infrastructure.web.controllers.user_controller import get_payment_provider
from main import app


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "test.db")
    monkeypatch.setattr(settings, "DB_PATH", path)
    init_db(path)
    return path


@pytest.fixture
def conn(db_path):
    conn = connect(db_path)
    yield conn
    conn.close()


@pytest.fixture
def users(conn):
    return SQLiteUserRepository(conn)


@pytest.fixture
def transactions(conn):
    return SQLiteTransactionRepository(conn)


@pytest.fixture
def stub_provider():
    return StubPaymentProvider(secret="test-secret", auto_pay=False)


@pytest.fixture
def client(db_path, stub_provider):
    app.dependency_overrides[get_payment_provider] = lambda: stub_provider
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_payment_provider, None)


def register(client: TestClient, name="Alice", email="alice@example.com", password="password123"):
    resp = client.post("/api/user/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return resp.json()["token"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
