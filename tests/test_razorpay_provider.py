import base64
import hashlib
import hmac
import json

import httpx
import pytest

from core.services.payment_provider import PaymentGatewayError
from infrastructure.payments.razorpay_provider import RazorpayPaymentProvider

BASE_URL = "https://api.razorpay.test/v1"


def _provider(handler) -> RazorpayPaymentProvider:
    client = httpx.Client(
        base_url=BASE_URL,
        auth=("rzp_test_key", "rzp_test_secret"),
        transport=httpx.MockTransport(handler),
    )
    return RazorpayPaymentProvider("rzp_test_key", "rzp_test_secret", base_url=BASE_URL, client=client)


def test_create_order_posts_amount_in_minor_units():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "id": "order_ABC", "entity": "order", "amount": 2000, "currency": "INR",
            "receipt": "r1", "status": "created",
        })

    order = _provider(handler).create_order(amount=2000, currency="INR", receipt="r1")

    assert (order.id, order.amount, order.currency, order.receipt, order.status) == \
        ("order_ABC", 2000, "INR", "r1", "created")
    assert seen["method"] == "POST"
    assert seen["path"] == "/v1/orders"
    assert seen["body"] == {"amount": 2000, "currency": "INR", "receipt": "r1"}
    expected = base64.b64encode(b"rzp_test_key:rzp_test_secret").decode()
    assert seen["auth"] == f"Basic {expected}"


def test_create_order_error_raises_gateway_error():
    def handler(request):
        return httpx.Response(401, json={"error": {"code": "BAD_REQUEST_ERROR", "description": "Authentication failed"}})

    with pytest.raises(PaymentGatewayError) as exc_info:
        _provider(handler).create_order(amount=2000, currency="INR", receipt="r1")
    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Authentication failed"


def test_transport_error_raises_gateway_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PaymentGatewayError):
        _provider(handler).fetch_order("order_ABC")


def test_fetch_order_paid():
    def handler(request):
        assert request.url.path == "/v1/orders/order_ABC"
        return httpx.Response(200, json={
            "id": "order_ABC", "amount": 5000, "currency": "INR", "receipt": "r2", "status": "paid",
        })

    order = _provider(handler).fetch_order("order_ABC")
    assert order is not None
    assert order.is_paid


def test_fetch_unknown_order_returns_none():
    def handler(request):
        return httpx.Response(400, json={"error": {"code": "BAD_REQUEST_ERROR",
                                                   "description": "The id provided does not exist"}})

    assert _provider(handler).fetch_order("order_nope") is None


def test_fetch_order_server_error():
    def handler(request):
        return httpx.Response(500, text="upstream exploded")

    with pytest.raises(PaymentGatewayError) as exc_info:
        _provider(handler).fetch_order("order_ABC")
    assert exc_info.value.status_code == 500


def test_verify_signature():
    provider = _provider(lambda request: httpx.Response(200, json={}))
    signature = hmac.new(b"rzp_test_secret", b"order_ABC|pay_XYZ", hashlib.sha256).hexdigest()

    assert provider.verify_signature("order_ABC", "pay_XYZ", signature)
    assert not provider.verify_signature("order_ABC", "pay_OTHER", signature)
    assert not provider.verify_signature("order_ABC", "pay_XYZ", "deadbeef")


def test_requires_credentials():
    with pytest.raises(ValueError):
        RazorpayPaymentProvider("", "secret")
