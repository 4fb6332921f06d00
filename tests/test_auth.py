import pytest
from starlette.requests import Request

from core.auth import gateway_auth, sign_user_id, verify_user_signature
from core.errors import AuthenticationError

pytestmark = pytest.mark.anyio


def _request(headers):
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def test_signature_roundtrip_and_tamper():
    signature = sign_user_id(42)
    assert verify_user_signature(42, signature)
    assert not verify_user_signature(43, signature)
    assert not verify_user_signature(42, sign_user_id(42, secret="other-secret"))


async def test_gateway_auth_returns_user_id():
    assert await gateway_auth(_request({"X-User-Id": "7", "X-Auth-Signature": sign_user_id(7)})) == 7


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"X-User-Id": "7"},
        {"X-User-Id": "abc", "X-Auth-Signature": "sig"},
        {"X-User-Id": "7", "X-Auth-Signature": "forged"},
    ],
)
async def test_gateway_auth_rejects(headers):
    with pytest.raises(AuthenticationError):
        await gateway_auth(_request(headers))
