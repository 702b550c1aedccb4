from __future__ import annotations

import json

import pytest
import requests
import responses

from retail_pos_sdk.clients.auth_client import AuthValidationClient, RolePermissionClient
from retail_pos_sdk.config import ClientConfig
from retail_pos_sdk.exceptions import AuthError, DeserializationError
from retail_pos_sdk.http_client import HttpClient
from retail_pos_sdk.models import OperatorIdentity

from conftest import BASE_URL


class RecordingSession(requests.Session):
    def __init__(self) -> None:
        super().__init__()
        self.timeouts: list[object] = []

    def request(self, method, url, **kwargs):
        self.timeouts.append(kwargs.get("timeout"))
        return super().request(method, url, **kwargs)


@responses.activate
def test_validate_admin_posts_pair_verbatim(http: HttpClient) -> None:
    responses.add(responses.POST, f"{BASE_URL}/auth/validate-admin", json={"valid": True}, status=200)
    client = AuthValidationClient(http=http, access_token="token")
    result = client.validate_admin(" Admin", "s3cret ")
    assert result.valid is True
    body = json.loads(responses.calls[0].request.body.decode("utf-8"))
    assert body == {"username": " Admin", "password": "s3cret "}
    assert responses.calls[0].request.headers["Authorization"] == "Bearer token"


@responses.activate
def test_validate_admin_uses_admin_validation_timeout() -> None:
    responses.add(responses.POST, f"{BASE_URL}/auth/validate-admin", json={"valid": True}, status=200)
    responses.add(responses.GET, f"{BASE_URL}/auth/me", json={"id": 3, "role": {"name": "Admin"}}, status=200)
    config = ClientConfig(
        env_name="test",
        api_base_url=BASE_URL,
        connect_timeout_seconds=2.0,
        read_timeout_seconds=15.0,
        admin_validation_timeout_seconds=7.5,
    )
    session = RecordingSession()
    http = HttpClient(config=config, session=session)

    AuthValidationClient(http=http).validate_admin("admin", "secret")
    RolePermissionClient(http=http).is_non_seller(OperatorIdentity(user_id="3", name="Luis"))

    assert session.timeouts == [(2.0, 7.5), (2.0, 15.0)]


@responses.activate
def test_validate_admin_without_flag_is_invalid(http: HttpClient) -> None:
    responses.add(responses.POST, f"{BASE_URL}/auth/validate-admin", json={"ok": True}, status=200)
    client = AuthValidationClient(http=http)
    assert client.validate_admin("admin", "x").valid is False


@responses.activate
def test_validate_admin_non_object_body(http: HttpClient) -> None:
    responses.add(responses.POST, f"{BASE_URL}/auth/validate-admin", json=[True], status=200)
    client = AuthValidationClient(http=http)
    with pytest.raises(DeserializationError):
        client.validate_admin("admin", "x")


@responses.activate
def test_validate_admin_unauthorized(http: HttpClient) -> None:
    responses.add(
        responses.POST,
        f"{BASE_URL}/auth/validate-admin",
        json={"message": "Credenciales inválidas"},
        status=401,
    )
    client = AuthValidationClient(http=http)
    with pytest.raises(AuthError):
        client.validate_admin("admin", "bad")


@pytest.mark.parametrize(
    ("role", "expected"),
    [
        ({"id": 1, "name": "Administrador"}, True),
        ({"id": 2, "name": "Seller"}, False),
        ("vendedor", False),
        (None, False),
    ],
)
@responses.activate
def test_is_non_seller(http: HttpClient, role: object, expected: bool) -> None:
    responses.add(responses.GET, f"{BASE_URL}/auth/me", json={"id": 3, "role": role}, status=200)
    client = RolePermissionClient(http=http)
    actor = OperatorIdentity(user_id="3", name="Luis", access_token="actor-token")
    assert client.is_non_seller(actor) is expected
    assert responses.calls[0].request.headers["Authorization"] == "Bearer actor-token"
