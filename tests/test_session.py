from __future__ import annotations

import responses

from retail_pos_sdk import ApiSession, CashClosure, TelemetryLogger
from retail_pos_sdk.idempotency import idempotency_headers, resolve_submission_keys

from conftest import BASE_URL


def test_session_wires_components(config, operator) -> None:
    session = ApiSession(config=config, identity=operator, telemetry=TelemetryLogger(enabled=False))
    cart = session.new_cart()
    assert cart.operator is operator
    assert session.inventory_client().access_token == "token"
    assert session.role_client().seller_role_names == config.seller_role_names
    assert session.inventory_client().http is session.http


@responses.activate
def test_session_seller_lookup(config, operator) -> None:
    responses.add(responses.GET, f"{BASE_URL}/auth/me", json={"id": "user-1", "role": {"name": "Vendedor"}})
    session = ApiSession(config=config, identity=operator, telemetry=TelemetryLogger(enabled=False))
    assert session.is_seller() is True


@responses.activate
def test_session_closure_approval_over_http(config, operator) -> None:
    responses.add(responses.GET, f"{BASE_URL}/auth/me", json={"id": "user-1", "role": {"name": "Supervisor"}})
    responses.add(
        responses.PATCH,
        f"{BASE_URL}/cash-closures/c-1/status",
        json={"id": "c-1", "status": "Aprobado", "supervisor_name": "Sofía"},
    )
    session = ApiSession(config=config, identity=operator, telemetry=TelemetryLogger(enabled=False))
    approval = session.closure_approval(CashClosure.model_validate({"id": "c-1", "status": "Pendiente"}))
    approved = approval.approve(operator, "Sofía")
    assert approved.supervisor_name == "Sofía"
    assert [call.request.method for call in responses.calls] == ["GET", "PATCH"]


def test_resolve_submission_keys() -> None:
    keys = resolve_submission_keys("txn-1")
    assert keys.submission_id == "txn-1"
    assert keys.idempotency_key
    assert idempotency_headers(keys) == {"Idempotency-Key": keys.idempotency_key}
