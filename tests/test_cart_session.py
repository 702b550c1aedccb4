from __future__ import annotations

from decimal import Decimal

import pytest

from retail_pos_sdk.cart import CartSession
from retail_pos_sdk.exceptions import ClientValidationError, GateBusyError
from retail_pos_sdk.models import OperatorIdentity, PaymentMethod
from retail_pos_sdk.stock_gate import GateState

from conftest import FakeAdminValidator, make_product


def _cart(operator: OperatorIdentity, validator: FakeAdminValidator) -> CartSession:
    return CartSession(operator=operator, validator=validator)


def test_cart_total_scenario(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.add_line(make_product("a", price="25.50", stock=10), 3)
    cart.add_line(make_product("b", price="10.00", stock=10), 1)
    assert cart.cart_total == Decimal("86.50")
    assert cart.cart_total == sum(line.unit_price * line.quantity for line in cart.lines)


def test_add_within_stock_applies_and_merges(operator, validator) -> None:
    cart = _cart(operator, validator)
    product = make_product("a", stock=5)
    assert cart.add_line(product, 2).applied is True
    assert cart.add_line(product, 3).applied is True
    assert len(cart.lines) == 1
    assert cart.requested_quantity("a") == 5
    assert cart.lines[0].stock_snapshot_at_add == 5


def test_cumulative_request_over_stock_opens_gate(operator, validator) -> None:
    cart = _cart(operator, validator)
    product = make_product("a", stock=5)
    cart.add_line(product, 4)
    change = cart.add_line(product, 4)
    assert change.applied is False
    assert change.gate is cart.pending_gate
    assert change.gate.shortfall == 3
    assert cart.requested_quantity("a") == 4


def test_cart_blocked_while_gate_pending(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.add_line(make_product("a", stock=1), 3)
    with pytest.raises(GateBusyError):
        cart.add_line(make_product("b", stock=10), 1)
    with pytest.raises(GateBusyError):
        cart.update_quantity("a", 1)
    with pytest.raises(GateBusyError):
        cart.remove_line("a")


def test_granted_gate_sets_candidate_quantity(operator, validator) -> None:
    cart = _cart(operator, validator)
    gate = cart.add_line(make_product("a", price="5.00", stock=5), 8).gate
    gate.confirm_availability(3)
    gate.authorize("admin", "secret")
    assert gate.state is GateState.GRANTED
    assert cart.pending_gate is None
    assert cart.requested_quantity("a") == 8
    assert cart.is_authorized("a")
    assert cart.overrides["a"].granted_by == "admin"


def test_authorized_product_skips_stock_check(operator, validator) -> None:
    cart = _cart(operator, validator)
    gate = cart.add_line(make_product("a", stock=0), 2).gate
    gate.confirm_availability(2)
    gate.authorize("admin", "secret")
    assert cart.update_quantity("a", 50).applied is True
    assert cart.requested_quantity("a") == 50


def test_cancelled_gate_leaves_cart_untouched(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.add_line(make_product("a", stock=5), 5)
    gate = cart.add_line(make_product("a", stock=5), 1).gate
    gate.cancel()
    assert cart.pending_gate is None
    assert cart.requested_quantity("a") == 5
    assert not cart.is_authorized("a")


def test_update_quantity_zero_removes_line(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.add_line(make_product("a", stock=5), 2)
    assert cart.update_quantity("a", 0).applied is True
    assert cart.is_empty


def test_update_quantity_unknown_product(operator, validator) -> None:
    cart = _cart(operator, validator)
    with pytest.raises(ClientValidationError):
        cart.update_quantity("missing", 1)


def test_update_quantity_uses_refreshed_stock(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.add_line(make_product("a", stock=5), 2)
    cart.refresh_stock("a", 2)
    change = cart.update_quantity("a", 3)
    assert change.applied is False
    assert change.gate.available_stock == 2


def test_remove_line_revokes_override(operator, validator) -> None:
    cart = _cart(operator, validator)
    gate = cart.add_line(make_product("a", stock=0), 1).gate
    gate.confirm_availability(1)
    gate.authorize("admin", "secret")
    cart.remove_line("a")
    assert not cart.is_authorized("a")


@pytest.mark.parametrize("qty", [0, -1, "2.5"])
def test_add_line_rejects_bad_quantity(operator, validator, qty) -> None:
    cart = _cart(operator, validator)
    with pytest.raises(ClientValidationError):
        cart.add_line(make_product("a"), qty)


def test_change_due_only_for_cash(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.add_line(make_product("a", price="30.00", stock=5), 1)
    cart.select_payment_method(PaymentMethod(id=1, name="Efectivo"))
    cart.set_amount_received("50")
    assert cart.change_due == Decimal("20.00")
    cart.select_payment_method({"id": 2, "name": "Tarjeta"})
    assert cart.amount_received is None
    assert cart.change_due is None


def test_change_due_never_negative(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.add_line(make_product("a", price="30.00", stock=5), 1)
    cart.select_payment_method(PaymentMethod(id=1, name="cash"))
    cart.set_amount_received("10")
    assert cart.change_due == Decimal("0.00")


def test_set_customer_final_consumer_when_no_tax_id(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.set_customer(" Juan ")
    assert cart.customer.is_final_consumer is True
    cart.set_customer("Empresa", "1234-5")
    assert cart.customer.tax_id == "1234-5"
    assert cart.customer.is_final_consumer is False


def test_reset_clears_everything_and_cancels_gate(operator, validator) -> None:
    cart = _cart(operator, validator)
    cart.add_line(make_product("a", stock=5), 1)
    cart.select_payment_method(PaymentMethod(id=1, name="Efectivo"))
    cart.set_amount_received("10")
    gate = cart.add_line(make_product("b", stock=0), 1).gate
    cart.reset()
    assert gate.state is GateState.CANCELLED
    assert cart.is_empty
    assert cart.payment_method is None
    assert cart.amount_received is None
    assert cart.pending_gate is None
    assert cart.authorized_product_ids == frozenset()
