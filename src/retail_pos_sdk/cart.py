from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from .config import DEFAULT_CASH_METHOD_NAMES
from .exceptions import ClientValidationError, GateBusyError, ValidationIssue
from .models import OperatorIdentity, PaymentMethod
from .models_sales import CartLine, CustomerInfo, Product, StockOverrideAuthorization
from .money import ZERO, to_money, to_quantity
from .stock_gate import AdminCredentialValidator, GateState, StockAuthorizationGate
from .telemetry import TelemetryLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartChange:
    applied: bool
    gate: StockAuthorizationGate | None = None


class CartSession:
    """In-progress sale for one operator: lines, payment selection and stock overrides.

    A change that keeps a product's cumulative quantity within its known stock
    applies at once. Anything beyond that opens a ``StockAuthorizationGate`` and
    leaves the lines untouched until the gate resolves; while the gate is open
    every mutation raises ``GateBusyError``.
    """

    def __init__(
        self,
        *,
        operator: OperatorIdentity,
        validator: AdminCredentialValidator,
        cash_method_names: tuple[str, ...] = DEFAULT_CASH_METHOD_NAMES,
        telemetry: TelemetryLogger | None = None,
    ) -> None:
        self.operator = operator
        self._validator = validator
        self._cash_method_names = cash_method_names
        self._telemetry = telemetry
        self._lines: list[CartLine] = []
        self._overrides: dict[str, StockOverrideAuthorization] = {}
        self._known_stock: dict[str, int] = {}
        self._products: dict[str, Product] = {}
        self._gate: StockAuthorizationGate | None = None
        self.payment_method: PaymentMethod | None = None
        self.customer = CustomerInfo()
        self.amount_received: Decimal | None = None

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def pending_gate(self) -> StockAuthorizationGate | None:
        return self._gate

    @property
    def overrides(self) -> dict[str, StockOverrideAuthorization]:
        return dict(self._overrides)

    @property
    def authorized_product_ids(self) -> frozenset[str]:
        return frozenset(self._overrides)

    @property
    def cart_total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), ZERO)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def requested_quantity(self, product_id: str) -> int:
        return sum(line.quantity for line in self._lines if line.product_id == product_id)

    def known_stock(self, product_id: str) -> int:
        return self._known_stock.get(product_id, 0)

    def is_authorized(self, product_id: str) -> bool:
        return product_id in self._overrides

    def refresh_stock(self, product_id: str, stock: int) -> None:
        self._known_stock[product_id] = to_quantity(stock, field="stock")

    def add_line(self, product: Product | Mapping[str, Any], qty: int = 1) -> CartChange:
        self._ensure_unblocked("add line")
        item = product if isinstance(product, Product) else Product.model_validate(product)
        quantity = self._positive_quantity(qty, "qty")
        self._products[item.id] = item
        self._known_stock[item.id] = item.stock

        requested = self.requested_quantity(item.id) + quantity
        if self._within_stock(item.id, requested):
            existing = self._first_line(item.id)
            if existing is None:
                self._lines.append(
                    CartLine(
                        product_id=item.id,
                        name=item.name,
                        unit_price=item.price,
                        quantity=quantity,
                        stock_snapshot_at_add=item.stock,
                    )
                )
            else:
                existing.quantity += quantity
            logger.info("cart_line_added", extra={"product_id": item.id, "quantity": requested})
            return CartChange(applied=True)
        return CartChange(applied=False, gate=self._open_gate(item, requested))

    def update_quantity(self, product_id: str, new_qty: int) -> CartChange:
        self._ensure_unblocked("update quantity")
        try:
            quantity = to_quantity(new_qty, field="new_qty")
        except ValueError as exc:
            raise ClientValidationError([ValidationIssue(field="new_qty", reason=str(exc))]) from exc
        line = self._first_line(product_id)
        if line is None:
            raise ClientValidationError([ValidationIssue(field="product_id", reason=f"{product_id} is not in the cart")])
        if quantity <= 0:
            self.remove_line(product_id)
            return CartChange(applied=True)

        requested = self.requested_quantity(product_id) - line.quantity + quantity
        if self._within_stock(product_id, requested):
            line.quantity = quantity
            logger.info("cart_quantity_updated", extra={"product_id": product_id, "quantity": requested})
            return CartChange(applied=True)
        product = self._products.get(product_id) or Product(
            id=product_id,
            name=line.name,
            price=line.unit_price,
            stock=self.known_stock(product_id),
        )
        return CartChange(applied=False, gate=self._open_gate(product, requested))

    def remove_line(self, product_id: str) -> None:
        self._ensure_unblocked("remove line")
        self._lines = [line for line in self._lines if line.product_id != product_id]
        if self._overrides.pop(product_id, None) is not None:
            logger.info("stock_override_revoked", extra={"product_id": product_id})

    def reset(self) -> None:
        if self._gate is not None and self._gate.is_open:
            self._gate.cancel()
        self._gate = None
        self._lines.clear()
        self._overrides.clear()
        self._products.clear()
        self._known_stock.clear()
        self.payment_method = None
        self.customer = CustomerInfo()
        self.amount_received = None
        logger.info("cart_reset", extra={"user_id": self.operator.user_id})

    def select_payment_method(self, method: PaymentMethod | Mapping[str, Any]) -> None:
        self._ensure_unblocked("select payment method")
        self.payment_method = method if isinstance(method, PaymentMethod) else PaymentMethod.model_validate(method)
        if not self.is_cash_payment:
            self.amount_received = None

    def set_customer(self, name: str = "", tax_id: str = "", *, is_final_consumer: bool | None = None) -> None:
        self._ensure_unblocked("set customer")
        final_consumer = is_final_consumer if is_final_consumer is not None else not tax_id.strip()
        self.customer = CustomerInfo(
            name=name.strip(),
            tax_id="" if final_consumer else tax_id.strip(),
            is_final_consumer=final_consumer,
        )

    def set_amount_received(self, amount: Decimal | int | float | str | None) -> None:
        self._ensure_unblocked("set amount received")
        if amount is None:
            self.amount_received = None
            return
        try:
            value = to_money(amount, field="amount_received")
        except ValueError as exc:
            raise ClientValidationError([ValidationIssue(field="amount_received", reason=str(exc))]) from exc
        if value < 0:
            raise ClientValidationError([ValidationIssue(field="amount_received", reason="must be >= 0")])
        self.amount_received = value

    @property
    def is_cash_payment(self) -> bool:
        return self.payment_method is not None and self.payment_method.is_cash(self._cash_method_names)

    @property
    def change_due(self) -> Decimal | None:
        if not self.is_cash_payment or self.amount_received is None:
            return None
        return max(self.amount_received - self.cart_total, ZERO)

    def _within_stock(self, product_id: str, requested: int) -> bool:
        return self.is_authorized(product_id) or requested <= self.known_stock(product_id)

    def _first_line(self, product_id: str) -> CartLine | None:
        return next((line for line in self._lines if line.product_id == product_id), None)

    def _open_gate(self, product: Product, requested: int) -> StockAuthorizationGate:
        self._gate = StockAuthorizationGate(
            product=product,
            requested_quantity=requested,
            available_stock=self.known_stock(product.id),
            validator=self._validator,
            on_resolved=self._gate_resolved,
            operator=self.operator,
            telemetry=self._telemetry,
        )
        logger.info(
            "stock_gate_opened",
            extra={"product_id": product.id, "requested": requested, "available": self.known_stock(product.id)},
        )
        return self._gate

    def _gate_resolved(self, gate: StockAuthorizationGate) -> None:
        if gate is not self._gate:
            return
        self._gate = None
        if gate.state is not GateState.GRANTED or gate.authorization is None or gate.candidate_quantity is None:
            return
        product = gate.product
        # The approved quantity replaces every line for the product.
        self._lines = [line for line in self._lines if line.product_id != product.id] + [
            CartLine(
                product_id=product.id,
                name=product.name,
                unit_price=product.price,
                quantity=gate.candidate_quantity,
                stock_snapshot_at_add=self.known_stock(product.id),
            )
        ]
        self._overrides[product.id] = gate.authorization

    def _ensure_unblocked(self, action: str) -> None:
        if self._gate is not None and self._gate.is_open:
            raise GateBusyError("cart", self._gate.state.value, action)

    @staticmethod
    def _positive_quantity(value: object, field: str) -> int:
        try:
            quantity = to_quantity(value, field=field)
        except ValueError as exc:
            raise ClientValidationError([ValidationIssue(field=field, reason=str(exc))]) from exc
        if quantity <= 0:
            raise ClientValidationError([ValidationIssue(field=field, reason="must be greater than 0")])
        return quantity
