from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from .cart import CartSession
from .exceptions import (
    ClientValidationError,
    ConcurrencyError,
    StockShortage,
    StockShortageError,
    ValidationIssue,
)
from .idempotency import SubmissionKeys, resolve_submission_keys
from .models import OperatorIdentity
from .models_sales import Sale, SaleDraft, SaleLineDraft
from .money import ZERO
from .telemetry import NULL_TELEMETRY, TelemetryLogger

logger = logging.getLogger(__name__)


class StockReader(Protocol):
    def available_stock(self, product_id: str) -> int: ...


class SalePersistence(Protocol):
    def create_sale(self, draft: SaleDraft, keys: SubmissionKeys) -> Sale: ...


@dataclass(frozen=True)
class RequestedProduct:
    product_id: str
    name: str
    quantity: int


def validate_cart_fields(cart: CartSession) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if cart.is_empty:
        issues.append(ValidationIssue(field="lines", reason="cart has no lines"))
    if cart.payment_method is None:
        issues.append(ValidationIssue(field="payment_method", reason="a payment method is required"))
    elif cart.is_cash_payment and cart.amount_received is None:
        issues.append(ValidationIssue(field="amount_received", reason="amount_received is required for cash"))
    if not cart.customer.is_final_consumer and not cart.customer.tax_id:
        issues.append(ValidationIssue(field="customer.tax_id", reason="tax id is required unless final consumer"))
    return issues


def aggregate_requested(cart: CartSession) -> list[RequestedProduct]:
    totals: dict[str, RequestedProduct] = {}
    for line in cart.lines:
        current = totals.get(line.product_id)
        quantity = line.quantity + (current.quantity if current else 0)
        totals[line.product_id] = RequestedProduct(product_id=line.product_id, name=line.name, quantity=quantity)
    return list(totals.values())


def build_sale_draft(cart: CartSession, keys: SubmissionKeys, operator: OperatorIdentity) -> SaleDraft:
    if cart.payment_method is None:
        raise ClientValidationError([ValidationIssue(field="payment_method", reason="a payment method is required")])
    amount_received: Decimal | None = None
    change: Decimal | None = None
    if cart.is_cash_payment and cart.amount_received is not None:
        amount_received = cart.amount_received
        change = max(amount_received - cart.cart_total, ZERO)
    return SaleDraft(
        submission_id=keys.submission_id,
        customer=cart.customer,
        payment_method_id=cart.payment_method.id,
        lines=tuple(
            SaleLineDraft(
                product_id=line.product_id,
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
            )
            for line in cart.lines
        ),
        computed_total=cart.cart_total,
        amount_received=amount_received,
        change=change,
        authorized_override_product_ids=tuple(sorted(cart.authorized_product_ids)),
        submitted_by=operator.user_id,
    )


class SaleSubmissionValidator:
    """Final all-or-nothing check of a cart against live stock, then one persist call."""

    def __init__(
        self,
        *,
        inventory: StockReader,
        persistence: SalePersistence,
        telemetry: TelemetryLogger | None = None,
    ) -> None:
        self._inventory = inventory
        self._persistence = persistence
        self._telemetry = telemetry or NULL_TELEMETRY

    def submit(
        self,
        cart: CartSession,
        operator: OperatorIdentity,
        *,
        submission_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> Sale:
        if cart.pending_gate is not None and cart.pending_gate.is_open:
            raise ClientValidationError(
                [ValidationIssue(field="stock_authorization", reason="a stock authorization is still pending")]
            )
        issues = validate_cart_fields(cart)
        if issues:
            raise ClientValidationError(issues)

        self._check_stock(cart)

        keys = resolve_submission_keys(submission_id, idempotency_key)
        draft = build_sale_draft(cart, keys, operator)
        try:
            sale = self._persistence.create_sale(draft, keys)
        except Exception as exc:
            logger.warning(
                "sale_submission_failed",
                extra={"submission_id": keys.submission_id, "error": type(exc).__name__},
            )
            self._telemetry.record(
                "sale_submission",
                "sale_failed",
                actor_id=operator.user_id,
                success=False,
                error_code=getattr(exc, "code", type(exc).__name__),
                request_id=getattr(exc, "request_id", None),
                context={"submission_id": keys.submission_id},
            )
            raise

        cart.reset()
        logger.info(
            "sale_submitted",
            extra={"sale_id": sale.id, "submission_id": keys.submission_id, "total": str(draft.computed_total)},
        )
        self._telemetry.record(
            "sale_submission",
            "sale_submitted",
            actor_id=operator.user_id,
            success=True,
            context={
                "sale_id": sale.id,
                "submission_id": keys.submission_id,
                "total": str(draft.computed_total),
                "overrides": list(draft.authorized_override_product_ids),
            },
        )
        return sale

    def _check_stock(self, cart: CartSession) -> None:
        shortages: list[StockShortage] = []
        concurrent = False
        for item in aggregate_requested(cart):
            if cart.is_authorized(item.product_id):
                continue
            available = self._inventory.available_stock(item.product_id)
            if item.quantity <= available:
                continue
            shortages.append(
                StockShortage(
                    product_id=item.product_id,
                    product_name=item.name,
                    available=available,
                    requested=item.quantity,
                )
            )
            if item.quantity <= cart.known_stock(item.product_id):
                concurrent = True
        if not shortages:
            return
        logger.warning(
            "sale_stock_shortage",
            extra={"products": [shortage.product_id for shortage in shortages], "concurrent": concurrent},
        )
        if concurrent:
            raise ConcurrencyError(shortages)
        raise StockShortageError(shortages)
