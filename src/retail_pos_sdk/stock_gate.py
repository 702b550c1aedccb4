from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Protocol

from .exceptions import (
    AdminAuthorizationError,
    ClientValidationError,
    InvalidTransitionError,
    ValidationIssue,
)
from .models import AdminValidationResponse, OperatorIdentity
from .models_sales import Product, StockOverrideAuthorization
from .money import to_quantity
from .telemetry import NULL_TELEMETRY, TelemetryLogger

logger = logging.getLogger(__name__)


class AdminCredentialValidator(Protocol):
    def validate_admin(self, identity: str, credential: str) -> AdminValidationResponse: ...


class GateState(str, Enum):
    AVAILABILITY_CONFIRM = "AVAILABILITY_CONFIRM"
    ADMIN_AUTHORIZE = "ADMIN_AUTHORIZE"
    GRANTED = "GRANTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_open(self) -> bool:
        return self in {GateState.AVAILABILITY_CONFIRM, GateState.ADMIN_AUTHORIZE}


class StockAuthorizationGate:
    """Two-step exception flow that lets a sale exceed recorded stock.

    AVAILABILITY_CONFIRM asks how many extra physical units exist, then
    ADMIN_AUTHORIZE checks an administrator credential. The gate ends in
    GRANTED, REJECTED or CANCELLED and reports the outcome once through
    ``on_resolved``; only a GRANTED gate carries an authorization.
    """

    def __init__(
        self,
        *,
        product: Product,
        requested_quantity: int,
        available_stock: int,
        validator: AdminCredentialValidator,
        on_resolved: Callable[[StockAuthorizationGate], None],
        operator: OperatorIdentity | None = None,
        telemetry: TelemetryLogger | None = None,
    ) -> None:
        if requested_quantity <= available_stock:
            raise ValueError("a stock gate only opens when the request exceeds available stock")
        self.product = product
        self.requested_quantity = requested_quantity
        self.available_stock = available_stock
        self.candidate_quantity: int | None = None
        self.authorization: StockOverrideAuthorization | None = None
        self.state = GateState.AVAILABILITY_CONFIRM
        self._validator = validator
        self._on_resolved = on_resolved
        self._operator = operator
        self._telemetry = telemetry or NULL_TELEMETRY

    @property
    def shortfall(self) -> int:
        return self.requested_quantity - self.available_stock

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    def confirm_availability(self, additional: int | str) -> int:
        self._require(GateState.AVAILABILITY_CONFIRM, "confirm availability")
        try:
            extra = to_quantity(additional, field="additional")
        except ValueError:
            extra = 0
        if extra <= 0:
            raise ClientValidationError(
                [ValidationIssue(field="additional", reason="must be a whole number greater than 0")]
            )
        candidate = self.available_stock + extra
        if candidate <= 0:
            raise ClientValidationError(
                [ValidationIssue(field="additional", reason=f"must exceed {-self.available_stock} to leave a positive quantity")]
            )
        self.candidate_quantity = candidate
        self.state = GateState.ADMIN_AUTHORIZE
        logger.info(
            "stock_gate_availability_confirmed",
            extra={
                "product_id": self.product.id,
                "shortfall": self.shortfall,
                "candidate_quantity": self.candidate_quantity,
            },
        )
        return self.candidate_quantity

    def authorize(self, identity: str, credential: str) -> StockOverrideAuthorization:
        self._require(GateState.ADMIN_AUTHORIZE, "authorize")
        issues: list[ValidationIssue] = []
        if not identity or not identity.strip():
            issues.append(ValidationIssue(field="identity", reason="is required"))
        if not credential or not credential.strip():
            issues.append(ValidationIssue(field="credential", reason="is required"))
        if issues:
            raise ClientValidationError(issues)

        try:
            result = self._validator.validate_admin(identity, credential)
        except Exception as exc:
            self._reject(identity, error_code=getattr(exc, "code", type(exc).__name__))
            raise AdminAuthorizationError("Could not validate administrator credentials", cause=exc) from exc
        if not result.valid:
            self._reject(identity, error_code="INVALID_CREDENTIALS")
            raise AdminAuthorizationError("Invalid administrator credentials")

        self.authorization = StockOverrideAuthorization(
            product_id=self.product.id,
            granted_by=identity,
            granted_at=datetime.now(timezone.utc),
        )
        self.state = GateState.GRANTED
        self._on_resolved(self)
        logger.info(
            "stock_override_granted",
            extra={"product_id": self.product.id, "granted_by": identity, "quantity": self.candidate_quantity},
        )
        self._telemetry.record(
            "stock_override",
            "override_granted",
            actor_id=self._operator.user_id if self._operator else None,
            success=True,
            context={
                "product_id": self.product.id,
                "granted_by": identity,
                "available": self.available_stock,
                "quantity": self.candidate_quantity,
            },
        )
        return self.authorization

    def cancel(self) -> None:
        if not self.is_open:
            raise InvalidTransitionError("stock_gate", self.state.value, "cancel")
        self.state = GateState.CANCELLED
        logger.info("stock_gate_cancelled", extra={"product_id": self.product.id})
        self._on_resolved(self)

    def _reject(self, identity: str, *, error_code: str) -> None:
        self.state = GateState.REJECTED
        self._on_resolved(self)
        logger.warning(
            "stock_override_rejected",
            extra={"product_id": self.product.id, "identity": identity, "error_code": error_code},
        )
        self._telemetry.record(
            "stock_override",
            "override_rejected",
            actor_id=self._operator.user_id if self._operator else None,
            success=False,
            error_code=error_code,
            context={"product_id": self.product.id},
        )

    def _require(self, expected: GateState, action: str) -> None:
        if self.state is not expected:
            raise InvalidTransitionError("stock_gate", self.state.value, action)

