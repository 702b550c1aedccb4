from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .money import to_money, to_quantity


class ClosureStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not ClosureStatus.PENDING


# Backend vocabulary has drifted between releases; every known spelling maps
# onto the three canonical states.
_INBOUND_STATUS = {
    "pendiente": ClosureStatus.PENDING,
    "pending": ClosureStatus.PENDING,
    "aprobado": ClosureStatus.APPROVED,
    "approved": ClosureStatus.APPROVED,
    "validado": ClosureStatus.APPROVED,
    "validated": ClosureStatus.APPROVED,
    "cerrado": ClosureStatus.APPROVED,
    "closed": ClosureStatus.APPROVED,
    "rechazado": ClosureStatus.REJECTED,
    "rejected": ClosureStatus.REJECTED,
}

WIRE_STATUS = {
    ClosureStatus.APPROVED: "Aprobado",
    ClosureStatus.REJECTED: "Rechazado",
}


def parse_closure_status(value: object) -> ClosureStatus:
    if isinstance(value, ClosureStatus):
        return value
    if isinstance(value, dict):
        value = value.get("name")
    if not isinstance(value, str):
        raise ValueError(f"closure status must be a string, got {value!r}")
    try:
        return _INBOUND_STATUS[value.strip().lower()]
    except KeyError as exc:
        raise ValueError(f"unknown closure status {value!r}") from exc


def _text_id(value: object) -> object:
    return str(value) if isinstance(value, int) and not isinstance(value, bool) else value


class NegativeStockProduct(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    current_stock: int = 0
    category: str | None = None
    supplier: str | None = None
    barcode: str | None = None
    status: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: object) -> object:
        return _text_id(value)

    @field_validator("current_stock", mode="before")
    @classmethod
    def _stock(cls, value: object) -> int:
        return to_quantity(value, field="current_stock")

    @field_validator("category", "supplier", "status", mode="before")
    @classmethod
    def _nested_name(cls, value: object) -> object:
        if isinstance(value, dict):
            return value.get("name")
        return value


class InventoryIntegrityReport(BaseModel):
    """Deserializer for ``GET /cash-closures/validate-stocks``.

    Fail-closed: ``valid`` defaults to False, so a body that does not positively
    confirm integrity blocks closure creation.
    """

    model_config = ConfigDict(extra="allow")

    valid: bool = False
    products: list[NegativeStockProduct] = Field(default_factory=list)
    negative_stock_count: int = 0

    @field_validator("valid", mode="before")
    @classmethod
    def _strict_true(cls, value: object) -> bool:
        return value is True

    @field_validator("negative_stock_count", mode="before")
    @classmethod
    def _count(cls, value: object) -> int:
        return to_quantity(value, field="negative_stock_count")

    @model_validator(mode="after")
    def _count_covers_products(self) -> "InventoryIntegrityReport":
        if self.negative_stock_count < len(self.products):
            self.negative_stock_count = len(self.products)
        return self

    @property
    def is_blocked(self) -> bool:
        return not self.valid or self.negative_stock_count > 0


class ClosurePeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _ordered(self) -> "ClosurePeriod":
        if self.end <= self.start:
            raise ValueError("period end must be after period start")
        return self


class TheoreticalPaymentLine(BaseModel):
    model_config = ConfigDict(extra="allow")

    payment_method_id: int | str
    payment_method_name: str = ""
    theoretical_amount: Decimal = Decimal("0.00")
    theoretical_count: int = 0

    @model_validator(mode="before")
    @classmethod
    def _name_from_nested(cls, data: object) -> object:
        if isinstance(data, dict) and not data.get("payment_method_name"):
            nested = data.get("payment_method")
            if isinstance(nested, dict) and nested.get("name"):
                data = {**data, "payment_method_name": nested["name"]}
        return data

    @field_validator("theoretical_amount", mode="before")
    @classmethod
    def _amount(cls, value: object) -> Decimal:
        return to_money(value, field="theoretical_amount")

    @field_validator("theoretical_count", mode="before")
    @classmethod
    def _count(cls, value: object) -> int:
        return to_quantity(value, field="theoretical_count")


class TheoreticalTotals(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_sales: Decimal = Decimal("0.00")
    total_returns: Decimal = Decimal("0.00")
    net_total: Decimal | None = None

    @field_validator("total_sales", "total_returns", mode="before")
    @classmethod
    def _money(cls, value: object) -> Decimal:
        return to_money(value)

    @field_validator("net_total", mode="before")
    @classmethod
    def _net(cls, value: object) -> Decimal | None:
        return None if value is None else to_money(value, field="net_total")

    @model_validator(mode="after")
    def _derive_net(self) -> "TheoreticalTotals":
        if self.net_total is None:
            self.net_total = self.total_sales - self.total_returns
        return self


class ClosureMetrics(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_transactions: int = 0
    total_customers: int = 0
    average_ticket: Decimal = Decimal("0.00")

    @field_validator("total_transactions", "total_customers", mode="before")
    @classmethod
    def _counts(cls, value: object) -> int:
        return to_quantity(value)

    @field_validator("average_ticket", mode="before")
    @classmethod
    def _ticket(cls, value: object) -> Decimal:
        return to_money(value, field="average_ticket")


class TheoreticalData(BaseModel):
    """Deserializer for ``GET /cash-closures/calculate-theoretical``.

    Missing numeric fields default to zero; a missing ``net_total`` is derived as
    sales minus returns.
    """

    model_config = ConfigDict(extra="allow")

    theoretical: TheoreticalTotals = Field(default_factory=TheoreticalTotals)
    metrics: ClosureMetrics = Field(default_factory=ClosureMetrics)
    payment_breakdown: list[TheoreticalPaymentLine] = Field(default_factory=list)

    @property
    def net_total(self) -> Decimal:
        return self.theoretical.net_total if self.theoretical.net_total is not None else Decimal("0.00")


class PaymentMethodBreakdown(BaseModel):
    model_config = ConfigDict(extra="allow")

    payment_method_id: int | str
    payment_method_name: str = ""
    theoretical_amount: Decimal = Decimal("0.00")
    theoretical_count: int = 0
    actual_amount: Decimal = Decimal("0.00")
    actual_count: int | None = None
    difference: Decimal = Decimal("0.00")
    notes: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _name_from_nested(cls, data: object) -> object:
        if isinstance(data, dict) and not data.get("payment_method_name"):
            nested = data.get("payment_method")
            if isinstance(nested, dict) and nested.get("name"):
                data = {**data, "payment_method_name": nested["name"]}
        return data

    @field_validator("theoretical_amount", "actual_amount", "difference", mode="before")
    @classmethod
    def _money(cls, value: object) -> Decimal:
        return to_money(value)

    @field_validator("theoretical_count", mode="before")
    @classmethod
    def _count(cls, value: object) -> int:
        return to_quantity(value, field="theoretical_count")

    @field_validator("actual_count", mode="before")
    @classmethod
    def _actual_count(cls, value: object) -> int | None:
        return None if value is None else to_quantity(value, field="actual_count")


_KIND_ALIASES = {"billete": "bill", "bill": "bill", "moneda": "coin", "coin": "coin"}


class Denomination(BaseModel):
    model_config = ConfigDict(extra="allow")

    face_value: Decimal
    kind: Literal["bill", "coin"]
    quantity: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _wire_names(cls, data: object) -> object:
        if isinstance(data, dict):
            data = dict(data)
            if "face_value" not in data and "denomination" in data:
                data["face_value"] = data["denomination"]
            if "kind" not in data and "type" in data:
                data["kind"] = data["type"]
        return data

    @field_validator("face_value", mode="before")
    @classmethod
    def _face_value(cls, value: object) -> Decimal:
        return to_money(value, field="face_value")

    @field_validator("kind", mode="before")
    @classmethod
    def _kind(cls, value: object) -> object:
        if isinstance(value, str):
            return _KIND_ALIASES.get(value.strip().lower(), value)
        return value

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: object) -> int:
        return to_quantity(value)

    @property
    def subtotal(self) -> Decimal:
        return self.face_value * self.quantity


def _bill(value: str) -> Denomination:
    return Denomination(face_value=Decimal(value), kind="bill")


def _coin(value: str) -> Denomination:
    return Denomination(face_value=Decimal(value), kind="coin")


QUETZAL_DENOMINATIONS: tuple[Denomination, ...] = (
    _bill("200"),
    _bill("100"),
    _bill("50"),
    _bill("20"),
    _bill("10"),
    _bill("5"),
    _bill("1"),
    _coin("0.50"),
    _coin("0.25"),
    _coin("0.10"),
    _coin("0.05"),
)


class CashClosure(BaseModel):
    """Deserializer for a persisted closure record.

    ``status`` is mapped onto ``ClosureStatus``; an unrecognized status fails
    validation instead of defaulting, so no transition runs on a record whose
    state is unknown.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    closure_number: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    cashier_name: str | None = None
    cashier_signature: str | None = None
    supervisor_name: str | None = None
    supervisor_signature: str | None = None
    supervisor_validated_at: datetime | None = None
    rejection_reason: str | None = None
    theoretical_total: Decimal = Decimal("0.00")
    theoretical_sales: Decimal = Decimal("0.00")
    theoretical_returns: Decimal = Decimal("0.00")
    actual_total: Decimal = Decimal("0.00")
    difference: Decimal = Decimal("0.00")
    difference_percentage: Decimal = Decimal("0.00")
    total_transactions: int = 0
    total_customers: int = 0
    average_ticket: Decimal = Decimal("0.00")
    notes: str | None = None
    status: ClosureStatus
    payment_breakdowns: list[PaymentMethodBreakdown] = Field(default_factory=list)
    denominations: list[Denomination] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: object) -> object:
        return _text_id(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: object) -> ClosureStatus:
        return parse_closure_status(value)

    @field_validator(
        "theoretical_total",
        "theoretical_sales",
        "theoretical_returns",
        "actual_total",
        "difference",
        "difference_percentage",
        "average_ticket",
        mode="before",
    )
    @classmethod
    def _money(cls, value: object) -> Decimal:
        return to_money(value)

    @field_validator("total_transactions", "total_customers", mode="before")
    @classmethod
    def _counts(cls, value: object) -> int:
        return to_quantity(value)

    @field_validator("closure_number", mode="before")
    @classmethod
    def _closure_number(cls, value: object) -> int | None:
        return None if value is None else to_quantity(value, field="closure_number")


class ClosureListResponse(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    items: list[CashClosure] = Field(default_factory=list)
    page: int = 1
    total_pages: int = Field(default=1, alias="totalPages")
