from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .money import to_money, to_quantity


def _text_id(value: object) -> object:
    return str(value) if isinstance(value, int) and not isinstance(value, bool) else value


class Product(BaseModel):
    """Deserializer for a catalog product (``GET /products/{id}`` or a catalog row).

    ``price`` and ``stock`` may arrive as numbers or numeric strings. A missing
    ``stock`` is 0, so an unknown stock level never lets a sale through unchecked.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    price: Decimal = Decimal("0.00")
    stock: int = 0
    barcode: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: object) -> object:
        return _text_id(value)

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, value: object) -> Decimal:
        return to_money(value, field="price")

    @field_validator("stock", mode="before")
    @classmethod
    def _stock(cls, value: object) -> int:
        return to_quantity(value, field="stock")


@dataclass
class CartLine:
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    stock_snapshot_at_add: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class StockOverrideAuthorization:
    product_id: str
    granted_by: str
    granted_at: datetime
    authorized: bool = True


class CustomerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    tax_id: str = ""
    is_final_consumer: bool = True


class SaleLineDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    unit_price: Decimal
    quantity: int = Field(gt=0)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class SaleDraft(BaseModel):
    """Immutable sale handed to the Sale Persistence collaborator."""

    model_config = ConfigDict(frozen=True)

    submission_id: str
    customer: CustomerInfo
    payment_method_id: int | str
    lines: tuple[SaleLineDraft, ...]
    computed_total: Decimal
    amount_received: Decimal | None = None
    change: Decimal | None = None
    authorized_override_product_ids: tuple[str, ...] = ()
    submitted_by: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "transaction_id": self.submission_id,
            "customer": self.customer.name,
            "customer_nit": self.customer.tax_id,
            "is_final_consumer": self.customer.is_final_consumer,
            "payment_method_id": self.payment_method_id,
            "status_id": 0,
            "items": [
                {"product_id": line.product_id, "price": str(line.unit_price), "qty": line.quantity}
                for line in self.lines
            ],
            "total": str(self.computed_total),
            "admin_authorized_products": list(self.authorized_override_product_ids),
        }
        if self.amount_received is not None:
            payload["amount_received"] = str(self.amount_received)
            payload["change"] = str(self.change if self.change is not None else Decimal("0.00"))
        return payload


class Sale(BaseModel):
    """Deserializer for the persisted sale returned by ``POST /sales``."""

    model_config = ConfigDict(extra="allow")

    id: str
    status: str | None = None
    total: Decimal | None = None
    created_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: object) -> object:
        return _text_id(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status_name(cls, value: object) -> object:
        if isinstance(value, dict):
            return value.get("name")
        return value

    @field_validator("total", mode="before")
    @classmethod
    def _total(cls, value: object) -> Decimal | None:
        return None if value is None else to_money(value, field="total")
