from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import (
    ApiError,
    AuthorizationError,
    ClientValidationError,
    ConcurrencyError,
    InvalidTransitionError,
    NegativeStockBlockedError,
    NetworkError,
    StockShortage,
    StockShortageError,
)


@dataclass(frozen=True)
class OperatorMessage:
    title: str
    lines: list[str] = field(default_factory=list)
    request_id: str | None = None

    @property
    def technical_details(self) -> str | None:
        if self.request_id:
            return f"request_id={self.request_id}"
        return None


def to_operator_message(exc: Exception) -> OperatorMessage:
    if isinstance(exc, ConcurrencyError):
        return OperatorMessage(
            title="Stock changed while the sale was open",
            lines=[_shortage_line(shortage) for shortage in exc.shortages],
        )
    if isinstance(exc, StockShortageError):
        return OperatorMessage(
            title="Not enough stock",
            lines=[_shortage_line(shortage) for shortage in exc.shortages],
        )
    if isinstance(exc, ClientValidationError):
        return OperatorMessage(
            title="Check the highlighted fields",
            lines=[f"{issue.field}: {issue.reason}" for issue in exc.issues],
        )
    if isinstance(exc, NegativeStockBlockedError):
        return OperatorMessage(
            title=f"Fix {exc.negative_stock_count} product(s) with negative stock before closing",
            lines=[f"{product.name or product.id}: stock {product.current_stock}" for product in exc.products],
        )
    if isinstance(exc, AuthorizationError):
        return OperatorMessage(title=exc.message)
    if isinstance(exc, InvalidTransitionError):
        return OperatorMessage(title=f"Cannot {exc.action} right now", lines=[f"current state: {exc.state}"])
    if isinstance(exc, NetworkError):
        return OperatorMessage(
            title="Could not reach the server",
            lines=["Check the connection, then reload before trying again."],
            request_id=exc.request_id,
        )
    if isinstance(exc, ApiError):
        primary = exc.message.strip() or "Request failed"
        lines = [f"{exc.code} (HTTP {exc.status_code})"]
        if exc.details:
            lines.append(str(exc.details))
        return OperatorMessage(title=primary, lines=lines, request_id=exc.request_id)
    return OperatorMessage(title=str(exc) or type(exc).__name__)


def _shortage_line(shortage: StockShortage) -> str:
    return f"{shortage.product_name}: available {shortage.available}, requested {shortage.requested}"
