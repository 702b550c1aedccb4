from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .models_closures import NegativeStockProduct


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    request_id: str | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        request = f" request_id={self.request_id}" if self.request_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{request}"


class UnauthorizedError(ApiError):
    pass


class ForbiddenError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class AuthError(UnauthorizedError):
    """Authentication failed or the bearer token is no longer valid."""


class ConflictError(ApiError):
    """409 or conflict-style errors."""


class RateLimitError(ApiError):
    """429 throttling error."""


class ServerError(ApiError):
    """5xx server-side failures."""


class NetworkError(ApiError):
    """Transport failure or timeout before an HTTP response was returned."""


class DeserializationError(ApiError):
    """The backend answered 2xx but the payload failed validation."""


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    reason: str


class ClientValidationError(ValueError):
    """Local validation failure detected before any network call."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.issues:
            return "Validation failed"
        return "; ".join(f"{issue.field}: {issue.reason}" for issue in self.issues)


@dataclass(frozen=True)
class StockShortage:
    product_id: str
    product_name: str
    available: int
    requested: int

    @property
    def missing(self) -> int:
        return self.requested - self.available


class StockShortageError(ClientValidationError):
    """Aggregate requested quantity exceeds live stock for one or more products."""

    def __init__(self, shortages: Sequence[StockShortage]) -> None:
        self.shortages = list(shortages)
        super().__init__(
            [
                ValidationIssue(
                    field=f"stock[{shortage.product_id}]",
                    reason=(
                        f"{shortage.product_name}: available {shortage.available}, "
                        f"requested {shortage.requested}"
                    ),
                )
                for shortage in self.shortages
            ]
        )


class ConcurrencyError(StockShortageError):
    """Stock passed the cart-time check but was insufficient at final submission."""


class AuthorizationError(Exception):
    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class AdminAuthorizationError(AuthorizationError):
    """Administrator credential was not accepted for a stock override."""


class RoleRequiredError(AuthorizationError):
    """The acting identity may not review cash closures."""


class IntegrityError(RuntimeError):
    pass


@dataclass
class NegativeStockBlockedError(IntegrityError):
    products: list[NegativeStockProduct] = field(default_factory=list)
    negative_stock_count: int = 0

    def __post_init__(self) -> None:
        if not self.negative_stock_count:
            self.negative_stock_count = len(self.products)
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Closure blocked: {self.negative_stock_count} product(s) with negative stock"


class InvalidTransitionError(ValueError):
    def __init__(self, machine: str, state: str, action: str) -> None:
        self.machine = machine
        self.state = state
        self.action = action
        super().__init__(f"{machine}: cannot {action} while {state}")


class GateBusyError(InvalidTransitionError):
    """A stock authorization is pending; the cart is blocked until it resolves."""
