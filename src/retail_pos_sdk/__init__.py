from .cart import CartChange, CartSession
from .closure_approval import ClosureActionAvailability, ClosureApproval, closure_action_availability
from .closure_calculator import (
    CashClosureCalculator,
    ClosureTotals,
    ClosureWorksheet,
    compute_closure_totals,
    default_period,
)
from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    AdminAuthorizationError,
    ApiError,
    AuthorizationError,
    ClientValidationError,
    ConcurrencyError,
    ForbiddenError,
    GateBusyError,
    IntegrityError,
    InvalidTransitionError,
    NegativeStockBlockedError,
    NetworkError,
    NotFoundError,
    RoleRequiredError,
    StockShortage,
    StockShortageError,
    UnauthorizedError,
    ValidationError,
    ValidationIssue,
)
from .http_client import HttpClient
from .logging_setup import configure_logging
from .models import OperatorIdentity, PaymentMethod
from .models_closures import CashClosure, ClosurePeriod, ClosureStatus, Denomination
from .models_sales import Product, Sale, SaleDraft
from .operator_messages import OperatorMessage, to_operator_message
from .sale_submission import SaleSubmissionValidator
from .session import ApiSession
from .stock_gate import GateState, StockAuthorizationGate
from .telemetry import TelemetryLogger

__all__ = [
    "AdminAuthorizationError",
    "ApiError",
    "ApiSession",
    "AuthorizationError",
    "CartChange",
    "CartSession",
    "CashClosure",
    "CashClosureCalculator",
    "ClientConfig",
    "ClientValidationError",
    "ClosureActionAvailability",
    "ClosureApproval",
    "ClosurePeriod",
    "ClosureStatus",
    "ClosureTotals",
    "ClosureWorksheet",
    "ConcurrencyError",
    "ConfigError",
    "Denomination",
    "ForbiddenError",
    "GateBusyError",
    "GateState",
    "HttpClient",
    "IntegrityError",
    "InvalidTransitionError",
    "NegativeStockBlockedError",
    "NetworkError",
    "NotFoundError",
    "OperatorIdentity",
    "OperatorMessage",
    "PaymentMethod",
    "Product",
    "RoleRequiredError",
    "Sale",
    "SaleDraft",
    "SaleSubmissionValidator",
    "StockAuthorizationGate",
    "StockShortage",
    "StockShortageError",
    "TelemetryLogger",
    "UnauthorizedError",
    "ValidationError",
    "ValidationIssue",
    "closure_action_availability",
    "compute_closure_totals",
    "configure_logging",
    "default_period",
    "load_config",
    "to_operator_message",
]
