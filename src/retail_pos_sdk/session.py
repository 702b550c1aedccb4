from __future__ import annotations

from dataclasses import dataclass

from .cart import CartSession
from .clients.auth_client import AuthValidationClient, RolePermissionClient
from .clients.closures_client import ClosuresClient
from .clients.inventory_client import InventoryClient
from .clients.sales_client import SalesClient
from .closure_approval import ClosureApproval
from .closure_calculator import CashClosureCalculator
from .config import ClientConfig
from .http_client import HttpClient
from .models import OperatorIdentity
from .models_closures import CashClosure
from .sale_submission import SaleSubmissionValidator
from .telemetry import TelemetryLogger


@dataclass
class ApiSession:
    """Wires the HTTP collaborators into the core components for one operator."""

    config: ClientConfig
    identity: OperatorIdentity
    telemetry: TelemetryLogger | None = None
    http: HttpClient | None = None

    def __post_init__(self) -> None:
        self.telemetry = self.telemetry or TelemetryLogger()
        self.http = self.http or HttpClient(config=self.config)

    @property
    def token(self) -> str | None:
        return self.identity.access_token

    def auth_client(self) -> AuthValidationClient:
        return AuthValidationClient(http=self.http, access_token=self.token)

    def role_client(self) -> RolePermissionClient:
        return RolePermissionClient(
            http=self.http,
            access_token=self.token,
            seller_role_names=self.config.seller_role_names,
        )

    def inventory_client(self) -> InventoryClient:
        return InventoryClient(http=self.http, access_token=self.token)

    def sales_client(self) -> SalesClient:
        return SalesClient(http=self.http, access_token=self.token)

    def closures_client(self) -> ClosuresClient:
        return ClosuresClient(http=self.http, access_token=self.token)

    def new_cart(self) -> CartSession:
        return CartSession(
            operator=self.identity,
            validator=self.auth_client(),
            cash_method_names=self.config.cash_method_names,
            telemetry=self.telemetry,
        )

    def submission_validator(self) -> SaleSubmissionValidator:
        return SaleSubmissionValidator(
            inventory=self.inventory_client(),
            persistence=self.sales_client(),
            telemetry=self.telemetry,
        )

    def closure_calculator(self) -> CashClosureCalculator:
        return CashClosureCalculator(
            inventory=self.inventory_client(),
            closures=self.closures_client(),
            cash_method_names=self.config.cash_method_names,
            telemetry=self.telemetry,
        )

    def closure_approval(self, closure: CashClosure) -> ClosureApproval:
        return ClosureApproval(
            closure,
            writer=self.closures_client(),
            roles=self.role_client(),
            telemetry=self.telemetry,
        )

    def is_seller(self) -> bool:
        return not self.role_client().is_non_seller(self.identity)
