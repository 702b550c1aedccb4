from .auth_client import AuthValidationClient, RolePermissionClient
from .closures_client import ClosuresClient
from .inventory_client import InventoryClient
from .sales_client import SalesClient

__all__ = [
    "AuthValidationClient",
    "ClosuresClient",
    "InventoryClient",
    "RolePermissionClient",
    "SalesClient",
]
