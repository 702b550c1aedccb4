from __future__ import annotations

from dataclasses import dataclass

from ..models_closures import InventoryIntegrityReport
from ..models_sales import Product
from .base import BaseClient


@dataclass
class InventoryClient(BaseClient):
    def validate_stock_integrity(self) -> InventoryIntegrityReport:
        data = self._request(
            "GET",
            "/cash-closures/validate-stocks",
            module="inventory",
            operation="validate_stocks",
        )
        return self._parse(data, InventoryIntegrityReport, "stock integrity")

    def get_product(self, product_id: str) -> Product:
        data = self._request(
            "GET",
            f"/products/{product_id}",
            module="inventory",
            operation="get_product",
        )
        return self._parse(data, Product, "product")

    def available_stock(self, product_id: str) -> int:
        return self.get_product(product_id).stock
