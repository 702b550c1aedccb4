from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
SDK_SRC = BASE_DIR / "src"
sys.path.insert(0, str(SDK_SRC))

from retail_pos_sdk.config import ClientConfig  # noqa: E402
from retail_pos_sdk.http_client import HttpClient  # noqa: E402
from retail_pos_sdk.models import AdminValidationResponse, OperatorIdentity  # noqa: E402
from retail_pos_sdk.models_sales import Product  # noqa: E402

BASE_URL = "https://api.example.com"


class FakeAdminValidator:
    def __init__(self, valid: bool = True, error: Exception | None = None) -> None:
        self.valid = valid
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def validate_admin(self, identity: str, credential: str) -> AdminValidationResponse:
        self.calls.append((identity, credential))
        if self.error is not None:
            raise self.error
        return AdminValidationResponse(valid=self.valid)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "RETAIL_POS_ENV",
        "RETAIL_POS_API_BASE_URL",
        "RETAIL_POS_API_BASE_URL_DEV",
        "RETAIL_POS_TELEMETRY_ENABLED",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(env_name="test", api_base_url=BASE_URL)


@pytest.fixture
def http(config: ClientConfig) -> HttpClient:
    return HttpClient(config=config)


@pytest.fixture
def operator() -> OperatorIdentity:
    return OperatorIdentity(user_id="user-1", name="Ana Cajera", access_token="token")


@pytest.fixture
def validator() -> FakeAdminValidator:
    return FakeAdminValidator()


def make_product(product_id: str = "p-1", price: str = "10.00", stock: int = 5, name: str | None = None) -> Product:
    return Product(id=product_id, name=name or f"Product {product_id}", price=Decimal(price), stock=stock)
