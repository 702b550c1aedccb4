from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from ..idempotency import SubmissionKeys, idempotency_headers
from ..models import PaymentMethod
from ..models_sales import Sale, SaleDraft
from .base import BaseClient


@dataclass
class SalesClient(BaseClient):
    def create_sale(self, draft: SaleDraft, keys: SubmissionKeys) -> Sale:
        data = self._request(
            "POST",
            "/sales",
            json_body=draft.to_payload(),
            headers=idempotency_headers(keys),
            module="sales",
            operation="create_sale",
        )
        return self._parse(data, Sale, "create sale")

    def list_payment_methods(self) -> list[PaymentMethod]:
        data = self._request(
            "GET",
            "/catalogs/payment-methods",
            module="sales",
            operation="list_payment_methods",
        )
        if not isinstance(data, list):
            raise self._bad_payload("payment methods", "expected a JSON array")
        try:
            return [PaymentMethod.model_validate(row) for row in data]
        except PydanticValidationError as exc:
            raise self._bad_payload("payment methods", str(exc)) from exc
