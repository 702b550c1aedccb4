from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..idempotency import SubmissionKeys, idempotency_headers
from ..models_closures import (
    WIRE_STATUS,
    CashClosure,
    ClosureListResponse,
    ClosurePeriod,
    ClosureStatus,
    TheoreticalData,
)
from .base import BaseClient

_PERIOD_FORMAT = "%Y-%m-%dT%H:%M:%S"


@dataclass
class ClosuresClient(BaseClient):
    """Sales aggregation and closure persistence endpoints."""

    def calculate_theoretical(self, period: ClosurePeriod) -> TheoreticalData:
        params = {
            "start_date": period.start.strftime(_PERIOD_FORMAT),
            "end_date": period.end.strftime(_PERIOD_FORMAT),
        }
        data = self._request(
            "GET",
            "/cash-closures/calculate-theoretical",
            params=params,
            module="closures",
            operation="calculate_theoretical",
        )
        return self._parse(data, TheoreticalData, "theoretical totals")

    def create_closure(self, payload: dict[str, Any], keys: SubmissionKeys) -> CashClosure:
        data = self._request(
            "POST",
            "/cash-closures",
            json_body=payload,
            headers=idempotency_headers(keys),
            module="closures",
            operation="create_closure",
        )
        return self._parse(data, CashClosure, "create closure")

    def list_closures(self, *, page: int = 1, page_size: int = 10) -> ClosureListResponse:
        data = self._request(
            "GET",
            "/cash-closures",
            params={"page": page, "pageSize": page_size},
            module="closures",
            operation="list_closures",
        )
        return self._parse(data, ClosureListResponse, "closure list")

    def get_closure(self, closure_id: str) -> CashClosure:
        data = self._request(
            "GET",
            f"/cash-closures/{closure_id}",
            module="closures",
            operation="get_closure",
        )
        return self._parse(data, CashClosure, "closure detail")

    def patch_status(
        self,
        closure_id: str,
        status: ClosureStatus,
        *,
        supervisor_name: str | None = None,
        supervisor_signature: str | None = None,
        rejection_reason: str | None = None,
    ) -> CashClosure:
        body: dict[str, Any] = {"status": WIRE_STATUS[status]}
        if supervisor_name is not None:
            body["supervisor_name"] = supervisor_name
        if supervisor_signature is not None:
            body["supervisor_signature"] = supervisor_signature
        if rejection_reason is not None:
            body["rejection_reason"] = rejection_reason
        data = self._request(
            "PATCH",
            f"/cash-closures/{closure_id}/status",
            json_body=body,
            module="closures",
            operation="patch_status",
        )
        return self._parse(data, CashClosure, "closure status")

