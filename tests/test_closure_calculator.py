from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

import pytest

from retail_pos_sdk.closure_calculator import (
    REVIEWER_PAGE_SIZE,
    SELLER_PAGE_SIZE,
    CashClosureCalculator,
    compute_closure_totals,
    default_period,
)
from retail_pos_sdk.exceptions import ClientValidationError, IntegrityError, NegativeStockBlockedError
from retail_pos_sdk.idempotency import SubmissionKeys
from retail_pos_sdk.models_closures import (
    CashClosure,
    ClosureListResponse,
    ClosurePeriod,
    InventoryIntegrityReport,
    TheoreticalData,
)

CLEAN = {"valid": True, "products": [], "negative_stock_count": 0}
BLOCKED = {
    "valid": False,
    "products": [
        {"id": 1, "name": "Cable HDMI", "current_stock": -2},
        {"id": 2, "name": "Mouse", "current_stock": -1},
    ],
    "negative_stock_count": 2,
}
THEORETICAL = {
    "theoretical": {"total_sales": "1050.00", "total_returns": "50.00", "net_total": "1000.00"},
    "metrics": {"total_transactions": 20, "total_customers": 18, "average_ticket": "50.00"},
    "payment_breakdown": [
        {"payment_method_id": 1, "payment_method_name": "Efectivo", "theoretical_amount": "600.00", "theoretical_count": 12},
        {"payment_method_id": 2, "payment_method_name": "Tarjeta", "theoretical_amount": "400.00", "theoretical_count": 8},
    ],
}


class FakeInventory:
    def __init__(self, *reports: dict) -> None:
        self.reports = list(reports)
        self.calls = 0

    def validate_stock_integrity(self) -> InventoryIntegrityReport:
        report = self.reports[min(self.calls, len(self.reports) - 1)]
        self.calls += 1
        return InventoryIntegrityReport.model_validate(report)


class FakeClosures:
    def __init__(self, theoretical: dict | None = None) -> None:
        self.theoretical = theoretical if theoretical is not None else THEORETICAL
        self.periods: list[ClosurePeriod] = []
        self.created: list[dict[str, Any]] = []
        self.listed: list[tuple[int, int]] = []

    def calculate_theoretical(self, period: ClosurePeriod) -> TheoreticalData:
        self.periods.append(period)
        return TheoreticalData.model_validate(self.theoretical)

    def create_closure(self, payload: dict[str, Any], keys: SubmissionKeys) -> CashClosure:
        self.created.append(payload)
        return CashClosure.model_validate({"id": "c-1", "closure_number": 1, "status": "Pendiente"})

    def list_closures(self, *, page: int = 1, page_size: int = 10) -> ClosureListResponse:
        self.listed.append((page, page_size))
        return ClosureListResponse.model_validate({"items": [], "page": page, "totalPages": 1})

    def get_closure(self, closure_id: str) -> CashClosure:
        return CashClosure.model_validate({"id": closure_id, "status": "Aprobado"})


PERIOD = ClosurePeriod(start=datetime(2024, 3, 1, 0, 0, 0), end=datetime(2024, 3, 1, 23, 59, 59))


def _calculator(inventory: FakeInventory | None = None, closures: FakeClosures | None = None) -> CashClosureCalculator:
    return CashClosureCalculator(inventory=inventory or FakeInventory(CLEAN), closures=closures or FakeClosures())


def test_difference_scenario() -> None:
    totals = compute_closure_totals(Decimal("1000.00"), [Decimal("550.00"), Decimal("400.00")])
    assert totals.actual_total == Decimal("950.00")
    assert totals.total_difference == Decimal("-50.00")
    assert totals.difference_percentage == Decimal("-5.00")


def test_zero_theoretical_has_zero_percentage() -> None:
    totals = compute_closure_totals(Decimal("0.00"), [Decimal("25.00")])
    assert totals.total_difference == Decimal("25.00")
    assert totals.difference_percentage == Decimal("0.00")


def test_negative_stock_blocks_start(operator) -> None:
    closures = FakeClosures()
    calculator = _calculator(FakeInventory(BLOCKED), closures)
    with pytest.raises(NegativeStockBlockedError) as exc:
        calculator.start(operator, PERIOD)
    assert isinstance(exc.value, IntegrityError)
    assert exc.value.negative_stock_count == 2
    assert [product.name for product in exc.value.products] == ["Cable HDMI", "Mouse"]
    assert closures.periods == []
    assert closures.created == []


def test_unconfirmed_integrity_blocks() -> None:
    calculator = _calculator(FakeInventory({}))
    with pytest.raises(NegativeStockBlockedError):
        calculator.check_inventory_integrity()


def test_worksheet_actuals_and_differences(operator) -> None:
    worksheet = _calculator().start(operator, PERIOD)
    assert worksheet.cashier_name == "Ana Cajera"
    assert worksheet.theoretical_net_total == Decimal("1000.00")

    entry = worksheet.enter_actual(1, "550", count=11, notes="  faltante  ")
    worksheet.enter_actual("2", 400)
    assert entry.difference == Decimal("-50.00")
    assert entry.notes == "faltante"
    assert worksheet.actual_total == Decimal("950.00")
    assert worksheet.total_difference == Decimal("-50.00")
    assert worksheet.difference_percentage == Decimal("-5.00")


@pytest.mark.parametrize("amount", ["-1", "abc"])
def test_enter_actual_rejects_bad_amount(operator, amount: str) -> None:
    worksheet = _calculator().start(operator, PERIOD)
    with pytest.raises(ClientValidationError):
        worksheet.enter_actual(1, amount)
    assert worksheet.entry(1).actual_amount == Decimal("0.00")


def test_enter_actual_unknown_method(operator) -> None:
    worksheet = _calculator().start(operator, PERIOD)
    with pytest.raises(ClientValidationError):
        worksheet.enter_actual(99, "1")


def test_denomination_tally_is_informational(operator) -> None:
    worksheet = _calculator().start(operator, PERIOD)
    worksheet.set_denomination(100, 3)
    worksheet.set_denomination("1", 5, kind="bill")
    assert worksheet.cash_counted_total == Decimal("305.00")
    worksheet.enter_actual(1, "600")
    assert worksheet.cash_count_variance == Decimal("-295.00")
    assert worksheet.actual_total == Decimal("600.00")


def test_set_denomination_validation(operator) -> None:
    worksheet = _calculator().start(operator, PERIOD)
    with pytest.raises(ClientValidationError):
        worksheet.set_denomination(100, -1)
    with pytest.raises(ClientValidationError):
        worksheet.set_denomination(3, 1)


def test_create_payload_shape(operator) -> None:
    closures = FakeClosures()
    calculator = _calculator(closures=closures)
    worksheet = calculator.start(operator, PERIOD)
    worksheet.enter_actual(1, "550")
    worksheet.enter_actual(2, "400")
    worksheet.set_denomination("0.25", 4)
    worksheet.notes = "   "

    closure = calculator.create_closure(worksheet, operator)

    assert closure.id == "c-1"
    payload = closures.created[0]
    assert payload["startDate"] == "2024-03-01T00:00:00"
    assert payload["endDate"] == "2024-03-01T23:59:59"
    assert payload["cashierName"] == "Ana Cajera"
    assert payload["theoreticalTotal"] == "1000.00"
    assert payload["theoreticalSales"] == "1050.00"
    assert payload["theoreticalReturns"] == "50.00"
    assert payload["actualTotal"] == "950.00"
    assert payload["totalTransactions"] == 20
    assert payload["averageTicket"] == "50.00"
    assert payload["notes"] is None
    assert payload["paymentBreakdowns"][0]["difference"] == "-50.00"
    assert payload["denominations"] == [
        {"denomination": "0.25", "type": "Moneda", "quantity": 4, "subtotal": "1.00"}
    ]


def test_create_rechecks_integrity_before_post(operator) -> None:
    inventory = FakeInventory(CLEAN, BLOCKED)
    closures = FakeClosures()
    calculator = _calculator(inventory, closures)
    worksheet = calculator.start(operator, PERIOD)
    with pytest.raises(NegativeStockBlockedError):
        calculator.create_closure(worksheet, operator)
    assert inventory.calls == 2
    assert closures.created == []


def test_start_defaults_to_today(operator) -> None:
    closures = FakeClosures()
    _calculator(closures=closures).start(operator)
    period = closures.periods[0]
    assert period.start.time().isoformat() == "00:00:00"
    assert period.end.time().isoformat() == "23:59:59"
    assert period.start.date() == period.end.date()


def test_default_period_for_given_day() -> None:
    period = default_period(datetime(2024, 5, 17, 15, 30))
    assert period.start == datetime(2024, 5, 17, 0, 0, 0)
    assert period.end == datetime(2024, 5, 17, 23, 59, 59)


def test_list_page_size_by_role() -> None:
    closures = FakeClosures()
    calculator = _calculator(closures=closures)
    calculator.list_closures(is_seller=True)
    calculator.list_closures(page=2)
    assert closures.listed == [(1, SELLER_PAGE_SIZE), (2, REVIEWER_PAGE_SIZE)]
    assert calculator.get_closure("c-9").id == "c-9"
