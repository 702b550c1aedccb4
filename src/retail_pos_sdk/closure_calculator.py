from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from decimal import Decimal
from typing import Any, Iterable, Protocol, Sequence

from .exceptions import ClientValidationError, NegativeStockBlockedError, ValidationIssue
from .idempotency import SubmissionKeys, resolve_submission_keys
from .models import OperatorIdentity
from .models_closures import (
    QUETZAL_DENOMINATIONS,
    CashClosure,
    ClosureListResponse,
    ClosurePeriod,
    Denomination,
    InventoryIntegrityReport,
    TheoreticalData,
)
from .money import ZERO, percentage, to_money, to_quantity
from .telemetry import NULL_TELEMETRY, TelemetryLogger

logger = logging.getLogger(__name__)

SELLER_PAGE_SIZE = 1
REVIEWER_PAGE_SIZE = 10

_WIRE_KIND = {"bill": "Billete", "coin": "Moneda"}


class IntegrityChecker(Protocol):
    def validate_stock_integrity(self) -> InventoryIntegrityReport: ...


class ClosureStore(Protocol):
    def calculate_theoretical(self, period: ClosurePeriod) -> TheoreticalData: ...

    def create_closure(self, payload: dict[str, Any], keys: SubmissionKeys) -> CashClosure: ...

    def list_closures(self, *, page: int = 1, page_size: int = 10) -> ClosureListResponse: ...

    def get_closure(self, closure_id: str) -> CashClosure: ...


@dataclass(frozen=True)
class ClosureTotals:
    theoretical_net_total: Decimal
    actual_total: Decimal
    total_difference: Decimal
    difference_percentage: Decimal


def compute_closure_totals(theoretical_net_total: Decimal, actual_amounts: Iterable[Decimal]) -> ClosureTotals:
    actual_total = sum(actual_amounts, ZERO)
    total_difference = actual_total - theoretical_net_total
    return ClosureTotals(
        theoretical_net_total=theoretical_net_total,
        actual_total=actual_total,
        total_difference=total_difference,
        difference_percentage=percentage(total_difference, theoretical_net_total),
    )


def default_period(now: datetime | None = None) -> ClosurePeriod:
    today = (now or datetime.now()).date()
    return ClosurePeriod(
        start=datetime.combine(today, time(0, 0, 0)),
        end=datetime.combine(today, time(23, 59, 59)),
    )


@dataclass
class BreakdownEntry:
    payment_method_id: int | str
    payment_method_name: str
    theoretical_amount: Decimal
    theoretical_count: int
    actual_amount: Decimal = ZERO
    actual_count: int | None = None
    notes: str | None = None

    @property
    def difference(self) -> Decimal:
        return self.actual_amount - self.theoretical_amount

    def to_payload(self) -> dict[str, Any]:
        return {
            "payment_method_id": self.payment_method_id,
            "payment_method_name": self.payment_method_name,
            "theoretical_amount": str(self.theoretical_amount),
            "theoretical_count": self.theoretical_count,
            "actual_amount": str(self.actual_amount),
            "actual_count": self.actual_count,
            "difference": str(self.difference),
            "notes": self.notes,
        }


@dataclass
class ClosureWorksheet:
    """Operator-entered side of a closure for one period.

    Theoretical figures are fixed when the worksheet is started; actual amounts
    and the denomination count are filled in afterwards. All totals are derived
    on read.
    """

    period: ClosurePeriod
    theoretical: TheoreticalData
    cashier_name: str
    breakdowns: list[BreakdownEntry]
    denominations: list[Denomination]
    cash_method_ids: frozenset[str] = field(default_factory=frozenset)
    notes: str = ""

    @property
    def theoretical_net_total(self) -> Decimal:
        return self.theoretical.net_total

    @property
    def totals(self) -> ClosureTotals:
        return compute_closure_totals(
            self.theoretical_net_total,
            (entry.actual_amount for entry in self.breakdowns),
        )

    @property
    def actual_total(self) -> Decimal:
        return self.totals.actual_total

    @property
    def total_difference(self) -> Decimal:
        return self.totals.total_difference

    @property
    def difference_percentage(self) -> Decimal:
        return self.totals.difference_percentage

    @property
    def cash_counted_total(self) -> Decimal:
        return sum((denomination.subtotal for denomination in self.denominations), ZERO)

    @property
    def cash_count_variance(self) -> Decimal | None:
        """Counted cash minus the actual amount entered for cash methods; informational."""
        cash_entries = [entry for entry in self.breakdowns if str(entry.payment_method_id) in self.cash_method_ids]
        if not cash_entries:
            return None
        return self.cash_counted_total - sum((entry.actual_amount for entry in cash_entries), ZERO)

    def entry(self, payment_method_id: int | str) -> BreakdownEntry:
        for entry in self.breakdowns:
            if str(entry.payment_method_id) == str(payment_method_id):
                return entry
        raise ClientValidationError(
            [ValidationIssue(field="payment_method_id", reason=f"{payment_method_id} is not in the breakdown")]
        )

    def enter_actual(
        self,
        payment_method_id: int | str,
        amount: Decimal | int | float | str,
        *,
        count: int | str | None = None,
        notes: str | None = None,
    ) -> BreakdownEntry:
        entry = self.entry(payment_method_id)
        issues: list[ValidationIssue] = []
        actual_amount = ZERO
        actual_count: int | None = None
        try:
            actual_amount = to_money(amount, field="actual_amount")
        except ValueError as exc:
            issues.append(ValidationIssue(field="actual_amount", reason=str(exc)))
        else:
            if actual_amount < 0:
                issues.append(ValidationIssue(field="actual_amount", reason="must be >= 0"))
        if count is not None:
            try:
                actual_count = to_quantity(count, field="actual_count")
            except ValueError as exc:
                issues.append(ValidationIssue(field="actual_count", reason=str(exc)))
            else:
                if actual_count < 0:
                    issues.append(ValidationIssue(field="actual_count", reason="must be >= 0"))
        if issues:
            raise ClientValidationError(issues)
        entry.actual_amount = actual_amount
        entry.actual_count = actual_count
        if notes is not None:
            entry.notes = notes.strip() or None
        return entry

    def set_denomination(self, face_value: Decimal | int | float | str, quantity: int | str, kind: str | None = None) -> Denomination:
        try:
            value = to_money(face_value, field="face_value")
            count = to_quantity(quantity, field="quantity")
        except ValueError as exc:
            raise ClientValidationError([ValidationIssue(field="denomination", reason=str(exc))]) from exc
        if count < 0:
            raise ClientValidationError([ValidationIssue(field="quantity", reason="must be >= 0")])
        for index, denomination in enumerate(self.denominations):
            if denomination.face_value == value and (kind is None or denomination.kind == kind):
                updated = denomination.model_copy(update={"quantity": count})
                self.denominations[index] = updated
                return updated
        raise ClientValidationError(
            [ValidationIssue(field="face_value", reason=f"{value} is not a known denomination")]
        )

    def to_create_payload(self) -> dict[str, Any]:
        totals = self.totals
        theoretical = self.theoretical.theoretical
        metrics = self.theoretical.metrics
        return {
            "startDate": self.period.start.isoformat(),
            "endDate": self.period.end.isoformat(),
            "cashierName": self.cashier_name,
            "cashierSignature": None,
            "supervisorName": None,
            "supervisorSignature": None,
            "theoreticalTotal": str(totals.theoretical_net_total),
            "theoreticalSales": str(theoretical.total_sales),
            "theoreticalReturns": str(theoretical.total_returns),
            "actualTotal": str(totals.actual_total),
            "totalTransactions": metrics.total_transactions,
            "totalCustomers": metrics.total_customers,
            "averageTicket": str(metrics.average_ticket),
            "notes": self.notes.strip() or None,
            "paymentBreakdowns": [entry.to_payload() for entry in self.breakdowns],
            "denominations": [
                {
                    "denomination": str(denomination.face_value),
                    "type": _WIRE_KIND[denomination.kind],
                    "quantity": denomination.quantity,
                    "subtotal": str(denomination.subtotal),
                }
                for denomination in self.denominations
                if denomination.quantity > 0
            ],
        }


class CashClosureCalculator:
    def __init__(
        self,
        *,
        inventory: IntegrityChecker,
        closures: ClosureStore,
        cash_method_names: Sequence[str] = ("efectivo", "cash"),
        denominations: Sequence[Denomination] = QUETZAL_DENOMINATIONS,
        telemetry: TelemetryLogger | None = None,
    ) -> None:
        self._inventory = inventory
        self._closures = closures
        self._cash_method_names = tuple(name.lower() for name in cash_method_names)
        self._denominations = tuple(denominations)
        self._telemetry = telemetry or NULL_TELEMETRY

    def check_inventory_integrity(self, operator: OperatorIdentity | None = None) -> InventoryIntegrityReport:
        report = self._inventory.validate_stock_integrity()
        if report.is_blocked:
            logger.warning(
                "closure_blocked_negative_stock",
                extra={
                    "negative_stock_count": report.negative_stock_count,
                    "products": [product.id for product in report.products],
                },
            )
            self._telemetry.record(
                "closure",
                "closure_blocked",
                actor_id=operator.user_id if operator else None,
                success=False,
                error_code="NEGATIVE_STOCK",
                context={"negative_stock_count": report.negative_stock_count},
            )
            raise NegativeStockBlockedError(
                products=list(report.products),
                negative_stock_count=report.negative_stock_count,
            )
        return report

    def start(self, operator: OperatorIdentity, period: ClosurePeriod | None = None) -> ClosureWorksheet:
        self.check_inventory_integrity(operator)
        period = period or default_period()
        theoretical = self._closures.calculate_theoretical(period)
        breakdowns = [
            BreakdownEntry(
                payment_method_id=line.payment_method_id,
                payment_method_name=line.payment_method_name,
                theoretical_amount=line.theoretical_amount,
                theoretical_count=line.theoretical_count,
            )
            for line in theoretical.payment_breakdown
        ]
        cash_ids = frozenset(
            str(line.payment_method_id)
            for line in theoretical.payment_breakdown
            if line.payment_method_name.strip().lower() in self._cash_method_names
        )
        logger.info(
            "closure_started",
            extra={
                "start": period.start.isoformat(),
                "end": period.end.isoformat(),
                "net_total": str(theoretical.net_total),
            },
        )
        return ClosureWorksheet(
            period=period,
            theoretical=theoretical,
            cashier_name=operator.display_name,
            breakdowns=breakdowns,
            denominations=[denomination.model_copy() for denomination in self._denominations],
            cash_method_ids=cash_ids,
        )

    def create_closure(
        self,
        worksheet: ClosureWorksheet,
        operator: OperatorIdentity,
        *,
        idempotency_key: str | None = None,
    ) -> CashClosure:
        # Stock can go negative between start() and save; check again right before persisting.
        self.check_inventory_integrity(operator)
        keys = resolve_submission_keys(idempotency_key=idempotency_key)
        closure = self._closures.create_closure(worksheet.to_create_payload(), keys)
        logger.info(
            "closure_created",
            extra={
                "closure_id": closure.id,
                "closure_number": closure.closure_number,
                "difference": str(worksheet.total_difference),
            },
        )
        self._telemetry.record(
            "closure",
            "closure_created",
            actor_id=operator.user_id,
            success=True,
            context={
                "closure_id": closure.id,
                "actual_total": str(worksheet.actual_total),
                "difference": str(worksheet.total_difference),
                "difference_percentage": str(worksheet.difference_percentage),
            },
        )
        return closure

    def list_closures(self, *, page: int = 1, is_seller: bool = False) -> ClosureListResponse:
        page_size = SELLER_PAGE_SIZE if is_seller else REVIEWER_PAGE_SIZE
        return self._closures.list_closures(page=page, page_size=page_size)

    def get_closure(self, closure_id: str) -> CashClosure:
        return self._closures.get_closure(closure_id)
