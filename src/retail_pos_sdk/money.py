from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: object, *, field: str = "amount") -> Decimal:
    """Normalize a boundary value (number, numeric string or Decimal) to a 2-place Decimal.

    ``None`` and blank strings become ``0.00``. Booleans and non-numeric strings raise
    ``ValueError`` so a malformed payload never reaches the business logic.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"{field} must be numeric, got a boolean")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"{field} must be numeric, got {value!r}") from exc
    else:
        raise ValueError(f"{field} must be numeric, got {type(value).__name__}")
    if not amount.is_finite():
        raise ValueError(f"{field} must be a finite number")
    return quantize(amount)


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_quantity(value: object, *, field: str = "quantity") -> int:
    """Normalize a count that may arrive as int, integral float or numeric string."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer, got a boolean")
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"{field} must be an integer, got {value!r}") from exc
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"{field} must be an integer, got {value!r}")
    return int(number)


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return ZERO
    return quantize(part / whole * Decimal("100"))
