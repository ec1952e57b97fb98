"""Decimal arithmetic utilities for ledger amounts.

All prices, amounts and balances are decimal.Decimal. No float anywhere.
Offer/trade amounts and fees carry 8 fractional digits (NUMERIC(20,8));
balances, holdings and transfers carry 18 (NUMERIC(30,18)).
"""

from decimal import ROUND_CEILING, Decimal, InvalidOperation

from src.p2p_common.errors import InputValidationError

AMOUNT_QUANTUM = Decimal("0.00000001")
BALANCE_QUANTUM = Decimal("0.000000000000000001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: object, field: str = "amount") -> Decimal:
    """Parse an int/str/Decimal into a finite Decimal.

    Floats are rejected: they cannot represent ledger amounts exactly.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InputValidationError(f"{field} must be a decimal string or integer")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InputValidationError(f"{field} is not a valid number: {value!r}") from None
    if not result.is_finite():
        raise InputValidationError(f"{field} must be finite")
    return result


def require_positive(value: Decimal, field: str = "amount") -> Decimal:
    if value <= ZERO:
        raise InputValidationError(f"{field} must be greater than 0, got {value}")
    return value


def require_scale(value: Decimal, places: int, field: str = "amount") -> Decimal:
    """Reject values with more fractional digits than the column stores."""
    exponent = value.as_tuple().exponent
    if isinstance(exponent, int) and exponent < -places and value != value.quantize(
        Decimal(1).scaleb(-places)
    ):
        raise InputValidationError(f"{field} allows at most {places} decimal places")
    return value


def calculate_fee(amount: Decimal, fee_rate_percent: Decimal) -> Decimal:
    """Fee rounded up to 8 places (the ledger never under-collects).

    fee = ceil(amount * fee_rate_percent / 100, 8dp)
    """
    if amount == ZERO or fee_rate_percent == ZERO:
        return ZERO.quantize(AMOUNT_QUANTUM)
    return (amount * fee_rate_percent / HUNDRED).quantize(
        AMOUNT_QUANTUM, rounding=ROUND_CEILING
    )


def format_amount(value: Decimal, places: int = 8) -> str:
    """Fixed-point display string: Decimal("95") -> '95.00000000'."""
    return f"{value:.{places}f}"
