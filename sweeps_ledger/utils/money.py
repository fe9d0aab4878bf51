"""Fixed-point money helpers.

Balances are stored as integers in minor units (hundredths of a coin).
Multipliers are stored as integer basis points (1/10000).
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation

from sweeps_ledger.utils.errors import ErrorCode, ValidationError

MINOR_UNITS = 100
MULTIPLIER_SCALE = 10_000


def to_minor(amount: Decimal | int | str) -> int:
    """Convert a whole-coin amount to minor units.

    Raises:
        ValidationError: If the amount is not a number or has sub-cent precision
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError(
            f"Invalid amount: {amount!r}", code=ErrorCode.INVALID_AMOUNT
        ) from None

    if not value.is_finite():
        raise ValidationError(f"Invalid amount: {amount!r}", code=ErrorCode.INVALID_AMOUNT)

    scaled = value * MINOR_UNITS
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            f"Amount has more than two decimal places: {amount}",
            code=ErrorCode.INVALID_AMOUNT,
        )
    return int(scaled)


def from_minor(amount: int) -> Decimal:
    """Convert minor units back to a two-decimal coin amount."""
    return (Decimal(amount) / MINOR_UNITS).quantize(Decimal("0.01"))


def multiplier_to_bp(multiplier: Decimal) -> int:
    """Truncate a multiplier to basis points."""
    return int((multiplier * MULTIPLIER_SCALE).to_integral_value(rounding=ROUND_DOWN))


def bp_to_multiplier(bp: int) -> Decimal:
    """Basis points back to a four-decimal multiplier."""
    return (Decimal(bp) / MULTIPLIER_SCALE).quantize(Decimal("0.0001"))


def apply_multiplier(amount: int, multiplier_bp: int) -> int:
    """Payout in minor units for a bet and a multiplier, rounded down."""
    return amount * multiplier_bp // MULTIPLIER_SCALE


def percent_of(amount: int, percent: int) -> int:
    """Integer percentage of an amount, rounded down."""
    return amount * percent // 100


def format_coins(amount: int, currency: str) -> str:
    """Format minor units for log and ledger descriptions."""
    return f"{from_minor(amount):,} {currency.upper()}"
