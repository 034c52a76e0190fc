"""
Amount Handling

Normalises caller input to 2-place Decimal. Float never reaches a balance:
floats are converted through their string form first. Amounts finer than a
cent are rejected, never rounded.
"""

from decimal import Decimal, InvalidOperation, getcontext

from .errors import InvalidAmount

# Set global decimal context for financial precision
getcontext().prec = 28

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Largest amount or balance; the sum of two stays exact within 28 digits
MAX_AMOUNT = Decimal("999999999999999999999999.99")


def as_money(value) -> Decimal:
    """
    Normalise a number or numeric string to a 2-place Decimal.
    
    Raises:
        InvalidAmount: If the value is not a finite number, has more than two
            decimal places, or exceeds MAX_AMOUNT in magnitude
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Not an amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Not an amount: {value!r}")
    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be a finite number: {value!r}")
    if abs(amount) > MAX_AMOUNT:
        raise InvalidAmount(f"Amount exceeds the maximum of {format_money(MAX_AMOUNT)}")
    
    try:
        cents = amount.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmount(f"Not an amount: {value!r}")
    if cents != amount:
        raise InvalidAmount("Amount cannot have more than 2 decimal places")
    return cents


def require_positive(value) -> Decimal:
    """Normalise an amount and reject zero or negative values"""
    amount = as_money(value)
    if amount <= ZERO:
        raise InvalidAmount("Amount must be positive")
    return amount


def format_money(value: Decimal) -> str:
    """Format for display"""
    return f"{value:,.2f}"
