"""
Money Handling Module

Exact base-10 arithmetic for balances and amounts. NEVER uses float for
monetary values: floats are rejected at the boundary and everything inside
the core is a Decimal with two fraction digits. Arithmetic on amounts widens
the context to fit its operands, so no cent is ever rounded away.
"""

from decimal import (
    Context, Decimal, DecimalException, Inexact, InvalidOperation, Rounded,
    getcontext, localcontext
)
from typing import Union

from .errors import ValidationError

# Set global decimal context for financial precision
getcontext().prec = 28

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

AmountLike = Union[Decimal, str, int]


def to_amount(value: AmountLike, field_name: str = "amount") -> Decimal:
    """
    Convert an incoming value to a two-decimal Decimal.

    Args:
        value: Decimal, decimal string or integer
        field_name: Name used in error messages

    Returns:
        Decimal quantized to cents

    Raises:
        ValidationError: If the value is a float, not a finite number, or
            carries more than two fraction digits
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field_name} must be an exact decimal, not {type(value).__name__}")

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field_name} is not a valid decimal: {value!r}")

    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")

    try:
        with localcontext(_wide_context(amount)):
            quantized = amount.quantize(CENT)
    except DecimalException:
        raise ValidationError(f"{field_name} is out of range")

    # Reject sub-cent precision instead of rounding money away
    if amount != quantized:
        raise ValidationError(f"{field_name} cannot have more than 2 decimal places")

    return quantized


def to_positive_amount(value: AmountLike, field_name: str = "amount") -> Decimal:
    """Convert and require the amount to be strictly greater than zero"""
    amount = to_amount(value, field_name)
    if amount <= ZERO:
        raise ValidationError(f"{field_name.capitalize()} must be positive")
    return amount


def add_amounts(left: Decimal, right: Decimal) -> Decimal:
    """Exact sum of two cent amounts, however large"""
    try:
        with localcontext(_exact_context(left, right)):
            return left + right
    except DecimalException:
        raise ValidationError("Amount is out of range")


def subtract_amounts(left: Decimal, right: Decimal) -> Decimal:
    """Exact difference of two cent amounts, however large"""
    try:
        with localcontext(_exact_context(left, right)):
            return left - right
    except DecimalException:
        raise ValidationError("Amount is out of range")


def format_amount(amount: Decimal) -> str:
    """Format for storage and display, always two fraction digits"""
    with localcontext(_wide_context(amount)):
        return str(amount.quantize(CENT))


def _wide_context(*values: Decimal) -> Context:
    """Copy of the current context with room for every digit of the values"""
    context = getcontext().copy()
    # Integer digits, two cents, one carry
    needed = max(value.adjusted() for value in values) + 4
    context.prec = max(context.prec, needed)
    return context


def _exact_context(*values: Decimal) -> Context:
    """Wide context that raises instead of rounding"""
    context = _wide_context(*values)
    context.traps[Inexact] = True
    context.traps[Rounded] = True
    return context
