from decimal import Decimal, InvalidOperation

from expense_tracker.config import settings
from expense_tracker.exceptions import ValidationError

CENT = Decimal("0.01")


def parse_amount(value, ceiling: Decimal = None) -> Decimal:
    """
    Convert ``value`` to a monetary Decimal.

    Amounts must be positive, carry at most two fractional digits and stay at
    or below the per-expense ceiling. Nothing is rounded: ``250.005`` fails.
    """
    ceiling = settings.MAX_EXPENSE_AMOUNT if ceiling is None else ceiling

    if isinstance(value, bool) or value is None:
        raise ValidationError("Amount must be a positive number")
    try:
        # str() first so floats keep their shortest decimal representation
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a positive number")

    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be a positive number")
    if amount > ceiling:
        raise ValidationError(f"Amount cannot exceed {ceiling:,.2f}")
    if amount != amount.quantize(CENT):
        raise ValidationError("Amount must have at most 2 decimal places")
    return amount.quantize(CENT)
