"""
Money and quantity helpers.

Every monetary figure in the engine is a ``Decimal`` quantized to two places.
Two rounding modes are in use:

* ``round_line`` -- ROUND_HALF_UP, applied to a single line's
  ``quantity * unit_price``.  Matches what buyers and sellers expect on a
  printed line (2 x 10.005 = 20.01).
* ``round2`` -- ROUND_HALF_EVEN, applied to every aggregate (subtotal,
  discount, tax, total, payments) so that repeated recomputation does not
  drift upward.

Floats are never accepted into arithmetic directly: ``to_decimal`` converts
through ``str`` so ``9.995`` stays ``9.995`` and not
``9.99499999999999957367435854394...``.
"""

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from procure_kernel.exceptions import ValidationError

MONEY_PLACES = 2
_QUANTUM = Decimal(1).scaleb(-MONEY_PLACES)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _quantize(value: Decimal, rounding: str, field: str) -> Decimal:
    # quantize fails once the result needs more digits than the context allows.
    try:
        return value.quantize(_QUANTUM, rounding=rounding)
    except InvalidOperation:
        raise ValidationError(field, "is too large", value) from None


def round_line(value: Decimal, field: str = "subtotal") -> Decimal:
    """Round a line subtotal half-up to two places."""
    return _quantize(value, ROUND_HALF_UP, field)


def round2(value: Decimal, field: str = "amount") -> Decimal:
    """Round an aggregate half-to-even to two places."""
    return _quantize(value, ROUND_HALF_EVEN, field)


def to_decimal(
    value: Any,
    field: str,
    *,
    document_id: str | None = None,
) -> Decimal:
    """Coerce ``value`` to a finite Decimal or raise ValidationError."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValidationError(field, "must be a number", value, document_id)
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(
                field, "must be a number", value, document_id
            ) from None
    else:
        raise ValidationError(field, "must be a number", value, document_id)

    if not result.is_finite():
        raise ValidationError(field, "must be a finite number", value, document_id)
    return result


def require_non_negative(
    value: Decimal, field: str, *, document_id: str | None = None
) -> Decimal:
    if value < ZERO:
        raise ValidationError(field, "must not be negative", value, document_id)
    return value


def require_percentage(
    value: Decimal, field: str, *, document_id: str | None = None
) -> Decimal:
    if value < ZERO or value > HUNDRED:
        raise ValidationError(
            field, "must be between 0 and 100", value, document_id
        )
    return value
