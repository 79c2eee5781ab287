from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation, localcontext

from .errors import InvalidAmount

UINT256_MAX = 2**256 - 1

# Enough digits for any uint256 plus fractional input without context rounding.
_PRECISION = 160


def _to_decimal(amount: str | int | Decimal) -> Decimal:
    if isinstance(amount, bool):
        raise InvalidAmount(amount, "expected a number, got a boolean")
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, int):
        value = Decimal(amount)
    elif isinstance(amount, str):
        try:
            value = Decimal(amount.strip().replace("_", ""))
        except InvalidOperation as e:
            raise InvalidAmount(amount, "not a decimal number") from e
    else:
        raise InvalidAmount(amount, f"unsupported type {type(amount).__name__}")

    if not value.is_finite():
        raise InvalidAmount(amount, "must be a finite number")
    if value < 0:
        raise InvalidAmount(amount, "must not be negative")
    return value


def scale_amount(amount: str | int | Decimal, decimals: int = 18) -> int:
    """Scale a human-readable amount into integer base units.

    Args:
        amount: Decimal string, integer or Decimal expressed in whole tokens.
        decimals: Decimal precision of the token (18 for WETH, 6 for USDC).

    Returns:
        ``round(amount * 10**decimals)`` as a non-negative integer.

    Raises:
        InvalidAmount: If the amount is negative, non-numeric, or the scaled
            value does not fit in a uint256.

    Notes:
        - Arithmetic is done with ``Decimal`` so there is no floating-point drift.
        - Digits below the token's precision are rounded half-to-even.
    """
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise InvalidAmount(amount, f"invalid token decimals {decimals!r}")

    value = _to_decimal(amount)
    if value.adjusted() + decimals > _PRECISION // 2:
        raise InvalidAmount(amount, "exceeds the uint256 range")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = value.scaleb(decimals).to_integral_value(rounding=ROUND_HALF_EVEN)
    result = int(scaled)
    if result > UINT256_MAX:
        raise InvalidAmount(amount, "exceeds the uint256 range")
    return result


def display_amount(raw: int, decimals: int = 18) -> str:
    """Render an integer base-unit amount as a plain decimal string.

    Trailing zeros are dropped and exponent notation is never used, so
    ``display_amount(scale_amount("1.5", 6), 6) == "1.5"``.
    """
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        value = Decimal(raw).scaleb(-decimals)
        text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def whole_units(amount: str | int | Decimal) -> int:
    """Parse an amount that is already in integer base units.

    Unlike ``scale_amount(amount, 0)`` nothing is rounded: ``"1.0"`` is
    accepted, ``"1.5"`` raises ``InvalidAmount``.
    """
    value = _to_decimal(amount)
    if value.adjusted() > _PRECISION // 2:
        raise InvalidAmount(amount, "exceeds the uint256 range")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        if value != value.to_integral_value():
            raise InvalidAmount(amount, "base units must be a whole number")
        result = int(value)
    if result > UINT256_MAX:
        raise InvalidAmount(amount, "exceeds the uint256 range")
    return result
