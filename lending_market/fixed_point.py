"""Checked integer arithmetic for the lending engine.

Every function is stateless and operates on plain Python ints. Results are
bounded to the signed 128-bit domain used for token amounts; leaving it raises
instead of silently growing. Division truncates toward zero so that quotients of
mixed-sign operands round the same way fixed-width integer division does. For
the non-negative amounts the engine actually handles this equals ``//``.
"""

from __future__ import annotations

from .core import ArithmeticOverflow, ArithmeticUnderflow, DivisionByZero

I128_MAX: int = 2**127 - 1
I128_MIN: int = -(2**127)
U32_MAX: int = 2**32 - 1


# -- Bounds ------------------------------------------------------------------

def in_range(value: int) -> bool:
    """True when *value* fits the signed 128-bit domain."""
    return I128_MIN <= value <= I128_MAX


def saturate_u32(value: int) -> int:
    """Clamp a non-negative quantity to ``U32_MAX``."""
    if value < 0:
        return 0
    return value if value <= U32_MAX else U32_MAX


# -- Checked operations ------------------------------------------------------

def checked_add(a: int, b: int) -> int:
    result = a + b
    if not in_range(result):
        raise ArithmeticOverflow(f"{a} + {b} leaves the 128-bit range")
    return result


def checked_sub(a: int, b: int) -> int:
    result = a - b
    if not in_range(result):
        raise ArithmeticUnderflow(f"{a} - {b} leaves the 128-bit range")
    return result


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if not in_range(result):
        raise ArithmeticOverflow(f"{a} * {b} leaves the 128-bit range")
    return result


def checked_div(a: int, b: int) -> int:
    """Quotient of ``a / b`` truncated toward zero.

    Raises:
        DivisionByZero: If ``b`` is zero.
        ArithmeticOverflow: For ``I128_MIN / -1``.
    """
    if b == 0:
        raise DivisionByZero(f"{a} / 0")
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        quotient = -quotient
    if not in_range(quotient):
        raise ArithmeticOverflow(f"{a} / {b} leaves the 128-bit range")
    return quotient


def mul_div(a: int, b: int, denominator: int) -> int:
    """``a * b / denominator`` with the multiplication performed first.

    The intermediate product must itself fit the 128-bit domain.
    """
    return checked_div(checked_mul(a, b), denominator)


def pow10(exponent: int) -> int:
    """``10 ** exponent`` for a non-negative exponent, checked against the domain."""
    if exponent < 0:
        raise ArithmeticUnderflow(f"negative decimal exponent {exponent}")
    result = 10**exponent
    if not in_range(result):
        raise ArithmeticOverflow(f"10**{exponent} leaves the 128-bit range")
    return result
