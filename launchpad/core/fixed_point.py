"""
Fixed-point helpers for curve arithmetic

Every reserve and fee amount is a plain ``int`` in base units (wei for ETH,
10**decimals units for tokens). Fractions use the WAD convention: 1.0 is
represented by ``WAD = 10**18``. Rounding is always explicit, never implied
by a float.
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Union


WAD_DECIMALS = 18
WAD = 10**WAD_DECIMALS
BPS_DENOMINATOR = 10_000


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) for non-negative operands"""
    if denominator <= 0:
        raise ZeroDivisionError("denominator must be positive")
    return (a * b) // denominator


def mul_div_ceil(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator) for non-negative operands"""
    if denominator <= 0:
        raise ZeroDivisionError("denominator must be positive")
    return -((-(a * b)) // denominator)


def div_ceil(numerator: int, denominator: int) -> int:
    """ceil(numerator / denominator) for non-negative operands"""
    return mul_div_ceil(numerator, 1, denominator)


@dataclass(frozen=True, order=True)
class Wad:
    """
    Non-negative fraction scaled by ``WAD``

    Usage:
        fee = Wad.from_decimal("0.02")
        fee.mul_floor(1_000)        # 20
        fee.raw                     # 20_000_000_000_000_000
    """
    raw: int

    def __post_init__(self):
        if not isinstance(self.raw, int) or isinstance(self.raw, bool):
            raise TypeError(f"Wad.raw must be an int, got {type(self.raw).__name__}")
        if self.raw < 0:
            raise ValueError(f"Wad must be non-negative: {self.raw}")

    @classmethod
    def from_decimal(cls, value: Union[str, int, Decimal]) -> "Wad":
        """
        Parse a decimal literal ("0.02", Decimal("0.02"), 0) into a Wad

        Digits beyond 18 decimal places are truncated toward zero.
        """
        try:
            parsed = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Invalid decimal fraction: {value!r}") from e
        if not parsed.is_finite():
            raise ValueError(f"Invalid decimal fraction: {value!r}")

        with localcontext() as ctx:
            # scaleb rounds to the context precision
            ctx.prec = max(ctx.prec, len(parsed.as_tuple().digits))
            scaled = parsed.scaleb(WAD_DECIMALS).to_integral_value(rounding=ROUND_DOWN)
        return cls(int(scaled))

    @classmethod
    def from_bps(cls, bps: int) -> "Wad":
        """Convert basis points (1/10000) to a Wad"""
        return cls(bps * WAD // BPS_DENOMINATOR)

    def mul_floor(self, amount: int) -> int:
        """floor(amount * self)"""
        return mul_div_floor(amount, self.raw, WAD)

    def mul_ceil(self, amount: int) -> int:
        """ceil(amount * self)"""
        return mul_div_ceil(amount, self.raw, WAD)

    def div_one_plus_floor(self, amount: int) -> int:
        """floor(amount / (1 + self))"""
        return mul_div_floor(amount, WAD, WAD + self.raw)

    def to_decimal(self) -> Decimal:
        """Exact decimal representation, for display only"""
        return Decimal(self.raw) / WAD

    def __str__(self) -> str:
        return f"{self.to_decimal():f}"
