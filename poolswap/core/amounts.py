"""Conversion between human decimal amounts and integer minor units.

Excess fractional precision is truncated toward zero so a rounded input can
never spend more than the user typed. All arithmetic is exact: ``Decimal``
with a context wide enough for the operands, never ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation, Overflow, ROUND_DOWN, localcontext
from typing import Union

from .errors import InvalidAmount

DEFAULT_DECIMALS = 18

# uint256
MAX_MINOR_UNITS = 2**256 - 1

HumanAmount = Union[str, Decimal, int]


def _check_decimals(decimals: int) -> int:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise InvalidAmount(f"Invalid decimals: {decimals!r}")
    return decimals


def parse_human_amount(raw: HumanAmount) -> Decimal:
    """Parse a human-entered amount into a finite, non-negative ``Decimal``.

    Runs without touching the network so bad input is rejected before any
    ledger call.
    """
    if isinstance(raw, bool) or isinstance(raw, float):
        # floats have already lost precision; require a string instead
        raise InvalidAmount(f"Unsupported amount type: {type(raw).__name__}")
    if isinstance(raw, int):
        value = Decimal(raw)
    elif isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip().replace("_", "")
        if not text:
            raise InvalidAmount("Amount is empty")
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise InvalidAmount(f"Amount is not a number: {raw!r}")
    else:
        raise InvalidAmount(f"Unsupported amount type: {type(raw).__name__}")

    if not value.is_finite():
        raise InvalidAmount(f"Amount must be finite: {raw!r}")
    if value.is_signed() and value != 0:
        raise InvalidAmount(f"Amount must not be negative: {raw!r}")
    return value.copy_abs()


def to_minor_units(human: HumanAmount, decimals: int) -> int:
    """Convert a human amount into the token's minor-unit integer.

    >>> to_minor_units("1.5", 6)
    1500000
    >>> to_minor_units("0.1234567", 6)
    123456
    """
    decimals = _check_decimals(decimals)
    value = parse_human_amount(human)

    if value and value.adjusted() + decimals >= len(str(MAX_MINOR_UNITS)):
        raise InvalidAmount(f"Amount exceeds uint256: {human!r}")

    digits = len(value.as_tuple().digits)
    exponent = value.as_tuple().exponent
    precision = digits + decimals + max(exponent, 0) + 2
    try:
        with localcontext(Context(prec=max(precision, 28))):
            scaled = value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)
    except (Overflow, InvalidOperation) as e:
        raise InvalidAmount(f"Amount out of range: {human!r}") from e

    minor = int(scaled)
    if minor > MAX_MINOR_UNITS:
        raise InvalidAmount(f"Amount exceeds uint256: {human!r}")
    return minor


def to_human_units(minor: int, decimals: int) -> str:
    """Render a minor-unit integer as a plain decimal string.

    >>> to_human_units(1500000, 6)
    '1.5'
    >>> to_human_units(2 * 10**18, 18)
    '2'
    """
    decimals = _check_decimals(decimals)
    if isinstance(minor, bool) or not isinstance(minor, int):
        raise InvalidAmount(f"Minor-unit amount must be an integer: {minor!r}")
    if minor < 0:
        raise InvalidAmount(f"Amount must not be negative: {minor}")

    whole, fraction = divmod(minor, 10 ** decimals)
    if not fraction:
        return str(whole)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{fraction_text}"


@dataclass(frozen=True)
class TokenAmount:
    """Minor-unit quantity paired with the decimals used to display it."""

    value: int
    decimals: int = DEFAULT_DECIMALS

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int) or self.value < 0:
            raise InvalidAmount(f"Token amount must be a non-negative integer: {self.value!r}")
        _check_decimals(self.decimals)

    @classmethod
    def from_human(cls, human: HumanAmount, decimals: int) -> "TokenAmount":
        return cls(to_minor_units(human, decimals), decimals)

    @property
    def human(self) -> str:
        return to_human_units(self.value, self.decimals)

    def __str__(self) -> str:
        return self.human


__all__ = [
    "DEFAULT_DECIMALS",
    "HumanAmount",
    "MAX_MINOR_UNITS",
    "TokenAmount",
    "parse_human_amount",
    "to_human_units",
    "to_minor_units",
]
