"""
Size and rate conversions used by the wire format.

Sizes are kept in kibibytes internally. The API reports them with a K, M, G or
T suffix (``32G``, ``377M``) and accepts the same on input.
"""

import logging
from decimal import Decimal
from decimal import InvalidOperation
from decimal import ROUND_HALF_UP
from typing import Union

from qemuconf.errors import RateFormatError
from qemuconf.errors import SizeFormatError

logger = logging.getLogger(__name__)

KIBIBYTE = 1
MEBIBYTE = 1024
GIBIBYTE = 1048576
TEBIBYTE = 1073741824

_SUFFIXES = {
    "K": KIBIBYTE,
    "M": MEBIBYTE,
    "G": GIBIBYTE,
    "T": TEBIBYTE,
}


def _to_decimal(body: str) -> Decimal:
    try:
        number = Decimal(body)
    except InvalidOperation:
        raise SizeFormatError(f"size body is not a number: {body!r}")
    if not number.is_finite() or number < 0:
        raise SizeFormatError(f"size body is not a positive number: {body!r}")
    return number


def parse_size(value: Union[str, int, float]) -> int:
    """
    Convert a size with an optional suffix into kibibytes.

    No suffix means the value is already in kibibytes. Fractional bodies are
    allowed (``1.5G``) and rounded to the nearest kibibyte.

    :param value: Size string such as "32G", or a number of kibibytes
    :return: Size in kibibytes
    """
    if isinstance(value, bool):
        raise SizeFormatError(f"size must not be a boolean: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise SizeFormatError(f"size must not be negative: {value!r}")
        return value
    if isinstance(value, float):
        return int(_to_decimal(repr(value)).to_integral_value(ROUND_HALF_UP))
    if not isinstance(value, str):
        raise SizeFormatError(f"size has an unsupported type: {type(value).__name__}")

    raw = value.strip()
    if raw == "":
        raise SizeFormatError("size may not be empty")
    factor = KIBIBYTE
    suffix = raw[-1].upper()
    if suffix.isalpha():
        if suffix not in _SUFFIXES:
            raise SizeFormatError(f"unknown size suffix: {raw[-1]!r}")
        factor = _SUFFIXES[suffix]
        raw = raw[:-1]
    number = _to_decimal(raw) * factor
    return int(number.to_integral_value(ROUND_HALF_UP))


def format_size(kibibytes: int) -> str:
    """
    Render a kibibyte count with the largest suffix that keeps it short.

    Exact multiples of T, G or M use that suffix. Otherwise G or M is used when
    the value fits in three decimals, else the plain kibibyte count with K.
    """
    if kibibytes < 0:
        raise SizeFormatError(f"size must not be negative: {kibibytes!r}")
    for suffix, factor in (("T", TEBIBYTE), ("G", GIBIBYTE), ("M", MEBIBYTE)):
        if kibibytes >= factor and kibibytes % factor == 0:
            return f"{kibibytes // factor}{suffix}"
    for suffix, factor in (("G", GIBIBYTE), ("M", MEBIBYTE)):
        if kibibytes >= factor and (kibibytes * 1000) % factor == 0:
            return float_to_trimmed(Decimal(kibibytes) / Decimal(factor), 3) + suffix
    return f"{kibibytes}K"


def float_to_trimmed(value: Union[float, Decimal], precision: int) -> str:
    """
    Format with a fixed precision, then drop trailing zeros and a dangling dot.

    >>> float_to_trimmed(1.50, 2)
    '1.5'
    """
    rendered = f"{value:.{precision}f}"
    if "." in rendered:
        rendered = rendered.rstrip("0").rstrip(".")
    return rendered


def round_mbps(value: Union[str, float]) -> float:
    """Round a MB/s limit to the two decimals the API keeps."""
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise RateFormatError(f"bandwidth is not a number: {value!r}")
    return float(number.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def parse_rate(value: Union[str, int, float]) -> int:
    """
    Parse a fractional rate into thousandths.

    ``"1.5"`` becomes ``1500``. More than three decimals are rounded.
    """
    if isinstance(value, bool):
        raise RateFormatError(f"rate must not be a boolean: {value!r}")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise RateFormatError(f"rate is not a number: {value!r}")
    if not number.is_finite() or number < 0:
        raise RateFormatError(f"rate is not a positive number: {value!r}")
    return int((number * 1000).to_integral_value(ROUND_HALF_UP))


def format_rate(thousandths: int) -> str:
    """Render a rate stored as thousandths with at most three decimals."""
    return float_to_trimmed(Decimal(thousandths) / Decimal(1000), 3)
