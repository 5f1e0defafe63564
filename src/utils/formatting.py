"""Locale-aware rendering of byte counts."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from babel.numbers import format_decimal

# Labels carry their leading space so the number and unit join directly.
_UNITS: tuple[str, ...] = (" B", " kB", " MB", " GB", " TB", " PB")


def format_file_size(
    size: int | float | None,
    locale: str,
    empty_value: str = "-",
) -> str:
    """Format *size* (in bytes) as a human-readable string for *locale*.

    ``None`` and ``0`` return *empty_value* untouched.  Whole byte counts
    below 1024 keep no decimals; everything else is rounded half-up to two
    places before Babel applies the locale's separators::

        >>> format_file_size(6587, "pl_PL")
        '6,43 kB'
    """
    if size is None or size == 0:
        return empty_value

    precision = 0 if size == int(size) and size < 1024 else 2

    scaled = float(size)
    index = 0
    while abs(scaled) >= 1024 and index < len(_UNITS) - 1:
        scaled /= 1024
        index += 1

    quantum = Decimal(1).scaleb(-precision)
    value = Decimal(repr(scaled)).quantize(quantum, rounding=ROUND_HALF_UP)
    return format_decimal(value, locale=locale) + _UNITS[index]
