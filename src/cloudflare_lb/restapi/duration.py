"""Human-readable duration strings as used by the health API.

The API reports round-trip times such as ``"12.1ms"`` or ``"1m30s"``.
These are parsed into :class:`datetime.timedelta` and formatted back in
the same canonical form, so a decoded value re-encodes to the literal it
came from. Precision is one microsecond.
"""

import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Annotated

from pydantic import BeforeValidator, PlainSerializer

# Microseconds per unit
_UNITS: dict[str, Decimal] = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),  # U+00B5 micro sign
    "μs": Decimal(1),  # U+03BC greek mu
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}

_COMPONENT = re.compile(r"(\d*\.?\d*)([^\d.]+)")

_US_PER_MS = 1_000
_US_PER_S = 1_000_000
_US_PER_MIN = 60 * _US_PER_S
_US_PER_H = 60 * _US_PER_MIN


def parse_duration(value: str) -> timedelta:
    """Parse a duration string like ``"12.1ms"`` or ``"-1h2m3.5s"``.

    Args:
        value: Sequence of decimal numbers each followed by a unit
            (ns, us, µs, ms, s, m, h), with an optional leading sign.

    Returns:
        The duration, rounded to the nearest microsecond.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    text = value.strip()
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)
    if not text:
        msg = f"invalid duration {value!r}"
        raise ValueError(msg)

    total = Decimal(0)
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            msg = f"invalid duration {value!r}"
            raise ValueError(msg)
        number, unit = match.groups()
        if number in ("", ".") or unit not in _UNITS:
            msg = f"invalid duration {value!r}"
            raise ValueError(msg)
        try:
            total += Decimal(number) * _UNITS[unit]
        except InvalidOperation as exc:
            msg = f"invalid duration {value!r}"
            raise ValueError(msg) from exc
        pos = match.end()

    microseconds = int(total.to_integral_value())
    try:
        return timedelta(microseconds=sign * microseconds)
    except OverflowError as exc:
        msg = f"invalid duration {value!r}: out of range"
        raise ValueError(msg) from exc


def _with_fraction(value: int, scale: int) -> str:
    """Render value / scale with trailing fractional zeros dropped."""
    whole, frac = divmod(value, scale)
    if not frac:
        return str(whole)
    digits = len(str(scale)) - 1
    return f"{whole}.{str(frac).zfill(digits).rstrip('0')}"


def format_duration(value: timedelta) -> str:
    """Format a duration in canonical form (``"12.1ms"``, ``"1h0m0s"``)."""
    total = (value.days * 86_400 + value.seconds) * _US_PER_S + value.microseconds
    if total == 0:
        return "0s"

    sign = "-" if total < 0 else ""
    total = abs(total)

    if total < _US_PER_MS:
        return f"{sign}{total}µs"
    if total < _US_PER_S:
        return f"{sign}{_with_fraction(total, _US_PER_MS)}ms"

    hours, rest = divmod(total, _US_PER_H)
    minutes, rest = divmod(rest, _US_PER_MIN)
    seconds = _with_fraction(rest, _US_PER_S) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return f"{sign}{seconds}"


def _coerce(value: object) -> timedelta:
    # Durations only travel as strings; bare numbers have no unit
    if isinstance(value, timedelta):
        return value
    if isinstance(value, str):
        return parse_duration(value)
    msg = f"duration must be a string, got {type(value).__name__}"
    raise ValueError(msg)


Duration = Annotated[
    timedelta,
    BeforeValidator(_coerce),
    PlainSerializer(format_duration, return_type=str, when_used="json"),
]
"""A :class:`timedelta` that travels as a duration string on the wire."""
