"""Duration strings ("15m", "7d") → timedelta.

Learn: Token TTLs are configured as short human strings. Both the JWT
`exp` claim and the cookie expiry are computed from the timedelta this
module returns, so the two can never disagree about what "15m" means.
"""

import re
from datetime import timedelta
from typing import Union

_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}

_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")


def parse_duration(value: Union[str, int, timedelta]) -> timedelta:
    """Parse a duration.

    Accepts a timedelta (returned as-is), an int or bare digits (seconds),
    or `<int><unit>` where unit is one of s, m, h, d, w.
    Raises ValueError for anything else.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        return timedelta(seconds=value)

    match = _PATTERN.match(str(value).lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")

    amount, unit = match.groups()
    return timedelta(**{_UNITS[unit or "s"]: int(amount)})
