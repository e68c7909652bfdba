from __future__ import annotations

import re

from .config_contract import FRACTION_PATTERN, FractionError

_FRACTION_RE = re.compile(FRACTION_PATTERN, re.ASCII)


def parse_fraction(value: str, *, field: str) -> tuple[int, int]:
    """Split an ``"N/D"`` string into ``(N, D)``.

    The caller decides what the two numbers mean; a zero denominator is not
    rejected here.
    """
    match = _FRACTION_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise FractionError(f"malformed fraction in {field}: {value!r}", field=field)
    try:
        numerator = int(match.group(1))
        denominator = int(match.group(2))
    except ValueError as exc:
        raise FractionError(
            f"cannot parse fraction in {field}: {value!r}", field=field
        ) from exc
    return numerator, denominator
