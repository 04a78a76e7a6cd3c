# core/utils.py

"""
Repository for program-wide utilities.
"""

import datetime
from decimal import ROUND_HALF_UP, Decimal

TENTHS = Decimal("0.1")


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def round_tenths(value) -> Decimal:
    return Decimal(str(value)).quantize(TENTHS, rounding=ROUND_HALF_UP)


def round_whole(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def mean_tenths(values) -> Decimal | None:
    """Arithmetic mean rounded half-up to one decimal, or None for an empty input."""
    values = [Decimal(str(v)) for v in values]

    if not values:
        return None

    return round_tenths(sum(values) / len(values))
