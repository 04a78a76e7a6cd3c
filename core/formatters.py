# core/formatters.py

# all pure utilities & grade/date helpers
# must never import from models!

import datetime
from decimal import Decimal
from typing import Any

# === generic text formatters ===


def format_list_with_and(items: list[Any]) -> str:
    if not items:
        return ""

    items = [str(item) for item in items]

    if len(items) == 1:
        return items[0]

    if len(items) == 2:
        return " and ".join(items)

    return ", ".join(items[:-1]) + ", and " + items[-1]


# === grade formatters ===


def format_grade(value: Decimal | float | None) -> str:
    return "[NO GRADES]" if value is None else f"{Decimal(str(value)):.1f}"


def format_percentage(value: Decimal | float | int) -> str:
    return f"{value}%"


def format_distribution(distribution: dict[str, int]) -> str:
    return ", ".join(f"{bucket}: {count}" for bucket, count in distribution.items())


# === date formatters ===


def format_period_range(start: datetime.date, end: datetime.date) -> str:
    return f"{start.isoformat()} to {end.isoformat()}"

