# models/reporting_period.py

"""
Represents a grade reporting period (e.g., "Mid-semester 1").

A `ReportingPeriod` is immutable once created. Every grade entry and submission
record refers to exactly one period by ID.

Includes functionality for:
- Validating the name and the start/end date ordering
- Serializing to and from JSON-compatible dictionaries
"""

from __future__ import annotations

import datetime

from core.formatters import format_period_range


class ReportingPeriod:

    def __init__(
        self,
        id: str,
        name: str,
        start_date: datetime.date,
        end_date: datetime.date,
        is_active: bool = True,
    ):
        self._id = id
        self._name = ReportingPeriod.validate_name_input(name)
        self._start_date, self._end_date = ReportingPeriod.validate_date_range(
            start_date, end_date
        )
        self._is_active = is_active

    # === properties ===

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def start_date(self) -> datetime.date:
        return self._start_date

    @property
    def end_date(self) -> datetime.date:
        return self._end_date

    @property
    def is_active(self) -> bool:
        return self._is_active

    # === persistence and import ===

    def to_dict(self) -> dict:
        return {
            "id": self._id,
            "name": self._name,
            "start_date": self._start_date.isoformat(),
            "end_date": self._end_date.isoformat(),
            "is_active": self._is_active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ReportingPeriod:
        return cls(
            id=data["id"],
            name=data["name"],
            start_date=datetime.date.fromisoformat(data["start_date"]),
            end_date=datetime.date.fromisoformat(data["end_date"]),
            is_active=data.get("is_active", True),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"ReportingPeriod({self._id}, {self._name}, {self._start_date}, {self._end_date}, {self._is_active})"

    def __str__(self) -> str:
        return f"PERIOD: name: {self._name}, dates: {format_period_range(self._start_date, self._end_date)}"

    # === data validators ===

    @staticmethod
    def validate_name_input(name: str) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Invalid input. Period name cannot be blank.")

        return name.strip()

    @staticmethod
    def validate_date_range(
        start_date: datetime.date, end_date: datetime.date
    ) -> tuple[datetime.date, datetime.date]:
        if not isinstance(start_date, datetime.date) or not isinstance(
            end_date, datetime.date
        ):
            raise TypeError("Invalid input. Period start and end must be dates.")

        if end_date < start_date:
            raise ValueError("Invalid input. Period end date precedes its start date.")

        return start_date, end_date
