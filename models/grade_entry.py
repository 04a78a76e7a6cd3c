# models/grade_entry.py

"""
Represents a single component-level grade for a student in one subject and period.

Each `GradeEntry` is identified by the tuple (student_id, subject_id, class_id,
period_id, component_type); the store keeps at most one entry per identity. The
entry ID is derived from that tuple, so the same identity always maps to the
same ID and edit overlays or audit records can refer to it before and after saving.

Includes functionality for:
- Validating raw grade input (range [0, 10], at most two decimal places) and
  rounding it half-up to one decimal for storage
- A one-way `is_locked` flag
- A version counter used as an optimistic concurrency token
- Serializing to and from JSON-compatible dictionaries

Notes:
- Values are stored as `Decimal` so that comparisons and serialization always
  see exactly one decimal place.
- Mutation rules (locking, version checks) are enforced by the GradeStore; the
  entry itself only refuses to change once locked.
"""

from __future__ import annotations

import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from core.utils import round_tenths

MIN_GRADE = Decimal("0")
MAX_GRADE = Decimal("10")
MAX_INPUT_PLACES = 2


class ComponentType(str, Enum):
    REGULAR_1 = "regular_1"
    REGULAR_2 = "regular_2"
    REGULAR_3 = "regular_3"
    REGULAR_4 = "regular_4"
    MIDTERM = "midterm"
    FINAL = "final"
    SEMESTER_1 = "semester_1"
    SEMESTER_2 = "semester_2"
    YEARLY = "yearly"

    @property
    def is_regular(self) -> bool:
        return self in REGULAR_COMPONENTS

    @property
    def is_tbm_input(self) -> bool:
        return self in TBM_COMPONENTS

    @property
    def is_summary(self) -> bool:
        return self in SUMMARY_COMPONENTS


REGULAR_COMPONENTS = frozenset(
    {
        ComponentType.REGULAR_1,
        ComponentType.REGULAR_2,
        ComponentType.REGULAR_3,
        ComponentType.REGULAR_4,
    }
)
TBM_COMPONENTS = REGULAR_COMPONENTS | {ComponentType.MIDTERM, ComponentType.FINAL}
SUMMARY_COMPONENTS = frozenset(
    {ComponentType.SEMESTER_1, ComponentType.SEMESTER_2, ComponentType.YEARLY}
)


class GradeValueError(ValueError):
    pass


class GradeOutOfRangeError(GradeValueError):
    pass


class GradePrecisionError(GradeValueError):
    pass


class GradeEntry:

    def __init__(
        self,
        student_id: str,
        subject_id: str,
        class_id: str,
        period_id: str,
        component_type: ComponentType | str,
        value: Any,
        is_locked: bool = False,
        version: int = 1,
        updated_at: datetime.datetime | None = None,
        updated_by: str | None = None,
    ):
        self._student_id = student_id
        self._subject_id = subject_id
        self._class_id = class_id
        self._period_id = period_id
        self._component_type = GradeEntry.validate_component_input(component_type)
        self._value = GradeEntry.validate_grade_input(value)
        self._is_locked = is_locked
        self._version = version
        self._updated_at = updated_at
        self._updated_by = updated_by

    # === properties ===

    @property
    def id(self) -> str:
        return GradeEntry.make_id(*self.identity)

    @property
    def identity(self) -> tuple[str, str, str, str, ComponentType]:
        return (
            self._student_id,
            self._subject_id,
            self._class_id,
            self._period_id,
            self._component_type,
        )

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def subject_id(self) -> str:
        return self._subject_id

    @property
    def class_id(self) -> str:
        return self._class_id

    @property
    def period_id(self) -> str:
        return self._period_id

    @property
    def component_type(self) -> ComponentType:
        return self._component_type

    @property
    def value(self) -> Decimal:
        return self._value

    @property
    def is_locked(self) -> bool:
        return self._is_locked

    @property
    def lock_status(self) -> str:
        return "'LOCKED'" if self._is_locked else "'UNLOCKED'"

    @property
    def version(self) -> int:
        return self._version

    @property
    def updated_at(self) -> datetime.datetime | None:
        return self._updated_at

    @property
    def updated_by(self) -> str | None:
        return self._updated_by

    # === state transitions ===

    def apply_value(
        self,
        value: Decimal,
        changed_at: datetime.datetime | None = None,
        changed_by: str | None = None,
    ) -> None:
        """
        Replaces the stored value and bumps the version.

        Args:
            value (Decimal): An already validated and rounded value.
            changed_at (datetime | None): Commit timestamp.
            changed_by (str | None): The actor making the change.

        Raises:
            PermissionError: If the entry is locked.
        """
        if self._is_locked:
            raise PermissionError(f"Grade entry {self.id} is locked.")

        self._value = value
        self._version += 1
        self._updated_at = changed_at
        self._updated_by = changed_by

    def lock(self) -> None:
        self._is_locked = True

    # === persistence and import ===

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "student_id": self._student_id,
            "subject_id": self._subject_id,
            "class_id": self._class_id,
            "period_id": self._period_id,
            "component_type": self._component_type.value,
            "value": str(self._value),
            "is_locked": self._is_locked,
            "version": self._version,
            "updated_at": self._updated_at.isoformat() if self._updated_at else None,
            "updated_by": self._updated_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GradeEntry:
        updated_at = data.get("updated_at")

        return cls(
            student_id=data["student_id"],
            subject_id=data["subject_id"],
            class_id=data["class_id"],
            period_id=data["period_id"],
            component_type=data["component_type"],
            value=data["value"],
            is_locked=data.get("is_locked", False),
            version=data.get("version", 1),
            updated_at=(
                datetime.datetime.fromisoformat(updated_at) if updated_at else None
            ),
            updated_by=data.get("updated_by"),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"GradeEntry({self._student_id}, {self._subject_id}, {self._class_id}, {self._period_id}, {self._component_type.value}, {self._value}, {self._is_locked})"

    def __str__(self) -> str:
        return f"GRADE: student id: {self._student_id}, subject id: {self._subject_id}, component: {self._component_type.value}, value: {self._value}"

    # === helper methods ===

    @staticmethod
    def make_id(
        student_id: str,
        subject_id: str,
        class_id: str,
        period_id: str,
        component_type: ComponentType | str,
    ) -> str:
        component = ComponentType(component_type).value
        return f"{student_id}:{subject_id}:{class_id}:{period_id}:{component}"

    # === data validators ===

    @staticmethod
    def validate_component_input(component_type: Any) -> ComponentType:
        try:
            return ComponentType(component_type)

        except ValueError:
            raise ValueError(
                f"Invalid input. Unknown component type: {component_type!r}."
            ) from None

    @staticmethod
    def validate_grade_input(value: Any) -> Decimal:
        """
        Validates and normalizes raw grade input.

        Accepts numbers or numeric strings, and then:
            - Ensures the value is finite and within [0, 10].
            - Ensures at most two decimal places were supplied (trailing zeros ignored).
            - Rounds half-up to one decimal place.

        Args:
            value (Any): The input value to validate.

        Returns:
            The normalized grade (Decimal) with exactly one decimal place.

        Raises:
            TypeError: If the input is not a number or numeric string.
            GradeOutOfRangeError: If the value is non-finite or outside [0, 10].
            GradePrecisionError: If more than two decimal places were supplied.
        """
        if value is None or isinstance(value, bool):
            raise TypeError("Invalid input. Grade must be a number.")

        try:
            raw = Decimal(str(value).strip())

        except InvalidOperation:
            raise TypeError("Invalid input. Grade must be a number.") from None

        if not raw.is_finite() or raw < MIN_GRADE or raw > MAX_GRADE:
            raise GradeOutOfRangeError(
                f"Invalid input. Grade must be between {MIN_GRADE} and {MAX_GRADE}, got {value}."
            )

        if -raw.normalize().as_tuple().exponent > MAX_INPUT_PLACES:
            raise GradePrecisionError(
                f"Invalid input. Grade allows at most {MAX_INPUT_PLACES} decimal places, got {value}."
            )

        return round_tenths(raw)
