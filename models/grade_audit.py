# models/grade_audit.py

"""
Represents one committed change to a grade entry's value.

The GradeStore appends a `GradeAuditRecord` every time an entry is created or its
value actually changes. No-op writes and lock transitions are not recorded here.
"""

from __future__ import annotations

import datetime
from decimal import Decimal


class GradeAuditRecord:

    def __init__(
        self,
        entry_id: str,
        old_value: Decimal | None,
        new_value: Decimal,
        changed_at: datetime.datetime,
        changed_by: str | None = None,
        reason: str | None = None,
    ):
        self._entry_id = entry_id
        self._old_value = old_value
        self._new_value = new_value
        self._changed_at = changed_at
        self._changed_by = changed_by
        self._reason = reason

    # === properties ===

    @property
    def entry_id(self) -> str:
        return self._entry_id

    @property
    def old_value(self) -> Decimal | None:
        return self._old_value

    @property
    def new_value(self) -> Decimal:
        return self._new_value

    @property
    def changed_at(self) -> datetime.datetime:
        return self._changed_at

    @property
    def changed_by(self) -> str | None:
        return self._changed_by

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def is_creation(self) -> bool:
        return self._old_value is None

    # === persistence and import ===

    def to_dict(self) -> dict:
        return {
            "entry_id": self._entry_id,
            "old_value": None if self._old_value is None else str(self._old_value),
            "new_value": str(self._new_value),
            "changed_at": self._changed_at.isoformat(),
            "changed_by": self._changed_by,
            "reason": self._reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GradeAuditRecord:
        old_value = data.get("old_value")

        return cls(
            entry_id=data["entry_id"],
            old_value=None if old_value is None else Decimal(old_value),
            new_value=Decimal(data["new_value"]),
            changed_at=datetime.datetime.fromisoformat(data["changed_at"]),
            changed_by=data.get("changed_by"),
            reason=data.get("reason"),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"GradeAuditRecord({self._entry_id}, {self._old_value}, {self._new_value}, {self._changed_by})"
