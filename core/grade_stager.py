# core/grade_stager.py

"""
Utility class for staging grade edits before committing them to the GradeStore.

`GradeStager` provides a temporary in-memory store for proposed grade values
(typed into an editor but not yet saved), keyed by grade entry ID.

This enables workflows such as:
    - Previewing subject averages with unsaved edits applied
    - Committing many edits at once with `BatchExecutor.commit_staged()`
    - Discarding staged edits without touching the GradeStore

Staged values are kept as the raw strings the editor produced. A blank string
means the teacher cleared the cell, which removes that entry from previews.
Validation happens at commit time (or when the overlay is read by the
aggregation engine), never while staging.
"""

from collections.abc import Collection, Mapping


class GradeStager:
    """
    A temporary store for proposed grade edits, keyed by grade entry ID.

    Notes:
        - Staged values are stored in a simple `dict[str, str]`.
        - No validation is performed on entry IDs; the caller is responsible for passing IDs that exist.
    """

    def __init__(self):
        self._staged: dict[str, str] = {}

    def stage(self, entry_id: str, value: str) -> None:
        """
        Stage or replace a single grade edit.

        Args:
            entry_id (str): The ID of the grade entry being edited.
            value (str): The candidate value as typed.
        """
        self._staged[entry_id] = str(value).strip()

    def unstage(self, entry_id: str) -> None:
        self._staged.pop(entry_id, None)

    def bulk_stage(
        self,
        entry_ids: Collection[str],
        value: str,
        overwrite: bool = True,
    ) -> None:
        """
        Stage the same candidate value for multiple entries.

        Args:
            entry_ids (Collection[str]): The entry IDs to stage.
            value (str): The value to apply to all given IDs.
            overwrite (bool): If False, preserves existing staged values.
        """
        for entry_id in set(entry_ids):
            if entry_id in self._staged and not overwrite:
                continue

            self.stage(entry_id, value)

    def clear(self) -> None:
        """Remove all staged edits."""
        self._staged.clear()

    def is_empty(self) -> bool:
        return not self._staged

    def overlay(self) -> dict[str, str]:
        """
        Get a shallow copy of the staged edits, suitable for passing to the aggregation engine.

        Returns:
            dict[str, str]: A copy of the staging dictionary.
        """
        return self._staged.copy()

    def pending(
        self,
        committed: Mapping[str, str] | None = None,
    ) -> list[tuple[str, str]]:
        """
        Get a list of staged edits to apply.

        Args:
            committed (Mapping[str, str] | None): If provided, maps entry IDs to their
                committed value rendered with one decimal. Staged values that render
                identically are excluded ("diff-only" mode).

        Returns:
            list[tuple[str, str]]: A list of (entry_id, value) tuples in staging order.
        """
        pending = []

        for entry_id, value in self._staged.items():
            if committed is not None and _same_value(committed.get(entry_id), value):
                continue

            pending.append((entry_id, value))

        return pending


def _same_value(committed: str | None, staged: str) -> bool:
    if committed is None:
        return False

    try:
        return float(committed) == float(staged)

    except ValueError:
        return False
