# core/config.py

"""
Runtime settings for the grade workflow.

Values are read from the process environment after `load_dotenv()` has merged any
`.env` file found next to the working directory. Only operator-level switches live
here; everything else is passed explicitly to the components that need it.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class Settings:

    def __init__(
        self,
        test_mode: bool = False,
        batch_workers: int = 1,
        log_level: str = "INFO",
    ):
        self._test_mode = test_mode
        self._batch_workers = Settings.validate_workers_input(batch_workers)
        self._log_level = Settings.validate_log_level_input(log_level)

    # === properties ===

    @property
    def test_mode(self) -> bool:
        return self._test_mode

    @property
    def batch_workers(self) -> int:
        return self._batch_workers

    @property
    def log_level(self) -> str:
        return self._log_level

    # === public classmethods ===

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Settings:
        """
        Builds `Settings` from environment variables.

        Args:
            dotenv_path (str | None): Optional explicit `.env` file. When omitted,
                `load_dotenv()` searches from the current working directory.

        Returns:
            Settings: The resolved settings.

        Raises:
            ValueError: If a variable holds a value that cannot be parsed.

        Notes:
            - `GRADEFLOW_TEST_MODE` bypasses the completeness gate on submit.
            - `GRADEFLOW_BATCH_WORKERS` sets the thread pool size for batch runs.
            - `GRADEFLOW_LOG_LEVEL` is passed to `configure_logging()`.
            - Variables already present in the environment win over `.env` values.
        """
        load_dotenv(dotenv_path)

        return cls(
            test_mode=Settings.parse_bool(os.getenv("GRADEFLOW_TEST_MODE", "false")),
            batch_workers=os.getenv("GRADEFLOW_BATCH_WORKERS", "1"),
            log_level=os.getenv("GRADEFLOW_LOG_LEVEL", "INFO"),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"Settings({self._test_mode}, {self._batch_workers}, {self._log_level})"

    # === data validators ===

    @staticmethod
    def parse_bool(raw: str) -> bool:
        value = raw.strip().lower()

        if value in _TRUE_VALUES:
            return True

        if value in _FALSE_VALUES:
            return False

        raise ValueError(f"Invalid boolean setting: {raw!r}")

    @staticmethod
    def validate_workers_input(workers) -> int:
        try:
            workers = int(workers)

        except (TypeError, ValueError):
            raise ValueError(
                f"Invalid batch worker count: {workers!r}. Must be an integer."
            ) from None

        if workers < 1:
            raise ValueError("Invalid batch worker count. Must be at least 1.")

        return workers

    @staticmethod
    def validate_log_level_input(level: str) -> str:
        level = str(level).strip().upper()

        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Invalid log level: {level!r}")

        return level


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
