# tests/test_config.py

import logging

import pytest

from core.config import Settings, configure_logging


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults(clean_env, tmp_path):
    settings = Settings.from_env(tmp_path / "missing.env")

    assert not settings.test_mode
    assert settings.batch_workers == 1
    assert settings.log_level == "INFO"


def test_values_from_environment(clean_env, tmp_path):
    clean_env.setenv("GRADEFLOW_TEST_MODE", "yes")
    clean_env.setenv("GRADEFLOW_BATCH_WORKERS", "4")
    clean_env.setenv("GRADEFLOW_LOG_LEVEL", "debug")

    settings = Settings.from_env(tmp_path / "missing.env")

    assert settings.test_mode
    assert settings.batch_workers == 4
    assert settings.log_level == "DEBUG"


def test_values_from_dotenv_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("GRADEFLOW_TEST_MODE=true\nGRADEFLOW_BATCH_WORKERS=2\n")

    settings = Settings.from_env(env_file)

    assert settings.test_mode
    assert settings.batch_workers == 2


@pytest.mark.parametrize(
    "name, value",
    [
        ("GRADEFLOW_TEST_MODE", "maybe"),
        ("GRADEFLOW_BATCH_WORKERS", "zero"),
        ("GRADEFLOW_BATCH_WORKERS", "0"),
        ("GRADEFLOW_LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_values_raise(clean_env, tmp_path, name, value):
    clean_env.setenv(name, value)

    with pytest.raises(ValueError):
        Settings.from_env(tmp_path / "missing.env")


def test_configure_logging_sets_root_level():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers.clear()

    try:
        configure_logging(Settings(log_level="warning"))

        assert root.level == logging.WARNING
        assert root.handlers

    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        root.handlers.extend(saved_handlers)
        root.setLevel(saved_level)
