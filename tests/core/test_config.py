from pathlib import Path

import pytest
from loguru import logger
from pydantic import ValidationError

from src.core.config import Settings
from src.core.logging import configure_logging


def test_defaults_without_environment() -> None:
    settings = Settings.from_env({})
    assert settings.message_size_limit == 8 * 1024
    assert settings.max_messages_per_minute == 100
    assert settings.rate_limit_window_sec == 60.0
    assert settings.log_file is None


def test_environment_overrides_only_what_is_set() -> None:
    settings = Settings.from_env(
        {
            "CHECKERS_SECRET_KEY": "s3cret",
            "CHECKERS_MAX_MESSAGES_PER_MINUTE": "7",
            "UNRELATED": "ignored",
        }
    )
    assert settings.secret_key == "s3cret"
    assert settings.max_messages_per_minute == 7
    assert settings.database_url == "sqlite:///checkers.db"


@pytest.mark.parametrize(
    "name, value",
    [
        ("CHECKERS_MESSAGE_SIZE_LIMIT", "0"),
        ("CHECKERS_RATE_LIMIT_WINDOW_SEC", "-1"),
        ("CHECKERS_TOKEN_MAX_AGE_SEC", "soon"),
    ],
)
def test_invalid_values_are_rejected(name: str, value: str) -> None:
    with pytest.raises(ValidationError):
        Settings.from_env({name: value})


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(secret_keys="typo")  # type: ignore[call-arg]


def test_log_file_receives_debug_messages(tmp_path: Path) -> None:
    log_file = tmp_path / "checkers.log"
    configure_logging(Settings(log_level="WARNING", log_file=str(log_file)))
    logger.debug("board persisted")
    logger.remove()
    assert "board persisted" in log_file.read_text()
