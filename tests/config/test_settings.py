import pytest
from pydantic import ValidationError

from src.config.settings import Config


def test_env_values_are_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VIDEO_POLL_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("VIDEO_JOB_MAX_ITEMS", "8")
    monkeypatch.setenv("CHAT_MODEL", "gemini-test")

    settings = Config()

    assert settings.video_poll_interval_seconds == 2.5
    assert settings.video_job_max_items == 8
    assert settings.chat_model == "gemini-test"


def test_api_key_falls_back_to_generic_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "fallback-key")

    assert Config().gemini_api_key == "fallback-key"


@pytest.mark.parametrize(
    "name, value",
    [
        ("VIDEO_POLL_INTERVAL_SECONDS", "soon"),
        ("VIDEO_MAX_POLL_COUNT", "0"),
        ("MEDIA_STORE_MAX_ITEMS", "-1"),
    ],
)
def test_invalid_env_values_are_rejected(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Config()
