"""Tests for API key selection."""
import pytest

from config import Config
from image.key_selection import (
    EnvironmentKeySelector,
    check_api_key_selection,
    open_api_key_selection,
)


@pytest.fixture
def no_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "")


@pytest.mark.asyncio
async def test_missing_selector_counts_as_selected():
    assert await check_api_key_selection(None) is True
    # Opening selection without a selector does nothing
    await open_api_key_selection(None)


@pytest.mark.asyncio
async def test_environment_selector_reports_missing_key(no_key):
    assert await check_api_key_selection(EnvironmentKeySelector()) is False


@pytest.mark.asyncio
async def test_environment_selector_reads_dotenv(no_key, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-dotenv\n")
    selector = EnvironmentKeySelector(dotenv_path=str(env_file))

    await open_api_key_selection(selector)

    assert await check_api_key_selection(selector) is True
    assert Config.get_gemini_api_key() == "from-dotenv"


@pytest.mark.asyncio
async def test_staged_key_wins_over_dotenv(no_key, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-dotenv\n")
    selector = EnvironmentKeySelector(dotenv_path=str(env_file))

    selector.stage_key("  explicit-key  ")
    await open_api_key_selection(selector)

    assert Config.GEMINI_API_KEY == "explicit-key"


def test_get_key_raises_when_unset(no_key):
    with pytest.raises(ValueError):
        Config.get_gemini_api_key()
