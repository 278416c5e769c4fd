"""API key selection capability.

The host decides where credentials come from. The service only needs two
operations: ask whether a usable key is selected, and ask the host to
select one. When no selector is configured the key is assumed present.
"""
import os
from typing import Optional, Protocol

from dotenv import load_dotenv

from config import Config
from utils.logger import get_logger

logger = get_logger("image.key_selection")


class KeySelector(Protocol):
    async def has_selected_api_key(self) -> bool:
        ...

    async def open_select_key(self) -> None:
        ...


class EnvironmentKeySelector:
    """Key selection backed by the GEMINI_API_KEY environment variable."""

    def __init__(self, dotenv_path: Optional[str] = None):
        self.dotenv_path = dotenv_path
        self._pending_key: Optional[str] = None

    async def has_selected_api_key(self) -> bool:
        return bool(Config.GEMINI_API_KEY)

    def stage_key(self, api_key: Optional[str]) -> None:
        """Set an explicit key to be applied by the next open_select_key call."""
        self._pending_key = api_key.strip() if api_key else None

    async def open_select_key(self) -> None:
        """Apply a staged key, or re-read .env so a newly written key is picked up."""
        if self._pending_key:
            Config.set_gemini_api_key(self._pending_key)
            self._pending_key = None
            logger.info("API key selected from request")
            return

        load_dotenv(self.dotenv_path, override=True)
        Config.set_gemini_api_key(os.getenv("GEMINI_API_KEY", ""))
        if Config.GEMINI_API_KEY:
            logger.info("API key selected from environment")
        else:
            logger.warning("Key selection finished but GEMINI_API_KEY is still empty")


async def check_api_key_selection(selector: Optional[KeySelector]) -> bool:
    """Return whether a usable key is selected. A missing selector counts as selected."""
    if selector is None:
        return True
    return await selector.has_selected_api_key()


async def open_api_key_selection(selector: Optional[KeySelector]) -> None:
    """Ask the selector to pick a key. No-op when no selector is configured."""
    if selector is None:
        return
    await selector.open_select_key()
