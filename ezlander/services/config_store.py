"""Simple key-value store for API keys, OAuth tokens and preferences."""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Well-known keys
ANTHROPIC_API_KEY = "anthropic_api_key"
OPENAI_API_KEY = "openai_api_key"
GEMINI_API_KEY = "gemini_api_key"
KIMI_API_KEY = "kimi_api_key"
AI_PROVIDER = "ai_provider"
USER_EMAIL = "user_email"
USER_NAME = "user_name"
APPLE_ID = "apple_id"
APPLE_APP_PASSWORD = "apple_app_password"


class ConfigStore:
    """
    JSON-file backed key-value store.

    Values are cached in memory; call reload() to pick up changes written by
    another process. Writes go straight to disk.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path).expanduser() if path else None
        self._values: dict[str, Any] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read the backing file."""
        if self.path is None or not self.path.exists():
            self._values = {}
            return
        try:
            self._values = json.loads(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read config store {self.path}: {e}")
            self._values = {}

    def get(self, key: str, default: Any = None) -> Any:
        value = self._values.get(key, default)
        if isinstance(value, str):
            value = value.strip()
            return value or default
        return value

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._flush()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(self._values, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
