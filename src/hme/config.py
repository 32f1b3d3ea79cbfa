"""Local configuration for the hme CLI."""

import json
from dataclasses import replace
from pathlib import Path

from hme.client import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from hme.exceptions import HmeError
from hme.models import Config


DEFAULT_CONFIG = Config(
    cookie=None,
    timeout=DEFAULT_TIMEOUT,
    user_agent=DEFAULT_USER_AGENT,
    default_note="",
)


class ConfigStore:
    """Reads and writes ~/.hme/config.json. Never writes the session cookie."""

    def __init__(self, base_path: Path | None = None) -> None:
        self.base_path = base_path or Path.home() / ".hme"
        self.config_path = self.base_path / "config.json"
        self.cookie_path = self.base_path / "cookie.txt"

    def _ensure_dirs(self) -> None:
        """Create the base directory if it doesn't exist."""
        self.base_path.mkdir(parents=True, exist_ok=True)

    def get_config(self) -> Config:
        """Load config from config.json."""
        if not self.config_path.exists():
            return replace(DEFAULT_CONFIG)

        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise HmeError(f"Invalid config file {self.config_path}: {e}") from e

        try:
            timeout = float(data.get("timeout", DEFAULT_CONFIG.timeout))
        except (TypeError, ValueError) as e:
            raise HmeError(f"Invalid timeout in {self.config_path}: {data.get('timeout')!r}") from e

        return Config(
            cookie=data.get("cookie", DEFAULT_CONFIG.cookie),
            timeout=timeout,
            user_agent=data.get("user_agent", DEFAULT_CONFIG.user_agent),
            default_note=data.get("default_note", DEFAULT_CONFIG.default_note),
        )

    def save_config(self, config: Config) -> None:
        """Save the non-secret settings to config.json."""
        self._ensure_dirs()
        data = {
            "timeout": config.timeout,
            "user_agent": config.user_agent,
            "default_note": config.default_note,
        }
        self.config_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
