"""Token storage for the devtrackr command line."""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "GITHUB_TOKEN"


class Config:
    """Stores the GitHub token used by the CLI under ``~/.devtrackr``."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config paths.

        Args:
            config_dir: Directory holding config.json (defaults to ~/.devtrackr)
        """
        self.config_dir = config_dir or Path.home() / ".devtrackr"
        self.config_file = self.config_dir / "config.json"

    def _ensure_config_dir(self) -> None:
        """Create the config directory with owner-only permissions."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.chmod(0o700)

    def _load_config(self) -> dict[str, Any]:
        """Load existing config or return empty dict."""
        if not self.config_file.exists():
            return {}

        try:
            with self.config_file.open() as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_config(self, config_data: dict[str, Any]) -> None:
        self._ensure_config_dir()
        with self.config_file.open("w") as f:
            json.dump(config_data, f, indent=2)
        self.config_file.chmod(0o600)

    def get_token(self) -> str | None:
        """Get the stored GitHub token, if any."""
        token = self._load_config().get("github_token")
        return token if isinstance(token, str) and token else None

    def resolve_token(self, explicit: str | None = None) -> str | None:
        """Pick a token: explicit value, then $GITHUB_TOKEN, then the stored one."""
        if explicit:
            return explicit
        return os.environ.get(TOKEN_ENV_VAR) or self.get_token()

    def set_token(self, token: str) -> None:
        """Store the GitHub token in a file only the owner can read."""
        config_data = self._load_config()
        config_data["github_token"] = token
        self._write_config(config_data)
        logger.info(f"Token stored in {self.config_file}")

    def remove_token(self) -> bool:
        """Remove the stored token.

        Returns:
            True if a token was removed
        """
        config_data = self._load_config()
        removed = config_data.pop("github_token", None) is not None

        if config_data:
            self._write_config(config_data)
        else:
            self.config_file.unlink(missing_ok=True)

        return removed

    def get_config_info(self) -> dict[str, Any]:
        """Describe the current configuration state."""
        config_exists = self.config_file.exists()

        return {
            "config_file": str(self.config_file),
            "config_exists": config_exists,
            "has_token": self.get_token() is not None,
            "env_token": bool(os.environ.get(TOKEN_ENV_VAR)),
            "config_file_permissions": oct(self.config_file.stat().st_mode)[-3:]
            if config_exists
            else None,
        }
