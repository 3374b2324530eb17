"""Configuration management for pyneocities.

Credentials are read from environment variables first and fall back to a
JSON config file in the user's config directory.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://neocities.org/api"
CONFIG_FILE_NAME = "config.json"
STATE_DIR_NAME = "pull_state"


class Config:
    """Holds API credentials and the location of persisted state."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                $PYNEOCITIES_CONFIG_DIR or ~/.config/pyneocities
        """
        if config_dir is None:
            env_dir = os.environ.get("PYNEOCITIES_CONFIG_DIR")
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "pyneocities"
            )
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Return the path of the JSON config file."""
        return self.config_dir / CONFIG_FILE_NAME

    def _read(self) -> dict[str, Any]:
        path = self.get_config_path()
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read config file {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        # API key is a secret
        try:
            path.chmod(0o600)
        except OSError:
            logger.debug("Could not restrict permissions on %s", path)

    @property
    def api_key(self) -> Optional[str]:
        """API key from NEOCITIES_API_KEY or the config file."""
        return os.environ.get("NEOCITIES_API_KEY") or self._read().get("api_key")

    @property
    def sitename(self) -> Optional[str]:
        """Site name from NEOCITIES_SITENAME or the config file."""
        return os.environ.get("NEOCITIES_SITENAME") or self._read().get("sitename")

    @property
    def api_url(self) -> str:
        """Base URL of the Neocities API."""
        return os.environ.get("NEOCITIES_API_URL", DEFAULT_API_URL).rstrip("/")

    @property
    def state_dir(self) -> Path:
        """Directory holding pull checkpoints."""
        return self.config_dir / STATE_DIR_NAME

    def is_configured(self) -> bool:
        """Check whether an API key is available."""
        return bool(self.api_key)

    def save_credentials(self, api_key: str, sitename: Optional[str] = None) -> None:
        """Store the API key (and site name) in the config file.

        Args:
            api_key: API key returned by the key endpoint
            sitename: Site the key belongs to
        """
        data = self._read()
        data["api_key"] = api_key
        if sitename:
            data["sitename"] = sitename
        self._write(data)
        logger.debug("Saved credentials to %s", self.get_config_path())

    def clear_credentials(self) -> bool:
        """Remove the stored config file.

        Returns:
            True if a config file was removed, False if none existed
        """
        path = self.get_config_path()
        if path.exists():
            path.unlink()
            return True
        return False


config = Config()
