"""Configuration management for pyuilicious."""

import logging
import os
from pathlib import Path
from typing import Optional

from .exceptions import UiliciousConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.uilicious.com/v3.0"

ENV_USER = "UILICIOUS_USER"
ENV_PASS = "UILICIOUS_PASS"
ENV_API_URL = "UILICIOUS_API_URL"


class Config:
    """Reads credentials from the environment or ~/.config/pyuilicious/config.

    Environment variables take precedence over the config file. The config
    file holds ``KEY=value`` lines using the same names as the environment
    variables.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or Path.home() / ".config" / "pyuilicious"
        self.config_file = self.config_dir / "config"
        self._file_values: Optional[dict[str, str]] = None

    def _load_file(self) -> dict[str, str]:
        """Parse the config file once and cache the result."""
        if self._file_values is not None:
            return self._file_values

        values: dict[str, str] = {}
        if self.config_file.exists():
            try:
                text = self.config_file.read_text(encoding="utf-8")
            except OSError as e:
                raise UiliciousConfigError(
                    f"Unable to read config file {self.config_file}: {e}"
                ) from e
            for line in text.splitlines():
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                values[key.strip()] = value.strip().strip('"').strip("'")
        self._file_values = values
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._load_file().get(key)

    @property
    def user(self) -> Optional[str]:
        """Account login (email)."""
        return self._get(ENV_USER)

    @property
    def password(self) -> Optional[str]:
        """Account password."""
        return self._get(ENV_PASS)

    @property
    def api_url(self) -> str:
        """Base URL of the remote service."""
        return self._get(ENV_API_URL) or DEFAULT_API_URL

    def is_configured(self) -> bool:
        """Check whether both user and password are available."""
        return bool(self.user and self.password)

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_file

    def save_credentials(self, user: str, password: str) -> None:
        """Store credentials in the config file, keeping other keys.

        Args:
            user: Account login
            password: Account password
        """
        values = dict(self._load_file())
        values[ENV_USER] = user
        values[ENV_PASS] = password

        self.config_dir.mkdir(parents=True, exist_ok=True)
        lines = [f"{key}={value}" for key, value in values.items()]
        self.config_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        # Credentials are stored in plain text
        self.config_file.chmod(0o600)
        self._file_values = values
        logger.debug("Saved credentials to %s", self.config_file)


config = Config()
