"""User configuration for fetch and packaging defaults.

Values are read from ``offlinebuilder.cfg`` in the user config directory, or
from an explicit file. Environment variables and CLI options override them;
see ``offlinebuilder.cli.build``.

Example file:

    [fetch]
    concurrency = 8
    timeout = 60
    retries = 2
    backoff = 0.5

    [build]
    compression = lzma
"""

import configparser
import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from offlinebuilder import constants

APP_NAME = "offlinebuilder"

logger = logging.getLogger(__name__)


def default_config_dir() -> Path:
    if platform.system() == "Darwin":
        return Path(f"~/Library/Application Support/{APP_NAME}").expanduser()
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(
        os.path.expanduser("~"), ".config"
    )
    return Path(xdg_config_home) / APP_NAME


def get_config_file() -> Path:
    return default_config_dir() / f"{APP_NAME}.cfg"


class ConfigAccessor:
    """
    Read-only, typed access to an INI configuration file.

    A missing file, section or key is not an error; lookups return the
    given default. So does a value that cannot be converted, with a warning.

    Usage:
        config = ConfigAccessor()
        timeout = config.getfloat('fetch', 'timeout', default=30.0)
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else get_config_file()

        self.config = configparser.ConfigParser()
        if self.config_path.is_file():
            try:
                self.config.read(self.config_path)
            except configparser.Error as e:
                logger.warning(
                    f"Ignoring unreadable configuration {self.config_path}: {e}"
                )

    def get(self, section: str, key: str, default: Any = None) -> Any:
        if not self.config.has_option(section, key):
            return default
        return self.config.get(section, key)

    def getint(self, section: str, key: str, default: int) -> int:
        return self._typed(section, key, default, int)

    def getfloat(self, section: str, key: str, default: float) -> float:
        return self._typed(section, key, default, float)

    def _typed(self, section: str, key: str, default, cast):
        raw = self.get(section, key)
        if raw is None:
            return default
        try:
            return cast(raw)
        except ValueError:
            logger.warning(
                f"Invalid value '{raw}' for [{section}] {key} in {self.config_path}, "
                f"using {default}"
            )
            return default


@dataclass(frozen=True)
class FetchSettings:
    """Concurrency, timeout and retry policy for downloads."""

    concurrency: int = constants.DEFAULT_CONCURRENCY
    timeout: float = constants.DEFAULT_TIMEOUT
    retries: int = constants.DEFAULT_RETRIES
    backoff: float = constants.DEFAULT_BACKOFF


def load_fetch_settings(config_path: Optional[Path] = None) -> FetchSettings:
    """Read the [fetch] section, falling back to built-in defaults."""
    config = ConfigAccessor(config_path)
    timeout = config.getfloat("fetch", "timeout", constants.DEFAULT_TIMEOUT)
    return FetchSettings(
        concurrency=max(
            1, config.getint("fetch", "concurrency", constants.DEFAULT_CONCURRENCY)
        ),
        timeout=timeout if timeout > 0 else constants.DEFAULT_TIMEOUT,
        retries=max(0, config.getint("fetch", "retries", constants.DEFAULT_RETRIES)),
        backoff=max(0.0, config.getfloat("fetch", "backoff", constants.DEFAULT_BACKOFF)),
    )


def load_compression(config_path: Optional[Path] = None) -> str:
    """Read the archive compression method from the [build] section."""
    config = ConfigAccessor(config_path)
    return config.get("build", "compression", constants.DEFAULT_COMPRESSION)
