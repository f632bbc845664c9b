"""Central configuration helper for the DTS tracker."""

import logging
import os
from pathlib import Path


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        val = os.getenv(key) or None  # empty string → None
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
            ValueError: If the value cannot be parsed as a number.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (bool | None): Fallback value if the variable is not set.

        Returns:
            bool: The resolved boolean value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_path_val(self, key: str, default: Path | str | None = None) -> Path:
        """Read a filesystem path environment variable.

        Relative paths are resolved against ROOT_DIR (or the working directory
        if ROOT_DIR is not set).

        Args:
            key (str): Environment variable name (case-insensitive).
            default (Path | str | None): Fallback path if the variable is not set.

        Returns:
            Path: The resolved, absolute path.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        raw = self.get_string_val(key, default=str(default) if default is not None else None)
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = self.get_root_dir() / path
        return path

    def get_root_dir(self) -> Path:
        """Return the application root directory (ROOT_DIR, else the working directory)."""
        return Path(self.get_string_val("ROOT_DIR", default=os.getcwd()))

    def get_cache_dir(self) -> Path:
        """Directory holding the local cache blobs (DTS_CACHE_DIR, default <ROOT_DIR>/data)."""
        return self.get_path_val("DTS_CACHE_DIR", default="data")

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger
