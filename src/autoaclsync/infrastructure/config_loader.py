"""
Configuration loader module.

Handles loading and validation of the JSON configuration file:
- acl_sync.json: workbook location, device list and default sync settings

Relative paths inside the file (workbook, device_dir, workdir, lock and
revision files) are resolved against the configuration directory's parent,
so the tool behaves the same whatever directory cron starts it from.
"""

import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from autoaclsync.domain.config import AppConfig


logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    Load and validate configuration files.

    Parses JSON with clear error messages, then hands the data to the
    pydantic models for schema validation.
    """

    def __init__(self, config_dir: str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing configuration files.
                        If relative and running frozen, resolved next to the executable.
        """
        if getattr(sys, "frozen", False) and not Path(config_dir).is_absolute():
            self.config_dir = Path(sys.executable).parent / config_dir
        else:
            self.config_dir = Path(config_dir)

        logger.debug("ConfigLoader initialized with directory: %s", self.config_dir)

    @property
    def base_dir(self) -> Path:
        """Directory that relative paths in the config are resolved against."""
        return self.config_dir.resolve().parent

    def _load_json_file(self, filepath: Path) -> dict:
        """
        Load and parse a JSON object file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If JSON is malformed, empty or not an object
            PermissionError: If file cannot be read
        """
        if not filepath.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {filepath}\n"
                f"Hint: Copy config/acl_sync.example.json and list your controllers in it."
            )

        try:
            content = filepath.read_text(encoding="utf-8")
        except PermissionError as e:
            raise PermissionError(
                f"Cannot read config file (permission denied): {filepath}\n"
                f"Hint: The cron user needs read access to the configuration directory."
            ) from e

        if not content.strip():
            raise ValueError(
                f"Configuration file is empty: {filepath}\n"
                f"Hint: Start from config/acl_sync.example.json"
            )

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Invalid JSON in config file: {filepath}\n"
                f"Error at line {e.lineno}, column {e.colno}: {e.msg}\n"
                f"Hint: JSON allows no comments or trailing commas."
            ) from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a JSON object: {filepath}")
        return data

    def _resolve(self, value: str | None) -> str | None:
        if value is None:
            return None
        path = Path(value)
        if path.is_absolute():
            return str(path)
        return str(self.base_dir / path)

    def load_app_config(self, filename: str = "acl_sync.json") -> AppConfig:
        """
        Load the application configuration.

        Args:
            filename: Config file name

        Returns:
            AppConfig with relative paths resolved

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is malformed or fails validation
        """
        filepath = self.config_dir / filename
        logger.info("Loading configuration from: %s", filepath)

        data = self._load_json_file(filepath)

        try:
            config = AppConfig.model_validate(data)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ValueError(f"Invalid configuration in {filepath}: {problems}") from e

        sync = config.sync.model_copy(
            update={
                "workdir": self._resolve(config.sync.workdir),
                "lock_file": self._resolve(config.sync.lock_file),
                "revision_file": self._resolve(config.sync.revision_file),
            }
        )
        config = config.model_copy(
            update={
                "workbook": self._resolve(config.workbook),
                "device_dir": self._resolve(config.device_dir),
                "sync": sync,
            }
        )

        logger.info(
            "Loaded configuration: workbook %s, %d device(s)",
            config.workbook,
            len(config.devices),
        )
        return config
