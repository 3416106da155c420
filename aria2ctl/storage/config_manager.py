"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import shlex
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from aria2ctl.exceptions import ConfigurationError
from aria2ctl.models.settings import ClientSettings

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the client's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> ClientSettings:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing file is not an error: the defaults describe a local daemon
        on the standard port.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated ClientSettings object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(f"Error parsing configuration file: {e}") from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_from_file = self.get_config_as_dict()
        else:
            log.debug(f"No configuration file at '{self.config_file_path}', using defaults.")

        if cli_options:
            config_from_file.update(cli_options)

        try:
            return ClientSettings(**config_from_file)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save; missing keys get defaults.
        """
        try:
            validated = ClientSettings(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {
            key: _to_ini(getattr(validated, key)) for key in ClientSettings.get_ini_keys()
        }

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        defaults = ClientSettings()
        try:
            return {
                "host": section.get("host", defaults.host),
                "port": section.getint("port", defaults.port),
                "path": section.get("path", defaults.path),
                "secret": section.get("secret", defaults.secret),
                "timeout": section.getfloat("timeout", defaults.timeout),
                "executable": section.get("executable", defaults.executable),
                "arguments": shlex.split(section.get("arguments", "")),
                "working_directory": section.get(
                    "working_directory", defaults.working_directory
                ),
                "hide_window": section.getboolean("hide_window", defaults.hide_window),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = ClientSettings()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in ClientSettings.get_ini_keys():
            if key not in config_section:
                config_section[key] = _to_ini(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving


def _to_ini(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return shlex.join(map(str, value))
    return str(value)
