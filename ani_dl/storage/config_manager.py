"""
Reads and writes the ani-dl INI file and turns it into a validated AppConfig.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ani_dl.exceptions import ConfigurationError
from ani_dl.models.config import AppConfig

log = logging.getLogger(__name__)

SECTION = "DEFAULT"


class ConfigManager:
    """Owns the INI file at `path`. Every setting lives in its [DEFAULT] section."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> AppConfig:
        """
        Builds the effective configuration: defaults, then the file, then any
        command-line overrides.

        A missing file is not an error; built-in defaults are used instead.

        Raises:
            ConfigurationError: If the file cannot be parsed or a value is invalid.
        """
        values = self._read_file() if self.path.is_file() else {}
        if not values:
            log.debug(f"No settings read from '{self.path}', using defaults.")
        values.update(cli_options or {})

        try:
            return AppConfig(**values, config_path=str(self.path.parent))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in '{self.path}':\n{e}") from e

    def save_new_config(self, settings: dict[str, Any] | None = None) -> None:
        """Writes a complete config file; keys absent from `settings` get defaults."""
        settings = settings or {}
        defaults = AppConfig()
        parser = configparser.ConfigParser(interpolation=None)
        parser[SECTION] = {
            key: str(settings.get(key, getattr(defaults, key)))
            for key in sorted(AppConfig.get_ini_keys())
        }
        self._write(parser)

    def _read_file(self) -> dict[str, Any]:
        try:
            self._parser.read(self.path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Could not parse '{self.path}': {e}") from e

        added = self._backfill_defaults()
        if added:
            try:
                self._write(self._parser)
                log.info(
                    f"[yellow]Added new settings to the config file: "
                    f"{', '.join(added)}[/yellow]"
                )
            except ConfigurationError as e:
                log.error(f"{e}")

        section = self._parser[SECTION]
        return {key: section[key] for key in AppConfig.get_ini_keys() if key in section}

    def _backfill_defaults(self) -> list[str]:
        """Adds any known key missing from the file. Returns the keys added."""
        defaults = AppConfig()
        section = self._parser[SECTION]
        added = []
        for key in sorted(AppConfig.get_ini_keys()):
            if key in section:
                continue
            section[key] = str(getattr(defaults, key))
            log.debug(f"Config key '{key}' missing, defaulting to '{section[key]}'.")
            added.append(key)
        return added

    def _write(self, parser: configparser.ConfigParser) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                parser.write(f)
        except OSError as e:
            raise ConfigurationError(f"Could not write '{self.path}': {e}") from e
