# --- tmap_app/services/config_service.py ---
import configparser
import logging
import os

from tmap_lib.constants import APP_CONFIG
from tmap_lib.errors import ValidationError
from tmap_lib.schema import GenerationLimits

log = logging.getLogger("tmap.config")


class ConfigService:
    """Manages reading from and writing to the tmap.cfg file."""

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.defaults = {
            "Limits": {
                "min_tile_size": APP_CONFIG["MIN_TILE_SIZE"],
                "max_tile_size": APP_CONFIG["MAX_TILE_SIZE"],
                "min_map_size": APP_CONFIG["MIN_MAP_SIZE"],
                "max_map_size": APP_CONFIG["MAX_MAP_SIZE"],
            },
        }

    def get_settings(self) -> dict:
        """Reads settings from the config file, applying defaults if missing."""
        config = configparser.ConfigParser()
        for section, values in self.defaults.items():
            config[section] = {k: str(v) for k, v in values.items()}

        if not config.read(self.config_path):
            log.info("Config file not found at %s. Creating with defaults.", self.config_path)
            self.save_settings(self._config_to_dict(config))

        return self._config_to_dict(config)

    def save_settings(self, settings: dict):
        """Saves a dictionary of settings to the config file."""
        config = configparser.ConfigParser()
        for section, values in settings.items():
            config[section] = {k: str(v) for k, v in values.items()}

        try:
            config_dir = os.path.dirname(self.config_path)
            if config_dir:
                os.makedirs(config_dir, exist_ok=True)
            with open(self.config_path, "w") as configfile:
                config.write(configfile)
            log.info("Settings successfully saved to %s", self.config_path)
        except IOError as e:
            log.error("Failed to write settings to %s: %s", self.config_path, e)

    def get_limits(self) -> GenerationLimits:
        """Builds the size bounds from the [Limits] section."""
        section = self.get_settings().get("Limits", {})
        values = {}
        for key, default in self.defaults["Limits"].items():
            raw = section.get(key, default)
            try:
                values[key] = int(raw)
            except (TypeError, ValueError):
                raise ValidationError(
                    f"Config value Limits.{key} must be an integer, got {raw!r}.", field=key
                ) from None
        limits = GenerationLimits(**values)
        if limits.min_tile_size > limits.max_tile_size or limits.min_map_size > limits.max_map_size:
            raise ValidationError("Config [Limits] has a minimum above its maximum.")
        log.debug("Generation limits: %s", limits)
        return limits

    def _config_to_dict(self, config: configparser.ConfigParser) -> dict:
        """Converts a ConfigParser object to a nested dictionary."""
        return {s: dict(config.items(s)) for s in config.sections()}
