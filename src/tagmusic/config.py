"""
Configuration management for tag-music.

Loads and validates a TOML config file. Every tunable parameter is bounded
or restricted to a set of allowed values and validated at startup.
"""

import copy
import os
from pathlib import Path
from typing import Dict, Any, Optional
import toml
import logging

logger = logging.getLogger(__name__)

JOBS_ENV_VAR = "TAGMUSIC_JOBS"
CONFIG_ENV_VAR = "TAGMUSIC_CONFIG_PATH"


class ConfigError(Exception):
    """Raised when config validation fails."""
    pass


class Config:
    """Configuration loader and validator."""

    PARAM_BOUNDS = {
        "scheduler": {
            "jobs": (0, 256),  # 0 = processor count - 2
            "formats": None,  # List type
        },
        "analysis": {
            "hop_size": (64, 4096),
            "buf_size": (256, 16384),
        },
        "key_detection": {},
        "repair": {},
    }

    ALLOWED_VALUES = {
        "analysis": {
            "beat_method": ("aubiotrack", "aubio"),
            "rounding": ("nearest", "even"),
            "decimal_point": (".", ","),
        },
        "key_detection": {
            "notation": ("raw", "camelot"),
        },
    }

    DEFAULT_CONFIG = {
        "config_version": "1.0",
        "scheduler": {
            "jobs": 0,
            "formats": ["mp3", "m4a"],
        },
        "analysis": {
            "beat_method": "aubiotrack",
            "rounding": "nearest",
            "decimal_point": ".",
            "hop_size": 512,
            "buf_size": 1024,
        },
        "key_detection": {
            "notation": "raw",
        },
        "repair": {
            "temp_dir": "",
        },
    }

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize config from dictionary."""
        self.data = copy.deepcopy(config_dict)
        self._validate()
        self._apply_env_overrides()

    @classmethod
    def default(cls) -> "Config":
        return cls(cls.DEFAULT_CONFIG)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load config from TOML file.

        Args:
            config_path: Path to tagmusic.toml. If None, uses TAGMUSIC_CONFIG_PATH env var
                        or defaults to tagmusic.toml in the working directory.

        Returns:
            Config instance.

        Raises:
            ConfigError: If config is invalid or unreadable.
        """
        if config_path is None:
            config_path = os.getenv(CONFIG_ENV_VAR, "tagmusic.toml")

        config_path = Path(config_path)

        if not config_path.exists():
            logger.warning(f"Config file not found: {config_path}. Using defaults.")
            return cls.default()

        try:
            config_dict = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}")

        logger.info(f"Loaded config from {config_path}")
        return cls(config_dict)

    def _validate(self) -> None:
        """
        Fill in defaults and validate all parameters.

        Raises:
            ConfigError: If any parameter is out of bounds or not allowed.
        """
        for section, defaults in self.DEFAULT_CONFIG.items():
            if not isinstance(defaults, dict):
                continue

            if section not in self.data:
                logger.debug(f"Missing config section: {section}. Using defaults.")
                self.data[section] = copy.deepcopy(defaults)
                continue

            section_data = self.data[section]
            if not isinstance(section_data, dict):
                raise ConfigError(f"Config section [{section}] must be a table, got {section_data!r}")

            for param, default_val in defaults.items():
                if param not in section_data:
                    logger.warning(f"Missing param {section}.{param}. Using default: {default_val}")
                    section_data[param] = copy.deepcopy(default_val)

        for section, params in self.PARAM_BOUNDS.items():
            section_data = self.data[section]

            for param, bounds in params.items():
                value = section_data[param]

                # Handle list types (no bounds check needed)
                if bounds is None:
                    continue

                min_val, max_val = bounds
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigError(f"Parameter {section}.{param}={value!r} is not a number")
                if not (min_val <= value <= max_val):
                    raise ConfigError(
                        f"Parameter {section}.{param}={value} out of bounds "
                        f"[{min_val}, {max_val}]"
                    )

        for section, params in self.ALLOWED_VALUES.items():
            for param, allowed in params.items():
                value = self.data[section][param]
                if value not in allowed:
                    raise ConfigError(
                        f"Parameter {section}.{param}={value!r} must be one of {list(allowed)}"
                    )

        formats = self.data["scheduler"]["formats"]
        if not isinstance(formats, list) or not formats:
            raise ConfigError(f"Parameter scheduler.formats={formats!r} must be a non-empty list")
        unknown = [f for f in formats if str(f).lower() not in ("mp3", "m4a")]
        if unknown:
            raise ConfigError(f"Unsupported formats in scheduler.formats: {unknown}")

        logger.debug("Config validation passed")

    def _apply_env_overrides(self) -> None:
        raw = os.getenv(JOBS_ENV_VAR)
        if raw is None or raw.strip() == "":
            return

        try:
            jobs = int(raw)
        except ValueError:
            raise ConfigError(f"{JOBS_ENV_VAR}={raw!r} is not an integer")
        if jobs < 1:
            raise ConfigError(f"{JOBS_ENV_VAR}={jobs} must be at least 1")

        logger.debug(f"Parallelism overridden by {JOBS_ENV_VAR}={jobs}")
        self.data["scheduler"]["jobs"] = jobs

    def get(self, section: str, param: str, default: Any = None) -> Any:
        """Get a config parameter safely."""
        return self.data.get(section, {}).get(param, default)

    def __getitem__(self, section: str) -> Dict[str, Any]:
        """Allow dict-like access: config["analysis"]"""
        return self.data.get(section, {})

    def __repr__(self) -> str:
        version = self.data.get('config_version', 'unknown')
        return f"Config(version={version})"
