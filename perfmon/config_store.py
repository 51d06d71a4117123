"""
Named configuration profiles.

Each profile is stored as ``<profile_name>_profile.json`` in the profile
directory and holds every Config field except the process-level ``system``
section.
"""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

from perfmon.config import Config, config_to_dict, parse_profile
from perfmon.errors import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)


class ConfigStore:
    """
    Saves and loads configuration profiles as JSON text.

    Usage:
        store = ConfigStore("profiles")
        store.save(config, "Mobile")
        config = store.load("Mobile")
    """

    def __init__(self, directory: str):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def profile_path(self, profile_name: str) -> Path:
        if not profile_name or Path(profile_name).name != profile_name:
            raise ValueError(f"Invalid profile name: {profile_name!r}")
        return self._directory / f"{profile_name}_profile.json"

    def exists(self, profile_name: str) -> bool:
        return self.profile_path(profile_name).exists()

    def save(self, config: Config, profile_name: str) -> Config:
        """
        Write a config under a profile name.

        Args:
            config: Configuration to persist
            profile_name: Profile to write; also becomes the saved profile_name

        Returns:
            Copy of ``config`` carrying the new profile name

        Raises:
            PersistenceError: If the profile cannot be written
        """
        path = self.profile_path(profile_name)
        named = replace(config, profile_name=profile_name)
        text = json.dumps(config_to_dict(named), indent=2)

        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise PersistenceError(f"Failed to save profile {path}: {e}") from e

        logger.info(f"Saved configuration profile: {path}")
        return named

    def load(self, profile_name: str, base: Optional[Config] = None) -> Config:
        """
        Read and validate a profile.

        Args:
            profile_name: Profile to read
            base: Config whose ``system`` section the result keeps

        Returns:
            Validated Config

        Raises:
            PersistenceError: If the profile is missing, unreadable or not JSON
            ConfigurationError: If the profile does not match the schema
        """
        path = self.profile_path(profile_name)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise PersistenceError(f"Profile not found: {path}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Profile is not valid JSON: {path}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to read profile {path}: {e}") from e

        try:
            config = parse_profile(data, base=base, strict=True)
        except ConfigurationError as e:
            raise ConfigurationError(f"Profile {path} rejected: {e}") from e

        logger.info(f"Loaded configuration profile: {path}")
        return config
