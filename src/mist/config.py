"""Configuration loading.

mist reads a TOML file with one table per profile::

    [notes]
    folder = "~/notes"
    ssh_address = "me@example.org"
    gpg_id = "me@example.org"
    temp_folder = "/tmp/notes-sync"
    gpg_program = "/usr/local/bin/gpg2"   # optional
    symmetric = false                     # optional

The first existing file among ``$MIST_CONFIG``, ``~/.config/mist/mist.toml``,
``~/.config/mist.toml`` and ``~/.mist.toml`` is used.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .errors import ConfigurationError
from .models import ProfileConfig

logger = logging.getLogger("mist.config")

CONFIG_ENV_VAR = "MIST_CONFIG"

REQUIRED_KEYS = ("folder", "ssh_address", "gpg_id", "temp_folder")

CONFIG_LOCATIONS = (
    ".config/mist/mist.toml",
    ".config/mist.toml",
    ".mist.toml",
)


def find_config_file(home: Optional[Path] = None) -> Path:
    """Locate the configuration file.

    Args:
        home: Home directory to search. Defaults to the current user's.

    Returns:
        Path to the first configuration file that exists.

    Raises:
        ConfigurationError: If no candidate exists.
    """
    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        env_path = Path(env_config).expanduser()
        if env_path.is_file():
            return env_path
        logger.warning("$MIST_CONFIG points to %s, which does not exist", env_path)

    home_path = (home or Path.home()).expanduser()
    for rel in CONFIG_LOCATIONS:
        candidate = home_path / rel
        if candidate.is_file():
            logger.debug("Using configuration file %s", candidate)
            return candidate

    searched = ", ".join(str(home_path / rel) for rel in CONFIG_LOCATIONS)
    raise ConfigurationError(f"No configuration file found (searched {searched})")


def load_configuration(
    profile: str,
    config_file: Optional[Path] = None,
    home: Optional[Path] = None,
) -> ProfileConfig:
    """Load and validate a single profile.

    Args:
        profile: Name of the table to read.
        config_file: Explicit configuration file. Skips the search when given.
        home: Home directory for the search.

    Returns:
        The validated, read-only profile.

    Raises:
        ConfigurationError: On a missing/unreadable file, an unknown
            profile, a missing key or a value of the wrong type.
    """
    path = config_file.expanduser() if config_file else find_config_file(home)

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Cannot parse configuration file {path}: {exc}") from exc

    table = data.get(profile)
    if table is None:
        raise ConfigurationError(f"Configuration error: profile [{profile}] not found")
    if not isinstance(table, dict):
        raise ConfigurationError(f"Configuration error: [{profile}] is not a table")

    missing = [key for key in REQUIRED_KEYS if key not in table]
    if missing:
        raise ConfigurationError(
            f"Configuration error: profile [{profile}] missing "
            + ", ".join(f"'{key}'" for key in missing)
            + " entry"
        )

    for key in (*REQUIRED_KEYS, "gpg_program"):
        if key in table and not isinstance(table[key], str):
            raise ConfigurationError(
                f"Configuration error: profile [{profile}] '{key}' must be a string"
            )

    try:
        return ProfileConfig(**{**table, "name": profile})
    except ValidationError as exc:
        keys = ", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"])
        raise ConfigurationError(
            f"Configuration error: profile [{profile}] has invalid value for {keys}"
        ) from exc
