"""zlang Configuration — Project-level .zrc.yml support.

Loads configuration from .zrc.yml (or .zrc.yaml, .zrc.json,
zlang.config.yml) found in the working directory or any parent. Lets a
project pin:
  - Which C compiler to use
  - The default optimization tier
  - Extra C compiler flags
  - Whether to keep the generated C next to the executable

Example .zrc.yml:
    compiler: clang          # empty = first of gcc, clang, cc on PATH
    opt_level: 2
    march_native: true
    cflags:
      - "-Wall"
    keep_c: false
    log_level: info
"""

from __future__ import annotations

import os
import json
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ConfigError(ValueError):
    """A configuration file exists but cannot be used."""


@dataclass
class ZConfig:
    """Project-level zlang configuration."""
    # C compiler executable; empty = auto-detect
    compiler: str = ""
    # Default optimization tier (0-3)
    opt_level: int = 3
    # Extra flags passed to every compiler invocation
    cflags: List[str] = field(default_factory=list)
    # Add -march=native at tier 3
    march_native: bool = False
    # Write the generated C next to the output executable
    keep_c: bool = False
    # Logging threshold when no -v flag is given
    log_level: str = "warning"
    # File the settings were read from, if any
    source: Optional[str] = None

    def logging_level(self) -> int:
        return getattr(logging, self.log_level.upper())


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".zrc.yml",
    ".zrc.yaml",
    ".zrc.json",
    "zlang.config.yml",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> ZConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return ZConfig()

    try:
        with open(path, "r") as f:
            content = f.read()
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    # Parse based on extension
    try:
        if path.endswith(".json"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Malformed config file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    logger.debug("loaded config from %s", path)
    config = _dict_to_config(data)
    config.source = path
    return config


def _dict_to_config(data: Dict[str, Any]) -> ZConfig:
    """Convert a parsed dict to ZConfig. Unknown keys are ignored."""
    config = ZConfig()

    if "compiler" in data and data["compiler"] is not None:
        config.compiler = str(data["compiler"])
    if "opt_level" in data:
        level = data["opt_level"]
        if isinstance(level, bool) or not isinstance(level, int) or not 0 <= level <= 3:
            raise ConfigError(f"opt_level must be an integer from 0 to 3, got {level!r}")
        config.opt_level = level
    if "cflags" in data:
        flags = data["cflags"]
        if isinstance(flags, str):
            flags = flags.split()
        if not isinstance(flags, list):
            raise ConfigError(f"cflags must be a list of strings, got {flags!r}")
        config.cflags = [str(f) for f in flags]
    if "march_native" in data:
        config.march_native = _as_bool("march_native", data["march_native"])
    if "keep_c" in data:
        config.keep_c = _as_bool("keep_c", data["keep_c"])
    if "log_level" in data:
        level_name = str(data["log_level"]).lower()
        if level_name not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {level_name!r}")
        config.log_level = level_name

    return config


def _as_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value
