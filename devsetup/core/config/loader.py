"""
Configuration store — the persisted machine identity and log level.

Lives in ``config.yml`` under the per-user application directory
(``click.get_app_dir("devsetup")``), or wherever ``DEVSETUP_CONFIG``
points. A missing file is created from detection on first load;
missing keys are default-filled. A file that exists but can't be
parsed or validated is an error, never silently replaced.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import click
import yaml
from pydantic import BaseModel, Field, ValidationError, field_serializer, field_validator

from devsetup.core.detection.machine import detect_machine
from devsetup.core.models.machine import Machine
from devsetup.core.observability.log_bus import LogLevel

logger = logging.getLogger(__name__)

APP_NAME = "devsetup"
CONFIG_FILE = "config.yml"
ENV_CONFIG = "DEVSETUP_CONFIG"


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or invalid."""


def _detected_machine() -> Machine:
    return detect_machine()


class Config(BaseModel):
    machine: Machine = Field(default_factory=_detected_machine)
    log_level: LogLevel = LogLevel.INFO

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_level(cls, value: object) -> LogLevel:
        if isinstance(value, (str, int)):
            return LogLevel.parse(value)
        return value  # type: ignore[return-value]

    @field_serializer("log_level")
    def _level_name(self, value: LogLevel) -> str:
        return value.name.lower()


def default_config_path() -> Path:
    override = os.environ.get(ENV_CONFIG)
    if override:
        return Path(override).expanduser()
    return Path(click.get_app_dir(APP_NAME)) / CONFIG_FILE


def load_config(path: Path | None = None) -> Config:
    """Load the configuration, creating it on first use.

    Raises:
        ConfigError: If the file exists but can't be read or validated.
    """
    path = path or default_config_path()

    if not path.exists():
        logger.info("No config at %s, detecting machine", path)
        config = Config()
        save_config(config, path)
        return config

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.debug("Loaded config from %s (%s)", path, config.machine.describe())
    return config


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write ``config`` as YAML (atomic: temp file, then rename)."""
    path = path or default_config_path()
    content = yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=".config_", suffix=".tmp")
        os.close(fd)
        tmp = Path(tmp_path)
        try:
            tmp.write_text(content, encoding="utf-8")
            tmp.replace(path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as e:
        raise ConfigError(f"Cannot write {path}: {e}") from e

    logger.debug("Config saved to %s", path)
    return path
