# zos_connector/config/loader.py
"""
Read the YAML config file into a ZosConnectorConfig.

The file lives in the per-user config directory (platformdirs) unless
ZOS_CONNECTOR_CONFIG or an explicit path points elsewhere. A missing file is
written out with every default so users have something to edit.
Credentials never come from this file.
"""

import logging
import os
from pathlib import Path

import yaml
from platformdirs import user_config_path
from pydantic import ValidationError

from zos_connector.errors import PreconditionError

from .schema import ZosConnectorConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ZOS_CONNECTOR_CONFIG"
CREDENTIAL_KEYS = ("user", "username", "password")


def get_config_path() -> Path:
    """Config file path: $ZOS_CONNECTOR_CONFIG, else config.yaml in the user config dir."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return user_config_path("zos-connector", ensure_exists=True) / "config.yaml"


def _write_defaults(path: Path) -> ZosConnectorConfig:
    config = ZosConnectorConfig()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(
            config.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False
        )
    logger.info(f"Wrote default config to {path}")
    return config


def load_config(path: Path | None = None) -> ZosConnectorConfig:
    """
    Load and validate the config file, creating it with defaults if missing.

    Args:
        path: Explicit config file (default: get_config_path())

    Raises:
        PreconditionError: If the file is not valid YAML, not a mapping or
            fails validation
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        return _write_defaults(config_path)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise PreconditionError(f"Config file {config_path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise PreconditionError(f"Config file {config_path} must contain a mapping")

    server = data.get("server")
    if isinstance(server, dict) and any(key in server for key in CREDENTIAL_KEYS):
        # Values are dropped by validation and never echoed
        logger.warning(
            f"Ignoring credentials in {config_path}; use ZOS_USER and ZOS_PASSWORD instead"
        )

    try:
        config = ZosConnectorConfig.model_validate(data)
    except ValidationError as e:
        raise PreconditionError(f"Invalid config file {config_path}: {e}") from e

    logger.debug(f"Loaded config from {config_path}")
    return config
