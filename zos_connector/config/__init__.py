# zos_connector/config/__init__.py
"""Configuration system for zos-connector."""

from .loader import get_config_path, load_config
from .schema import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_JOB_HEADER,
    DEFAULT_JOB_STEP,
    JobConfig,
    SCLMConfig,
    ServerConfig,
    ZosConnectorConfig,
)

__all__ = [
    "ZosConnectorConfig",
    "ServerConfig",
    "JobConfig",
    "SCLMConfig",
    "DEFAULT_JOB_HEADER",
    "DEFAULT_JOB_STEP",
    "DEFAULT_DATE_FORMAT",
    "load_config",
    "get_config_path",
]
