# tests/unit/conftest.py
"""Shared fixtures for unit tests."""

import pytest

from fakes import SECRET
from zos_connector.config.schema import JobConfig, ServerConfig
from zos_connector.transport.base import Credentials


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="USER1", password=SECRET)


@pytest.fixture
def server() -> ServerConfig:
    return ServerConfig(host="lpar1")


@pytest.fixture
def level1_server() -> ServerConfig:
    return ServerConfig(host="lpar1", jes_interface_level1=True)


@pytest.fixture
def job_config() -> JobConfig:
    return JobConfig(poll_interval=0)
