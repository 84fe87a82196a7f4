"""Shared pytest fixtures."""

import pytest

from oracledb_exporter.config import CustomQuery, ExporterConfig, Settings, TargetDescriptor

from .fakes import TARGET


@pytest.fixture
def settings():
    return Settings(query_timeout=1.0, connect_timeout=1.0)


@pytest.fixture
def target():
    return TargetDescriptor(
        connection=TARGET,
        user="system",
        password="secret",
        queries=(CustomQuery(name="active_users", sql="select count(*) from v$session"),),
    )


@pytest.fixture
def exporter_config(target, settings):
    return ExporterConfig(settings=settings, targets=(target,))
