"""End-to-end tests for the HTTP surface, with fake database connections."""

import gzip

import pytest

from oracledb_exporter.app import create_app
from oracledb_exporter.collector import Collector
from oracledb_exporter.config import ExporterConfig, TargetDescriptor
from oracledb_exporter.errors import ConnectionFailure

from .fakes import HEALTHY_ROWS, TARGET, FakeConnector


BAD_TARGET = "dbhost:1521/BADCREDS"


@pytest.fixture
def connectors():
    rows = dict(HEALTHY_ROWS)
    rows["select count(*) from v$session"] = [(42,)]
    return {
        TARGET: FakeConnector(responses=rows),
        BAD_TARGET: FakeConnector(error=ConnectionFailure("ORA-01017: invalid username/password")),
    }


@pytest.fixture
def app(exporter_config, connectors):
    config = ExporterConfig(
        settings=exporter_config.settings,
        targets=exporter_config.targets + (TargetDescriptor(connection=BAD_TARGET, user="x", password="y"),),
    )

    def factory(target, settings):
        return Collector(target, settings, connect=connectors[target.connection])

    app = create_app(config, telemetry_path="/scrape", collector_factory=factory)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def test_landing_page_links_to_telemetry_path(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert b"href='/scrape'" in resp.data


def test_scrape_healthy_target(client, connectors):
    resp = client.get("/scrape", query_string={"target": TARGET})
    body = resp.get_data(as_text=True)

    assert resp.status_code == 200
    assert resp.headers["Content-Type"].startswith("text/plain")
    assert 'oracledb_up{database="ORCL",instance="orcl1"} 1.0' in body
    assert 'oracledb_uptime{database="ORCL",instance="orcl1"} 12.5' in body
    assert 'oracledb_query{database="ORCL",instance="orcl1",name="active_users"} 42.0' in body
    assert ('oracledb_tablespace{autoextend="YES",contents="PERMANENT",database="ORCL",'
            'instance="orcl1",name="USERS",type="used"} 600.0') in body
    assert len(connectors[TARGET].connections) == 1
    assert connectors[TARGET].connections[0].closed


def test_scrape_with_bad_credentials(client):
    resp = client.get("/scrape", query_string={"target": BAD_TARGET})
    body = resp.get_data(as_text=True)

    assert resp.status_code == 200
    assert 'oracledb_up{database="",instance=""} 0.0' in body
    assert 'oracledb_exporter_scrape_errors_total{database="",instance=""} 1.0' in body
    assert "oracledb_tablespace{" not in body
    assert "oracledb_session{" not in body


def test_unknown_target_is_a_client_error(client, app):
    resp = client.get("/scrape", query_string={"target": "nohost:1521/NOPE"})

    assert resp.status_code == 400
    assert resp.get_data(as_text=True) == "Target not found nohost:1521/NOPE"
    assert len(app.extensions["target_registry"]) == 0


def test_missing_target_parameter(client):
    resp = client.get("/scrape")

    assert resp.status_code == 400


def test_gzip_when_accepted(client):
    resp = client.get("/scrape", query_string={"target": TARGET}, headers={"Accept-Encoding": "gzip"})

    assert resp.headers["Content-Encoding"] == "gzip"
    assert b"oracledb_up" in gzip.decompress(resp.data)


def test_repeated_scrapes_reuse_the_collector(client, app):
    client.get("/scrape", query_string={"target": TARGET})
    resp = client.get("/scrape", query_string={"target": TARGET})

    registry = app.extensions["target_registry"]
    assert len(registry) == 1
    assert 'oracledb_exporter_scrapes_total{database="ORCL",instance="orcl1"} 2.0' in resp.get_data(as_text=True)
