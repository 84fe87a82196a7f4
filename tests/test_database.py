"""Tests for connection handling against a patched oracledb driver."""

from unittest.mock import MagicMock, PropertyMock, patch

import oracledb
import pytest

from oracledb_exporter import database
from oracledb_exporter.config import Settings, TargetDescriptor
from oracledb_exporter.errors import ConnectionFailure, IdentityQueryFailure

from .fakes import FakeConnection


TARGET = TargetDescriptor(connection="dbhost:1521/ORCLPDB1", user="system", password="secret")


def test_open_connection_sets_call_timeout():
    conn = MagicMock()
    with patch.object(database.oracledb, "connect", return_value=conn) as connect:
        result = database.open_connection(TARGET, Settings(query_timeout=2.5, connect_timeout=4.0))

    assert result is conn
    assert conn.call_timeout == 2500
    connect.assert_called_once_with(
        user="system", password="secret", dsn="dbhost:1521/ORCLPDB1", tcp_connect_timeout=4.0)


def test_open_connection_retries_then_fails():
    settings = Settings(connection_retries=3, retry_delay=0)
    error = oracledb.DatabaseError("ORA-12541: TNS:no listener")
    with patch.object(database.oracledb, "connect", side_effect=error) as connect:
        with pytest.raises(ConnectionFailure) as excinfo:
            database.open_connection(TARGET, settings)

    assert connect.call_count == 3
    assert excinfo.value.__cause__ is error


def test_open_connection_recovers_on_retry():
    conn = MagicMock()
    settings = Settings(connection_retries=2, retry_delay=0)
    side_effect = [oracledb.DatabaseError("ORA-12541"), conn]
    with patch.object(database.oracledb, "connect", side_effect=side_effect):
        assert database.open_connection(TARGET, settings) is conn


def test_fetch_identity():
    conn = FakeConnection({"db_unique_name": [("ORCL", "orcl1")]})

    assert database.fetch_identity(conn) == ("ORCL", "orcl1")


@pytest.mark.parametrize("response", [[], [(None, "orcl1")], RuntimeError("ORA-00942")])
def test_fetch_identity_failures(response):
    conn = FakeConnection({"db_unique_name": response})

    with pytest.raises(IdentityQueryFailure):
        database.fetch_identity(conn)


def test_close_quietly_logs_close_errors(caplog):
    conn = MagicMock()
    conn.close.side_effect = oracledb.InterfaceError("DPY-1001: not connected")

    database.close_quietly(conn)
    database.close_quietly(None)

    assert "Failed to close connection" in caplog.text


def test_sub_millisecond_query_timeout_still_bounds_calls():
    conn = MagicMock()
    with patch.object(database.oracledb, "connect", return_value=conn):
        database.open_connection(TARGET, Settings(query_timeout=0.0004))

    assert conn.call_timeout == 1


def test_connection_closed_when_call_timeout_cannot_be_set():
    conn = MagicMock()
    type(conn).call_timeout = PropertyMock(side_effect=RuntimeError("unsupported"))
    with patch.object(database.oracledb, "connect", return_value=conn):
        with pytest.raises(RuntimeError):
            database.open_connection(TARGET, Settings())

    conn.close.assert_called_once_with()
