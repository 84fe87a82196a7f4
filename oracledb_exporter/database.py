import logging
import math
import time
import traceback

import oracledb

from .errors import ConnectionFailure, IdentityQueryFailure


IDENTITY_SQL = "select db_unique_name, instance_name from v$database, v$instance"


def open_connection(target, settings):
    """
    Opens one connection to the target, retrying up to settings.connection_retries times.
    Every later call on the connection is bounded by settings.query_timeout.
    """
    retries = max(1, settings.connection_retries)
    last_exc = None
    for attempt in range(1, retries + 1):
        start_time = time.time()
        try:
            logging.debug(f"Connection attempt {attempt} to '{target.connection}' as user '{target.user}'")
            conn = oracledb.connect(
                user=target.user,
                password=target.password,
                dsn=target.connection,
                tcp_connect_timeout=settings.connect_timeout,
            )
            try:
                conn.call_timeout = max(1, math.ceil(settings.query_timeout * 1000))
            except Exception:
                close_quietly(conn)
                raise
            elapsed = time.time() - start_time
            logging.info(f"Connected to '{target.connection}' in {elapsed:.2f} seconds (attempt {attempt})")
            return conn
        except oracledb.Error as exc:
            last_exc = exc
            elapsed = time.time() - start_time
            logging.warning(f"Connection attempt {attempt} to '{target.connection}' failed after {elapsed:.2f} seconds: {exc}")
            logging.debug(f"Traceback:\n{traceback.format_exc()}")
            if attempt < retries:
                time.sleep(settings.retry_delay)
    raise ConnectionFailure(f"All connection attempts to '{target.connection}' failed: {last_exc}") from last_exc


def run_query(conn, sql):
    cursor = conn.cursor()
    try:
        cursor.execute(sql)
        return cursor.fetchall()
    finally:
        cursor.close()


def fetch_identity(conn):
    """Returns (database, instance) as reported by the connected database."""
    try:
        rows = run_query(conn, IDENTITY_SQL)
    except Exception as exc:
        raise IdentityQueryFailure(f"Identity query failed: {exc}") from exc
    if not rows:
        raise IdentityQueryFailure("Identity query returned no rows")
    row = rows[0]
    if len(row) < 2 or row[0] is None or row[1] is None:
        raise IdentityQueryFailure(f"Identity query returned an unusable row: {row}")
    return str(row[0]), str(row[1])


def close_quietly(conn):
    if conn is None:
        return
    try:
        conn.close()
    except Exception as close_exc:
        logging.error(f"Failed to close connection: {close_exc}")
