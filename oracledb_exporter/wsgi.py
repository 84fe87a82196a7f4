"""WSGI entry point for gunicorn: ``gunicorn -c gunicorn_config.py oracledb_exporter.wsgi:app``."""
import os

from .app import DEFAULT_TELEMETRY_PATH, create_app
from .logs import configure_logging


configure_logging(os.environ.get('ORACLEDB_EXPORTER_LOG_LEVEL', 'INFO'))

app = create_app(
    os.environ.get('ORACLEDB_EXPORTER_CONFIG', 'oracle.yml'),
    telemetry_path=os.environ.get('ORACLEDB_EXPORTER_TELEMETRY_PATH', DEFAULT_TELEMETRY_PATH),
)
