import argparse
import logging
import sys

from . import __version__
from .app import DEFAULT_TELEMETRY_PATH, create_app
from .errors import ConfigError
from .logs import configure_logging


def parse_listen_address(address):
    """Split ':9161' or 'host:9161' into (host, port); an empty host means all interfaces."""
    host, _, port = address.rpartition(':')
    try:
        return host or '0.0.0.0', int(port)
    except ValueError:
        raise ValueError(f"Invalid listen address: {address}")


def build_parser():
    parser = argparse.ArgumentParser(prog='oracledb_exporter', description='Prometheus Oracle exporter')
    parser.add_argument('--web.listen-address', dest='listen_address', default=':9161',
                        help='Address to listen on for web interface and telemetry.')
    parser.add_argument('--web.telemetry-path', dest='telemetry_path', default=DEFAULT_TELEMETRY_PATH,
                        help='Path under which to expose metrics.')
    parser.add_argument('--configfile', dest='configfile', default='oracle.yml',
                        help='Configuration file in YAML format.')
    parser.add_argument('--log.level', dest='log_level', default='INFO',
                        help='Log level (DEBUG, INFO, WARNING, ERROR).')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    logging.info(f"Starting Prometheus Oracle exporter {__version__}")

    try:
        host, port = parse_listen_address(args.listen_address)
    except ValueError as e:
        parser.error(str(e))
    try:
        app = create_app(args.configfile, telemetry_path=args.telemetry_path)
    except ConfigError as e:
        logging.error(f"Cannot load configuration: {e}")
        return 1

    logging.info(f"Listening on {host}:{port}")
    app.run(host=host, port=port, threaded=True)
    return 0


if __name__ == '__main__':
    sys.exit(main())
