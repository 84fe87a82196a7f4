import gzip
import logging

from flask import Flask, Response, request
from prometheus_client import CONTENT_TYPE_LATEST

from .config import ExporterConfig, load_config
from .errors import UnknownTarget
from .logs import apply_logging_timezone
from .registry import TargetRegistry


DEFAULT_TELEMETRY_PATH = '/scrape'
PLAIN_TEXT = 'text/plain; charset=utf-8'

LANDING_PAGE = """<html>
<head><title>Prometheus Oracle exporter</title></head>
<body>
<h1>Prometheus Oracle exporter</h1>
<p><a href='{path}'>Scrape</a></p>
</body>
</html>
"""


def make_text_response(body_text, status=200, content_type=PLAIN_TEXT):
    """Create a text response, gzip-compressed when the client supports it via Accept-Encoding."""
    body_bytes = body_text.encode('utf-8') if isinstance(body_text, str) else body_text

    accept_enc = request.headers.get('Accept-Encoding', '') or ''
    if 'gzip' in accept_enc.lower():
        compressed = gzip.compress(body_bytes)
        logging.debug(f"Compressed response: {len(body_bytes)} -> {len(compressed)} bytes")
        resp = Response(compressed, status=status)
        resp.headers['Content-Encoding'] = 'gzip'
        resp.headers['Content-Type'] = content_type
        resp.headers['Content-Length'] = str(len(compressed))
        return resp

    resp = Response(body_bytes, status=status)
    resp.headers['Content-Type'] = content_type
    resp.headers['Content-Length'] = str(len(body_bytes))
    return resp


def create_app(config, telemetry_path=DEFAULT_TELEMETRY_PATH, collector_factory=None):
    """
    Build the Flask app. `config` is either an ExporterConfig or a path to the YAML file.
    The app owns the TargetRegistry; it is reachable as app.extensions['target_registry'].
    """
    if not isinstance(config, ExporterConfig):
        config = load_config(config)
    apply_logging_timezone(config.settings.timezone)

    app = Flask(__name__)
    registry = TargetRegistry(config, collector_factory=collector_factory)
    app.extensions['target_registry'] = registry
    landing_page = LANDING_PAGE.format(path=telemetry_path)

    @app.route('/')
    def index():
        return Response(landing_page, mimetype='text/html')

    @app.route(telemetry_path)
    def scrape():
        target = request.args.get('target')
        if not target:
            logging.warning("Missing 'target' parameter in request")
            return make_text_response("Missing 'target' parameter", status=400)

        try:
            handler = registry.resolve(target)
        except UnknownTarget as e:
            logging.warning(f"Scrape requested for unknown target '{target}'")
            return make_text_response(str(e), status=400)

        output = handler.render()
        if config.settings.log_scraped_metrics:
            logging.info(f"--- Metrics scrape of '{target}' ---\n{output.decode('utf-8')}--- End scrape ---")
        return make_text_response(output, content_type=CONTENT_TYPE_LATEST)

    logging.info(f"Serving {len(config.targets)} target(s) on {telemetry_path}")
    return app
