import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError


DEFAULT_QUERY_TIMEOUT = 10.0
DEFAULT_CONNECT_TIMEOUT = 10.0


def parse_duration(s):
    """
    Converts a duration string like '500ms', '10s', '5m', or '2h' into seconds (float).
    Numbers are taken as seconds.
    """
    if isinstance(s, (int, float)):
        return float(s)

    units = {
        'ms': 0.001,
        's': 1,
        'm': 60,
        'h': 3600
    }

    s = str(s).strip().lower()
    for unit, factor in units.items():
        if s.endswith(unit):
            try:
                return float(s[:-len(unit)]) * factor
            except ValueError:
                raise ConfigError(f"Invalid numeric value in duration: {s}")
    # Default fallback: assume it's raw seconds
    try:
        return float(s)
    except ValueError:
        raise ConfigError(f"Unrecognized duration format: {s}")


@dataclass(frozen=True)
class CustomQuery:
    name: str
    sql: str


@dataclass(frozen=True)
class TargetDescriptor:
    connection: str
    user: str = ""
    password: str = field(default="", repr=False)
    queries: tuple = ()


@dataclass(frozen=True)
class Settings:
    timezone: str = "system"
    log_scraped_metrics: bool = False
    query_timeout: float = DEFAULT_QUERY_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    connection_retries: int = 1
    retry_delay: float = 1.0


@dataclass(frozen=True)
class ExporterConfig:
    settings: Settings
    targets: tuple

    def find_target(self, connection):
        for target in self.targets:
            if target.connection == connection:
                return target
        return None


def mask_passwords(raw):
    """Return a copy of the raw config document with every password replaced by '***'."""
    masked = yaml.safe_load(yaml.dump(raw)) or {}
    for conn in masked.get('connections') or []:
        if isinstance(conn, dict) and 'password' in conn:
            conn['password'] = '***'
    return masked


def _positive_duration(raw, key, default):
    value = parse_duration(raw.get(key, default))
    if value <= 0:
        raise ConfigError(f"'{key}' must be greater than zero: {raw.get(key)}")
    return value


def _parse_settings(raw):
    if not isinstance(raw, dict):
        raise ConfigError("'global' must be a mapping")
    try:
        retries = int(raw.get('connection_retries', 1))
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid connection_retries: {raw.get('connection_retries')}")
    log_scraped_metrics = raw.get('log_scraped_metrics', False)
    if not isinstance(log_scraped_metrics, bool):
        raise ConfigError(f"'log_scraped_metrics' must be true or false: {log_scraped_metrics!r}")
    retry_delay = parse_duration(raw.get('retry_delay', 1))
    if retry_delay < 0:
        raise ConfigError(f"'retry_delay' must not be negative: {raw.get('retry_delay')}")
    return Settings(
        timezone=str(raw.get('timezone', 'system')),
        log_scraped_metrics=log_scraped_metrics,
        query_timeout=_positive_duration(raw, 'query_timeout', DEFAULT_QUERY_TIMEOUT),
        connect_timeout=_positive_duration(raw, 'connect_timeout', DEFAULT_CONNECT_TIMEOUT),
        connection_retries=max(1, retries),
        retry_delay=retry_delay,
    )


def _parse_queries(raw, connection):
    queries = []
    seen = set()
    for entry in raw or []:
        if not isinstance(entry, dict) or not entry.get('name') or not entry.get('sql'):
            raise ConfigError(f"Custom query for '{connection}' needs both 'name' and 'sql': {entry}")
        name = str(entry['name'])
        if name in seen:
            raise ConfigError(f"Duplicate custom query '{name}' for '{connection}'")
        seen.add(name)
        queries.append(CustomQuery(name=name, sql=str(entry['sql'])))
    return tuple(queries)


def _parse_target(raw):
    if not isinstance(raw, dict) or not raw.get('connection'):
        raise ConfigError(f"Connection entry without a 'connection' string: {raw}")
    connection = str(raw['connection'])
    return TargetDescriptor(
        connection=connection,
        user=str(raw.get('user') or ''),
        password=str(raw.get('password') or ''),
        queries=_parse_queries(raw.get('queries'), connection),
    )


def parse_config(raw):
    """Build an ExporterConfig from an already-parsed YAML document."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("Configuration document must be a mapping")

    settings = _parse_settings(raw.get('global') or {})
    targets = []
    seen = set()
    for entry in raw.get('connections') or []:
        target = _parse_target(entry)
        if target.connection in seen:
            raise ConfigError(f"Duplicate connection '{target.connection}' in configuration")
        seen.add(target.connection)
        targets.append(target)
    return ExporterConfig(settings=settings, targets=tuple(targets))


def load_config(config_path):
    """
    Loads the exporter YAML file (global settings plus the list of connections).
    """
    config_path = Path(config_path)
    logging.info(f"Loading config from: {config_path}")

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open() as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file '{config_path}': {e}")

    config = parse_config(raw)
    logging.info(f"Loaded config: {mask_passwords(raw)}")
    logging.info(f"Configured targets: {[t.connection for t in config.targets]}")
    logging.info(f"log_scraped_metrics enabled: {config.settings.log_scraped_metrics}")
    return config
