class ExporterError(Exception):
    """Base class for exporter errors."""


class ConfigError(ExporterError):
    """The configuration document is missing or invalid."""


class ConnectionFailure(ExporterError):
    """Cannot open or authenticate a connection to the target."""


class IdentityQueryFailure(ConnectionFailure):
    """Connected, but the database/instance identity could not be read."""


class TaskQueryFailure(ExporterError):
    """A scrape task's query failed or one of its rows could not be decoded."""

    def __init__(self, task, message):
        super().__init__(f"{task}: {message}")
        self.task = task


class UnknownTarget(ExporterError):
    """The requested target is not present in the configuration."""

    def __init__(self, target):
        super().__init__(f"Target not found {target}")
        self.target = target
