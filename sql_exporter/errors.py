"""Exception hierarchy shared by config loading, database clients and the scheduler."""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """Exporter configuration is missing, unreadable or invalid. Fatal at startup."""


class QueryExecutionError(ExporterError):
    """The database rejected or failed to run a statement."""


class ResultShapeError(ExporterError):
    """A statement returned more than one row."""


class ValueParseError(ExporterError):
    """A requested column is missing or could not be read as a number."""
