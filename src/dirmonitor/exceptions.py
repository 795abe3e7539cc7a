"""Custom exceptions for the directory monitor package."""


class MonitorError(Exception):
    """Base exception for all monitor errors."""
    pass


class ConfigError(MonitorError):
    """Invalid monitor configuration."""
    pass


class DirectoryNotFoundError(MonitorError):
    """Monitored directory does not exist."""
    pass


class StoreError(MonitorError):
    """Error related to the path record store."""
    pass


class StoreClosedError(StoreError):
    """Operation attempted on a closed store."""
    pass


class ProcessorError(MonitorError):
    """Error raised by a processor plugin."""
    pass


class MonitorAlreadyRunningError(MonitorError):
    """Monitor process is already running."""
    pass
