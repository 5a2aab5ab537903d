"""Exceptions raised while syncing a release's ChangeLog.txt into a feed."""


class SyncError(Exception):
    """Base class for failures scoped to a single release."""


class TransportError(SyncError):
    """The remote could not be reached or the connection failed."""


class ProtocolError(SyncError):
    """The remote answered with a non-success status."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"{status_code} status from {url}")


class MetadataError(SyncError):
    """The Last-Modified header was missing or could not be parsed."""


class ChangeLogParseError(SyncError):
    """The ChangeLog.txt body could not be parsed into entries."""


class PersistenceError(SyncError):
    """The rendered feed could not be written or stamped."""


class ConfigError(Exception):
    """Configuration problem that aborts the whole run."""
