"""Custom exceptions for the image synchronizer."""


class SyncError(Exception):
    """Base exception for all synchronization errors."""

    pass


class ConfigError(SyncError):
    """Raised when sync options are invalid or incomplete."""

    pass


class DiscoveryError(SyncError):
    """Raised when image names or tags cannot be listed."""

    pass


class FetchError(SyncError):
    """Raised when an image manifest cannot be retrieved."""

    pass


class CopyError(SyncError):
    """Raised when an image transfer fails."""

    pass


class PersistError(SyncError):
    """Raised when a manifest cannot be written to the store."""

    pass


class PoolClosedError(SyncError):
    """Raised when submitting to a released worker pool."""

    pass
