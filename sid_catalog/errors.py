"""Exceptions raised by the SID catalog."""


class CatalogError(RuntimeError):
    """Base class for fatal catalog errors."""


class ConfigError(CatalogError):
    """Required configuration is missing or invalid."""


class SnapshotCorruptError(CatalogError):
    """A snapshot file exists but cannot be decompressed or parsed."""


class SnapshotMissingError(CatalogError):
    """No snapshot is available, even after fetching one."""


class FetchError(CatalogError):
    """Downloading a remote snapshot failed."""


class ReleaseDetectionError(CatalogError):
    """The collection version could not be read from its version marker."""


class ReleaseFileError(CatalogError):
    """The releases document cannot be parsed."""


class TruncatedHeaderError(OSError):
    """A tune file is shorter than its fixed-size header."""
