"""
Error types for GameShelf.

Scanning, persistence, launching and manual entry each get their own
exception family so callers can handle one failure mode without catching
the others.
"""

from __future__ import annotations


class SourceError(Exception):
    """A launcher source could not be scanned as a whole."""


class NotInstalledError(SourceError):
    def __init__(self, source: str = ""):
        self.source = source
        super().__init__(f"{source or 'Launcher'} not installed")


class SourcePathNotFoundError(SourceError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Could not find launcher path: {path}")


class SourceIOError(SourceError):
    """Filesystem failure while reading a launcher's data."""


class ManifestParseError(SourceError):
    """A launcher-wide configuration file could not be parsed."""


class DatabaseError(SourceError):
    """Query failure against a launcher's relational database."""


class StorageError(Exception):
    """Library or config document could not be read or written."""


class StorageIOError(StorageError):
    pass


class SerializationError(StorageError):
    pass


class DeserializationError(StorageError):
    pass


class LaunchError(Exception):
    """A game could not be started."""


class ExecutableNotFoundError(LaunchError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Executable not found: {path}")


class SpawnFailedError(LaunchError):
    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to spawn process {path}: {reason}")


class ManualEntryError(ValueError):
    """A user-entered game does not point at a usable executable."""


class EntryPathNotFoundError(ManualEntryError):
    pass


class EntryNotAFileError(ManualEntryError):
    pass


class EntryNotExecutableError(ManualEntryError):
    pass
