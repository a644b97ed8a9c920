"""Error types raised by the changelog store.

Every error derives from :class:`ClpackError`, which is a
:class:`click.ClickException`. The CLI therefore reports them with a non-zero
exit status without extra plumbing, and Python callers can catch a single base
type.
"""

from __future__ import annotations

from pathlib import Path

from click import ClickException

__all__ = [
    "ClpackError",
    "ConfigError",
    "NotWritableError",
    "UnknownChannelError",
    "InvalidEntryNameError",
    "NotInitializedError",
    "ClobberedPathError",
    "CorruptLedgerError",
    "DuplicateVersionError",
    "MissingEntryFileError",
    "IoError",
    "LedgerOutOfSyncError",
]


class ClpackError(ClickException):
    """Base class for all clpack failures."""


class ConfigError(ClpackError):
    """A configuration value is missing, malformed, or unusable."""


class NotWritableError(ConfigError):
    """A directory managed by the store cannot be written to."""

    def __init__(self, path: Path, what: str = "Changelog directory") -> None:
        self.path = path
        super().__init__(f"{what} is not writable: {path}")


class UnknownChannelError(ConfigError):
    """The requested channel is not declared in the configuration."""

    def __init__(self, channel: str, known: tuple[str, ...] = ()) -> None:
        self.channel = channel
        message = f"No such channel: {channel}"
        if known:
            message += f" (configured: {', '.join(known)})"
        super().__init__(message)


class InvalidEntryNameError(ConfigError):
    """An entry name cannot be used as a file name."""


class NotInitializedError(ClpackError):
    """The data directory has not been created yet."""

    def __init__(self, path: Path, binary_name: str = "clpack") -> None:
        self.path = path
        super().__init__(
            f"Changelog directory does not exist: {path}. Use `{binary_name} init` to create it."
        )


class ClobberedPathError(ClpackError):
    """A path that must be a directory exists as something else."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(
            "Changelog path is clobbered, must be a writable directory or not exist "
            f"(will be created): {path}"
        )


class CorruptLedgerError(ClpackError):
    """A channel ledger file cannot be parsed."""

    def __init__(self, path: Path, channel: str, reason: str) -> None:
        self.path = path
        self.channel = channel
        super().__init__(f"Release ledger for channel '{channel}' is corrupt ({path}): {reason}")


class DuplicateVersionError(ClpackError):
    """A version name is already used by a release."""

    def __init__(self, version: str, channel: str | None = None) -> None:
        self.version = version
        self.channel = channel
        where = f" in channel '{channel}'" if channel else ""
        super().__init__(f"Version '{version}' already exists{where}.")


class MissingEntryFileError(ClpackError):
    """A release references an entry whose file is gone or unreadable."""

    def __init__(self, name: str, path: Path, reason: str | None = None) -> None:
        self.name = name
        self.path = path
        message = f"Changelog entry '{name}' is missing or unreadable: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class IoError(ClpackError):
    """Reading, writing, or creating a file failed."""


class LedgerOutOfSyncError(IoError):
    """The changelog file was written but the ledger update failed.

    The release is visible in the changelog document yet unknown to the
    ledger, so its entries would be offered again by the next pack. This
    requires manual reconciliation.
    """

    def __init__(self, document: Path, ledger: Path, version: str, reason: str) -> None:
        self.document = document
        self.ledger = ledger
        self.version = version
        super().__init__(
            f"CHANGELOG AND LEDGER ARE OUT OF SYNC: release '{version}' was written to "
            f"{document} but recording it in {ledger} failed: {reason}. "
            "Fix the ledger by hand (or revert the changelog file) before packing again, "
            "otherwise the same entries will be released twice."
        )
