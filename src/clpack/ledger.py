"""Per-channel release ledgers.

Each configured channel owns one JSON file below ``channels/`` holding the
releases packed for it, oldest first::

    [
      {"version": "1.0", "entries": ["12-fix-login", "15-new-export"]}
    ]

The ledger is the only record of which entries were released. Entry files
themselves are never moved or deleted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

from .errors import CorruptLedgerError, DuplicateVersionError, IoError
from .utils import atomic_write_text, log_debug, log_info

CHANNELS_DIR = Path("channels")
LEDGER_SUFFIX = ".json"


def channel_directory(data_dir: Path) -> Path:
    """Return the directory containing the per-channel ledgers."""
    return data_dir / CHANNELS_DIR


def ledger_path(data_dir: Path, channel: str) -> Path:
    """Return the ledger file for ``channel``."""
    return channel_directory(data_dir) / f"{channel}{LEDGER_SUFFIX}"


@dataclass(frozen=True)
class Release:
    """A packed version and the entries it contains, in release order."""

    version: str
    entries: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable for convenience but store an immutable tuple.
        object.__setattr__(self, "entries", tuple(self.entries))

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "entries": list(self.entries)}

    @classmethod
    def from_dict(cls, data: Any) -> "Release":
        """Parse one ledger item, raising ``ValueError`` on malformed data."""
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        version = data.get("version")
        if not isinstance(version, str) or not version.strip():
            raise ValueError("release 'version' must be a non-empty string")
        entries = data.get("entries", [])
        if not isinstance(entries, list) or not all(isinstance(item, str) for item in entries):
            raise ValueError(f"release '{version}' must list its entries as strings")
        return cls(version=version, entries=tuple(entries))


@dataclass
class ChannelLedger:
    """In-memory view of one channel's ledger file.

    The in-memory list is authoritative between :meth:`append` and
    :meth:`flush`; a crash in between loses the appended release.
    """

    path: Path
    channel: str
    _releases: list[Release] = field(default_factory=list)
    dirty: bool = False

    @classmethod
    def load(cls, path: Path, channel: str) -> "ChannelLedger":
        """Read a ledger from disk, creating an empty one if it is missing."""
        if not path.exists():
            ledger = cls(path=path, channel=channel)
            log_info(f"creating release ledger for channel '{channel}': {path}")
            ledger.flush()
            return ledger
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise IoError(f"Failed to read release ledger {path}: {exc}") from exc
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CorruptLedgerError(path, channel, f"invalid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise CorruptLedgerError(path, channel, "expected a JSON array of releases")
        releases: list[Release] = []
        seen: set[str] = set()
        for index, item in enumerate(payload):
            try:
                release = Release.from_dict(item)
            except ValueError as exc:
                raise CorruptLedgerError(path, channel, f"item {index}: {exc}") from exc
            if release.version in seen:
                raise CorruptLedgerError(
                    path, channel, f"version '{release.version}' is listed more than once"
                )
            seen.add(release.version)
            releases.append(release)
        log_debug(f"loaded {len(releases)} release(s) for channel '{channel}' from {path}")
        return cls(path=path, channel=channel, _releases=releases)

    @property
    def releases(self) -> tuple[Release, ...]:
        return tuple(self._releases)

    def version_exists(self, version: str) -> bool:
        return any(release.version == version for release in self._releases)

    def find_release(self, version: str) -> Optional[Release]:
        for release in self._releases:
            if release.version == version:
                return release
        return None

    def latest(self) -> Optional[Release]:
        return self._releases[-1] if self._releases else None

    def append(self, release: Release) -> None:
        """Record a release at the end of the ledger; call :meth:`flush` to persist."""
        if self.version_exists(release.version):
            raise DuplicateVersionError(release.version, self.channel)
        self._releases.append(release)
        self.dirty = True

    def discard_last(self, release: Release) -> None:
        """Undo an :meth:`append` whose :meth:`flush` failed."""
        if self._releases and self._releases[-1] == release:
            self._releases.pop()
            self.dirty = False

    def serialize(self) -> str:
        payload = [release.to_dict() for release in self._releases]
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    def flush(self) -> None:
        """Overwrite the backing file with the full release list."""
        try:
            atomic_write_text(self.path, self.serialize())
        except OSError as exc:
            raise IoError(f"Failed to write release ledger {self.path}: {exc}") from exc
        self.dirty = False

    def released_entries(self) -> set[str]:
        """Return every entry name that belongs to a release in this channel."""
        used: set[str] = set()
        for release in self._releases:
            used.update(release.entries)
        return used

    def find_unreleased(self, all_entry_names: Iterable[str]) -> list[str]:
        """Return entry names not yet released in this channel, keeping input order."""
        used = self.released_entries()
        unreleased: list[str] = []
        for name in all_entry_names:
            if name in used:
                continue
            used.add(name)
            unreleased.append(name)
        return unreleased
