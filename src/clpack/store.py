"""The changelog store: entries, channel ledgers and changelog files.

Layout below the configured data folder::

    entries/<name>.md        unreleased change notes
    channels/<channel>.json  release ledger per channel

Packing a release is two sequential writes, the changelog file first and the
ledger second. They are not a transaction: if the ledger write fails the
changelog already shows the release, which is reported through
:class:`~clpack.errors.LedgerOutOfSyncError`. There is no lock file either,
so two processes packing the same project at once can race on directory
creation and on the ledger read-modify-write cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from .config import AppContext
from .document import ChangelogDocument, changelog_path
from .entries import EntryRepository, entry_directory
from .errors import (
    ClobberedPathError,
    ConfigError,
    DuplicateVersionError,
    IoError,
    LedgerOutOfSyncError,
    NotInitializedError,
    NotWritableError,
    UnknownChannelError,
)
from .ledger import ChannelLedger, Release, channel_directory, ledger_path
from .rendering import ReleaseRenderer
from .utils import ensure_directory, is_writable_dir, log_debug, log_info, log_success

ReleaseHook = Callable[[str, Release], None]


@dataclass(frozen=True)
class StagedRelease:
    """A validated, rendered release that has not been written yet."""

    channel: str
    release: Release
    fragment: str
    document: ChangelogDocument


class Store:
    """Owns the data folder and coordinates entries, ledgers and changelog files."""

    def __init__(
        self,
        ctx: AppContext,
        entries: EntryRepository,
        ledgers: dict[str, ChannelLedger],
    ) -> None:
        self.ctx = ctx
        self.entries = entries
        self._ledgers = ledgers
        self._renderer = ReleaseRenderer(ctx.config)
        self._hooks: list[ReleaseHook] = []

    @classmethod
    def open(cls, ctx: AppContext, *, init: bool = False) -> "Store":
        """Open the store below ``ctx.root``, creating it when ``init`` is set."""
        data_dir = ctx.data_dir
        if not data_dir.is_dir():
            if data_dir.exists() or data_dir.is_symlink():
                raise ClobberedPathError(data_dir)
            if not init:
                raise NotInitializedError(data_dir, ctx.binary_name)
            log_info(f"creating changelog directory: {data_dir}")
            try:
                data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise IoError(f"Failed to create changelog directory {data_dir}: {exc}") from exc
        if not is_writable_dir(data_dir):
            raise NotWritableError(data_dir)

        entries = EntryRepository(entry_directory(data_dir))
        ensure_directory(channel_directory(data_dir), what="Changelog channels directory")

        ledgers: dict[str, ChannelLedger] = {}
        for channel in ctx.config.channel_ids:
            ledgers[channel] = ChannelLedger.load(ledger_path(data_dir, channel), channel)
        log_debug(f"opened changelog store at {data_dir} with {len(ledgers)} channel(s)")
        return cls(ctx, entries, ledgers)

    @property
    def data_dir(self) -> Path:
        return self.ctx.data_dir

    @property
    def channels(self) -> tuple[str, ...]:
        return tuple(self._ledgers)

    def ledger(self, channel: str) -> ChannelLedger:
        try:
            return self._ledgers[channel]
        except KeyError:
            raise UnknownChannelError(channel, self.channels) from None

    def changelog_document(self, channel: str) -> ChangelogDocument:
        self.ledger(channel)
        config = self.ctx.config
        return ChangelogDocument(
            changelog_path(self.ctx.root, channel, config), config.changelog_header
        )

    # Entries

    def entry_exists(self, name: str) -> bool:
        return self.entries.exists(name)

    def create_entry(self, name: str, content: str) -> Path:
        path = self.entries.create(name, content)
        log_success(f"entry created: {path}")
        return path

    def list_entries(self) -> list[tuple[str, str]]:
        return self.entries.list_entries()

    # Releases

    def version_exists(self, version: str) -> bool:
        """Return True if any channel already has a release named ``version``."""
        return any(ledger.version_exists(version) for ledger in self._ledgers.values())

    def channel_of(self, version: str) -> Optional[str]:
        for channel, ledger in self._ledgers.items():
            if ledger.version_exists(version):
                return channel
        return None

    def find_unreleased_changes(self, channel: str) -> list[str]:
        """Return entry names not yet released in ``channel``, sorted by name."""
        return self.ledger(channel).find_unreleased(self.entries.names())

    def render_release(self, release: Release, *, today: Optional[date] = None) -> str:
        """Render ``release`` from the current entry files without writing anything."""
        return self._renderer.render(release, self.entries.read, today=today)

    def add_release_hook(self, hook: ReleaseHook) -> None:
        """Register a callback run with ``(channel, release)`` after each successful pack."""
        self._hooks.append(hook)

    def stage(
        self, channel: str, release: Release, *, today: Optional[date] = None
    ) -> StagedRelease:
        """Validate and render a release. Nothing is written."""
        document = self.changelog_document(channel)
        if not release.version.strip():
            raise ConfigError("Release version cannot be empty.")
        if release.version != release.version.strip():
            raise ConfigError(
                f"Release version '{release.version}' has leading or trailing whitespace."
            )
        existing = self.channel_of(release.version)
        if existing is not None:
            raise DuplicateVersionError(release.version, existing)
        fragment = self.render_release(release, today=today)
        return StagedRelease(channel=channel, release=release, fragment=fragment, document=document)

    def commit(self, staged: StagedRelease) -> Release:
        """Write a staged release to the changelog file and then to the ledger."""
        release = staged.release
        existing = self.channel_of(release.version)
        if existing is not None:
            raise DuplicateVersionError(release.version, existing)
        ledger = self.ledger(staged.channel)

        staged.document.prepend(staged.fragment)
        log_debug(f"changelog file updated: {staged.document.path}")

        ledger.append(release)
        try:
            ledger.flush()
        except IoError as exc:
            ledger.discard_last(release)
            raise LedgerOutOfSyncError(
                staged.document.path, ledger.path, release.version, exc.message
            ) from exc

        for hook in self._hooks:
            hook(staged.channel, release)
        return release

    def create_release(
        self, channel: str, release: Release, *, today: Optional[date] = None
    ) -> Release:
        """Render, write the changelog file, then record the release in the ledger."""
        return self.commit(self.stage(channel, release, today=today))
