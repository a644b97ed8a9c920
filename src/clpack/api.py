"""Python-friendly facade for invoking clpack functionality."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Optional

from .cli import (
    CLIContext,
    create_cli_context,
    create_entry,
    init_project,
    pack_release,
)
from .ledger import Release
from .store import ReleaseHook, Store


class Changelog:
    """High-level helper that mirrors the CLI commands for Python callers."""

    def __init__(
        self,
        *,
        root: Path | str | None = None,
        config: Path | str | None = None,
        debug: bool = False,
    ) -> None:
        resolved_root = Path(root) if root is not None else None
        resolved_config = Path(config) if config is not None else None
        self._ctx = create_cli_context(
            root=resolved_root,
            config=resolved_config,
            debug=debug,
        )

    @property
    def context(self) -> CLIContext:
        """Expose the underlying CLIContext for advanced scenarios."""

        return self._ctx

    @property
    def store(self) -> Store:
        """Open (once) and return the underlying store."""

        return self._ctx.open_store()

    def init(self) -> None:
        """Create the config file and changelog folder if they are missing."""

        init_project(self._ctx)

    def add(
        self,
        name: str,
        content: Optional[str] = None,
        *,
        sections: tuple[str, ...] = (),
    ) -> Path:
        """Create a changelog entry and return the resulting file path."""

        return create_entry(
            self._ctx,
            name=name,
            sections=sections,
            description=content,
            allow_interactive=False,
        )

    def unreleased(self, channel: Optional[str] = None) -> list[str]:
        """Return entry names waiting for release on ``channel`` (default channel if omitted)."""

        store = self.store
        return store.find_unreleased_changes(channel or store.ctx.config.default_channel)

    def preview(
        self,
        version: str,
        channel: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> str:
        """Render the release ``pack`` would write, without writing anything."""

        release = Release(version=version, entries=tuple(self.unreleased(channel)))
        return self.store.render_release(release, today=today)

    def pack(
        self,
        version: str,
        channel: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> Optional[Release]:
        """Pack all unreleased entries of ``channel`` into ``version``.

        Returns None when there is nothing to release.
        """

        return pack_release(
            self._ctx,
            channel=channel,
            version=version,
            assume_yes=True,
            allow_interactive=False,
            today=today,
        )

    def on_release(self, hook: ReleaseHook) -> None:
        """Run ``hook(channel, release)`` after each successful pack."""

        self.store.add_release_hook(hook)
