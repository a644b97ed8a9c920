"""Public changelog files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .errors import IoError
from .utils import atomic_write_text, log_debug


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def changelog_path(root: Path, channel: str, config: Config) -> Path:
    """Return the changelog file for ``channel``, relative paths resolved against ``root``."""
    if channel == config.default_channel:
        template = config.changelog_file_default
    else:
        template = (
            config.changelog_file_channel.replace("{channel}", channel)
            .replace("{Channel}", _capitalize(channel))
            .replace("{CHANNEL}", channel.upper())
        )
    return root / template


@dataclass
class ChangelogDocument:
    """A changelog file: a fixed header followed by releases, newest first."""

    path: Path
    header: str

    def read_body(self) -> str:
        """Return the current content without the header; empty if there is no file."""
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as exc:
            raise IoError(f"Failed to read changelog file {self.path}: {exc}") from exc
        if self.header and content.startswith(self.header):
            return content[len(self.header) :]
        return content

    def prepend(self, fragment: str) -> None:
        """Insert ``fragment`` right after the header, keeping older releases below it."""
        body = self.read_body()
        log_debug(f"writing changelog file: {self.path}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_text(self.path, self.header + fragment + body)
        except OSError as exc:
            raise IoError(f"Failed to write changelog file {self.path}: {exc}") from exc


def prepend(path: Path, header: str, fragment: str) -> None:
    """Prepend ``fragment`` to the changelog file at ``path``."""
    ChangelogDocument(path, header).prepend(fragment)
